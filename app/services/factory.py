"""
Service factory.

Builds the backend adapter for a service descriptor. The adapter kind named
by the descriptor is looked up in a static table of known kinds; unknown
kinds and malformed URLs are rejected before any network call as
`invalidServiceConfig`. Adapters are cached by (URL, kind, timeout) and
shared by all requests, which is safe because they keep no per-call state.
"""

from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import httpx

from app.adapters.base import TransferServiceAdapter
from app.adapters.fts import FtsTransferAdapter
from app.core.exceptions import invalid_service_config
from app.core.logger import logger
from app.models.service import ServiceDescriptor
from app.util.service_helpers import validate_base_url


class AdapterKind(str, Enum):
    FTS = "fts"


AdapterBuilder = Callable[[ServiceDescriptor, Optional[httpx.AsyncBaseTransport]], TransferServiceAdapter]

ADAPTERS: Dict[AdapterKind, AdapterBuilder] = {
    AdapterKind.FTS: FtsTransferAdapter,
}


class ServiceFactory:
    """
    Supplies (and caches) adapters for service descriptors.

    Args:
        transport (httpx.AsyncBaseTransport, optional): Transport handed to
            every adapter, mainly to mock brokers in tests.

    Example:
        >>> factory = ServiceFactory()
        >>> adapter = factory.get_adapter(registry.resolve("dcache"))
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._adapters: Dict[Tuple[str, str, int], TransferServiceAdapter] = {}

    def get_adapter(self, descriptor: ServiceDescriptor) -> TransferServiceAdapter:
        """
        Returns the adapter for `descriptor`, building it on first use.

        Raises:
            TransferServiceFault: `invalidServiceConfig` if the adapter kind
                is unknown or the service URL is malformed.
        """

        cache_key = (descriptor.url, descriptor.kind, descriptor.timeout)
        adapter = self._adapters.get(cache_key)
        if adapter is None:
            adapter = self._build(descriptor)
            self._adapters[cache_key] = adapter
        return adapter

    def _build(self, descriptor: ServiceDescriptor) -> TransferServiceAdapter:
        try:
            kind = AdapterKind(descriptor.kind.lower())
        except ValueError as e:
            raise invalid_service_config(
                f"Service '{descriptor.key}' uses unknown adapter kind '{descriptor.kind}'"
            ) from e

        try:
            validate_base_url(descriptor.url)
        except ValueError as e:
            raise invalid_service_config(f"Service '{descriptor.key}' has an invalid URL: {e}") from e

        logger.info(f"Creating {kind.value} adapter for service '{descriptor.key}' at {descriptor.url}")
        return ADAPTERS[kind](descriptor, self._transport)

    def __len__(self) -> int:
        return len(self._adapters)
