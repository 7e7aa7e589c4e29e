"""
Destination registry.

Maps destination keys (storage names such as `dcache` or `storm`) to the
descriptor of the transfer service that handles them. Lookups are exact and
case-sensitive; a request that names no destination uses the configured
default. The registry is built once from the configuration and never
mutated.
"""

from typing import Dict, List, Mapping, Optional, Tuple

from app.core.exceptions import unknown_destination
from app.models.service import ServiceDescriptor, TransferConfig


class DestinationRegistry:
    """
    Read-only table of destination key to service descriptor.

    Example:
        >>> registry = DestinationRegistry.from_config(get_transfer_config())
        >>> registry.resolve("dcache").key
        'fts'
    """

    def __init__(self, destinations: Mapping[str, ServiceDescriptor], default_destination: str):
        if default_destination not in destinations:
            raise ValueError(f"Default destination '{default_destination}' is not configured")
        self._destinations: Dict[str, ServiceDescriptor] = dict(destinations)
        self._default = default_destination

    @classmethod
    def from_config(cls, config: TransferConfig) -> "DestinationRegistry":
        destinations = {
            destination: config.services[service_key]
            for destination, service_key in config.destinations.items()
        }
        return cls(destinations, config.default_destination)

    @property
    def default_destination(self) -> str:
        return self._default

    def get(self, destination: str) -> Optional[ServiceDescriptor]:
        return self._destinations.get(destination)

    def resolve(self, destination: Optional[str] = None) -> ServiceDescriptor:
        """
        Returns the descriptor of the service handling `destination`.

        Args:
            destination (str, optional): Destination key. The default
                destination is used when empty.

        Raises:
            TransferServiceFault: `unknownDestination` if the key is not
                configured.

        Returns:
            ServiceDescriptor: The configured descriptor.
        """

        key = destination or self._default
        descriptor = self._destinations.get(key)
        if descriptor is None:
            raise unknown_destination(key)
        return descriptor

    def items(self) -> List[Tuple[str, ServiceDescriptor]]:
        return list(self._destinations.items())

    def __contains__(self, destination: str) -> bool:
        return destination in self._destinations

    def __len__(self) -> int:
        return len(self._destinations)
