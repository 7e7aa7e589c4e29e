"""
Transfers Service.

This module dispatches the uniform transfer operations to the backend
transfer service configured for the requested destination.

Each request goes through the same sequence of stages:

    1. Check the bearer credential.
    2. Resolve the destination into a service descriptor.
    3. Build (or reuse) the backend adapter for the descriptor.
    4. Invoke the operation on the adapter.

Stages run strictly one after the other. Every stage returns either its
value or a fault; the first fault ends the request and is handed, together
with the operation's context pairs, to the normalizer. Nothing is retried
here. Only the last stage talks to the network, bounded by the timeout of
the service descriptor.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

from fastapi import Depends, Request

from app.adapters.base import TransferServiceAdapter
from app.core.config import get_transfer_config
from app.core.exceptions import FaultKind, TransferServiceFault
from app.core.logger import logger
from app.core.security import get_authorization, require_bearer
from app.models.service import ServiceDescriptor
from app.models.transfer import Transfer
from app.schemas.transfer import TransferFilters
from app.services.factory import ServiceFactory
from app.services.registry import DestinationRegistry

Operation = Callable[[TransferServiceAdapter, str], Awaitable[Any]]


@dataclass
class DispatchResult:
    """
    Outcome of a dispatched operation.

    Exactly one of `value` and `fault` is meaningful: `fault` is set when
    any stage failed.
    """

    value: Any = None
    fault: Optional[TransferServiceFault] = None
    context: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.fault is None


class RejectedRequest(Exception):
    """Raised by request dependencies that fail before dispatching; carries the failed outcome."""

    def __init__(self, result: DispatchResult):
        super().__init__(result.fault.description)
        self.result = result


class TransferDispatcher:
    """
    Routes transfer operations to the backend service of a destination.

    Args:
        registry (DestinationRegistry): Destination to service table.
        factory (ServiceFactory): Supplier of backend adapters.

    Example:
        >>> dispatcher = TransferDispatcher(registry, ServiceFactory())
        >>> result = await dispatcher.get_transfer_info("Bearer <token>", "abc-123", "dcache")
        >>> result.ok
        True
    """

    def __init__(self, registry: DestinationRegistry, factory: ServiceFactory):
        self.registry = registry
        self.factory = factory

    # ------------------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------------------

    async def start_transfer(self, authorization: Optional[str], transfer: Transfer, destination: Optional[str] = None) -> DispatchResult:
        logger.info("Start new data transfer")
        destination = self._destination(destination)

        result = await self._dispatch(
            authorization, destination, [],
            lambda adapter, credential: adapter.start_transfer(credential, transfer),
        )
        if result.ok:
            logger.info(f"Started new transfer {result.value.jobId}")
        else:
            logger.error(f"Failed to start new transfer: {result.fault.description}")
        return result

    async def find_transfers(self, authorization: Optional[str], filters: TransferFilters, destination: Optional[str] = None) -> DispatchResult:
        criteria = ", ".join(f"{key} = {value}" for key, value in filters.context_pairs())
        logger.info(f"Find data transfers matching criteria: {criteria}")
        destination = self._destination(destination)

        result = await self._dispatch(
            authorization, destination, filters.context_pairs(),
            lambda adapter, credential: adapter.find_transfers(credential, filters),
        )
        if result.ok:
            logger.info(f"Found {result.value.count} matching transfers")
        else:
            logger.error(f"Failed to find matching transfers: {result.fault.description}")
        return result

    async def get_transfer_info(self, authorization: Optional[str], job_id: str, destination: Optional[str] = None) -> DispatchResult:
        logger.info(f"Retrieve details of transfer {job_id}")
        destination = self._destination(destination)

        result = await self._dispatch(
            authorization, destination, [("jobId", job_id)],
            lambda adapter, credential: adapter.get_transfer_info(credential, job_id),
        )
        if result.ok:
            logger.info(f"Transfer {result.value.jobId} is {result.value.jobState.value}")
        else:
            logger.error(f"Failed to get details of transfer {job_id}: {result.fault.description}")
        return result

    async def get_transfer_info_field(self, authorization: Optional[str], job_id: str, field_name: str, destination: Optional[str] = None) -> DispatchResult:
        logger.info(f"Retrieve field '{field_name}' from details of transfer {job_id}")
        destination = self._destination(destination)

        result = await self._dispatch(
            authorization, destination, [("jobId", job_id), ("fieldName", field_name)],
            lambda adapter, credential: adapter.get_transfer_info_field(credential, job_id, field_name),
        )
        if result.ok:
            logger.info(f"Field {field_name} of transfer {job_id} is {result.value}")
        else:
            logger.error(f"Failed to get field {field_name} of transfer {job_id}: {result.fault.description}")
        return result

    async def cancel_transfer(self, authorization: Optional[str], job_id: str, destination: Optional[str] = None) -> DispatchResult:
        logger.info(f"Cancel transfer {job_id}")
        destination = self._destination(destination)

        result = await self._dispatch(
            authorization, destination, [("jobId", job_id)],
            lambda adapter, credential: adapter.cancel_transfer(credential, job_id),
        )
        if result.ok:
            logger.info(f"Transfer {result.value.jobId} is {result.value.jobState.value}")
        else:
            logger.error(f"Failed to cancel transfer {job_id}: {result.fault.description}")
        return result

    # ------------------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------------------

    async def _dispatch(self, authorization: Optional[str], destination: str, extra: List[Tuple[str, str]], operation: Operation) -> DispatchResult:
        context = [("destination", destination)] + [(key, value) for key, value in extra if value]

        credential = self._authenticate(authorization)
        if isinstance(credential, TransferServiceFault):
            return DispatchResult(fault=credential, context=context)

        descriptor = self._resolve_destination(destination)
        if isinstance(descriptor, TransferServiceFault):
            return DispatchResult(fault=descriptor, context=context)

        adapter = self._build_adapter(descriptor)
        if isinstance(adapter, TransferServiceFault):
            return DispatchResult(fault=adapter, context=context)

        value = await self._invoke(adapter, credential, operation)
        if isinstance(value, TransferServiceFault):
            return DispatchResult(fault=value, context=context)

        return DispatchResult(value=value, context=context)

    def _destination(self, destination: Optional[str]) -> str:
        return destination or self.registry.default_destination

    @staticmethod
    def _authenticate(authorization: Optional[str]) -> Union[str, TransferServiceFault]:
        try:
            return require_bearer(authorization)
        except TransferServiceFault as fault:
            return fault

    def _resolve_destination(self, destination: str) -> Union[ServiceDescriptor, TransferServiceFault]:
        try:
            return self.registry.resolve(destination)
        except TransferServiceFault as fault:
            return fault

    def _build_adapter(self, descriptor: ServiceDescriptor) -> Union[TransferServiceAdapter, TransferServiceFault]:
        try:
            return self.factory.get_adapter(descriptor)
        except TransferServiceFault as fault:
            return fault

    @staticmethod
    async def _invoke(adapter: TransferServiceAdapter, credential: str, operation: Operation) -> Any:
        try:
            return await operation(adapter, credential)
        except TransferServiceFault as fault:
            return fault
        except Exception as e:
            logger.exception("Unexpected error while calling the transfer service")
            return TransferServiceFault(FaultKind.BACKEND, "serviceError", str(e) or repr(e))

# ------------------------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_dispatcher() -> TransferDispatcher:
    """
    Returns the process-wide dispatcher, built from the transfer configuration.

    Raises:
        ConfigurationError: If the configuration cannot be loaded.
    """

    config = get_transfer_config()
    registry = DestinationRegistry.from_config(config)
    logger.info(f"Loaded {len(registry)} destinations, default is '{registry.default_destination}'")
    return TransferDispatcher(registry, ServiceFactory())


# Path parameters reported in the details of a rejected request
PATH_CONTEXT = (("job_id", "jobId"), ("field_name", "fieldName"))


async def get_credential(
    request: Request,
    authorization: Optional[str] = Depends(get_authorization),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> str:
    """
    Returns the bearer credential of the request.

    Runs before the request body is validated, so a missing credential is
    reported as 401 whatever the body holds.

    Raises:
        RejectedRequest: `notAuthorized` if the credential is missing or
            not a bearer token.
    """

    try:
        return require_bearer(authorization)
    except TransferServiceFault as fault:
        context = [("destination", request.query_params.get("dest") or dispatcher.registry.default_destination)]
        for param, key in PATH_CONTEXT:
            if request.path_params.get(param):
                context.append((key, request.path_params[param]))
        logger.error(f"Rejected {request.method} {request.url.path}: {fault.description}")
        raise RejectedRequest(DispatchResult(fault=fault, context=context)) from fault
