"""
Base contract for backend transfer service adapters.

An adapter implements the five uniform transfer operations on top of one
kind of transfer broker. It translates requests into the broker's protocol
and broker answers (payloads, status codes, job states) back into the
uniform model. Adapters are bound to a service descriptor and hold no
per-request state, so a single instance serves concurrent requests.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import httpx

from app.core.exceptions import FaultKind, TransferServiceFault
from app.models.service import ServiceDescriptor
from app.models.transfer import JobState, Transfer, TransferInfo, TransferInfoExtended, TransferList
from app.schemas.transfer import TransferFilters


class TransferServiceAdapter(ABC):
    """
    Uniform transfer service contract.

    Subclasses declare their state vocabulary in `STATES` (backend state to
    uniform state). Searches use the inverse table, so every backend state
    a job can be reported in is also matched by a search on its uniform
    state.

    Args:
        descriptor (ServiceDescriptor): The service this adapter talks to.
        transport (httpx.AsyncBaseTransport, optional): Transport used by the
            HTTP clients, mainly to mock the broker in tests.
    """

    STATES: Mapping[str, JobState] = {}

    # Uniform fields that cannot be requested individually
    HIDDEN_FIELDS = frozenset({"kind"})

    def __init__(self, descriptor: ServiceDescriptor, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.descriptor = descriptor
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self.descriptor.url.rstrip("/")

    def client(self, credential: str) -> httpx.AsyncClient:
        """Returns a new HTTP client bound to the service, authenticated as the caller."""

        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.descriptor.timeout_seconds,
            headers={"Authorization": credential, "Accept": "application/json"},
            transport=self._transport,
        )

    # ------------------------------------------------------------------------------
    # State vocabulary
    # ------------------------------------------------------------------------------

    def to_job_state(self, value: Any) -> JobState:
        if value is None:
            return JobState.UNKNOWN
        return self.STATES.get(str(value).upper(), JobState.UNKNOWN)

    @classmethod
    def query_states(cls) -> Dict[JobState, List[str]]:
        """Returns the inverse of `STATES`: uniform state to backend states."""

        table: Dict[JobState, List[str]] = {}
        for backend, state in cls.STATES.items():
            table.setdefault(state, []).append(backend)
        return table

    def to_backend_states(self, states: Iterable[str]) -> List[str]:
        """
        Translates uniform state names into backend state names.

        Names that are not part of the uniform vocabulary are passed through
        unchanged, so callers may also filter on backend-native states.
        Uniform states without a backend equivalent translate to nothing.
        """

        query = self.query_states()
        backend: List[str] = []
        for name in states:
            try:
                translated = query.get(JobState(name.lower()), [])
            except ValueError:
                translated = [name]
            for state in translated:
                if state not in backend:
                    backend.append(state)
        return backend

    def to_job_states(self, states: Iterable[str]) -> Set[JobState]:
        """Uniform states matched by a list of uniform or backend-native names."""

        matched: Set[JobState] = set()
        for name in states:
            try:
                matched.add(JobState(name.lower()))
            except ValueError:
                matched.add(self.to_job_state(name))
        return matched

    def active_backend_states(self) -> List[str]:
        return self.to_backend_states([state.value for state in JobState if not state.is_terminal])

    # ------------------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------------------

    @abstractmethod
    async def start_transfer(self, credential: str, transfer: Transfer) -> TransferInfo:
        """Submits a new transfer job."""

    @abstractmethod
    async def find_transfers(self, credential: str, filters: TransferFilters) -> TransferList:
        """Finds jobs matching `filters`, non-terminal ones unless a state filter is given."""

    @abstractmethod
    async def get_transfer_info(self, credential: str, job_id: str) -> TransferInfoExtended:
        """Returns the details of a job, including per-file status."""

    @abstractmethod
    async def cancel_transfer(self, credential: str, job_id: str) -> TransferInfoExtended:
        """Cancels a job and returns its resulting (or already terminal) state."""

    async def get_transfer_info_field(self, credential: str, job_id: str, field_name: str) -> Any:
        """
        Returns one field of the job details.

        Raises:
            TransferServiceFault: `fieldNotFound` if `field_name` is not a
                field of `TransferInfoExtended`.
        """

        if field_name in self.HIDDEN_FIELDS or field_name not in TransferInfoExtended.model_fields:
            raise TransferServiceFault(
                FaultKind.NOT_FOUND,
                "fieldNotFound",
                f"Transfer information has no field '{field_name}'",
            )
        info = await self.get_transfer_info(credential, job_id)
        return getattr(info, field_name)


def drop_empty(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}
