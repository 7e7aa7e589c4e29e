"""
Transfer query schemas.

This module defines the schemas used by the transfer search endpoint and by
the destinations listing.

Schemas:
    - TransferFilters: Search criteria forwarded to the backend adapter.
    - DestinationInfo: A configured destination and the service handling it.
    - DestinationList: All configured destinations.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

DEFAULT_LIMIT = 100


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class TransferFilters(BaseModel):
    """
    Criteria for finding transfers.

    Without `state_in` only non-terminal (active) jobs are returned. To get
    completed jobs, set `state_in` together with `limit` or `time_window`.

    Example:
        >>> filters = TransferFilters(state_in="finished,failed", time_window="12")
        >>> filters.states
        ['finished', 'failed']
    """

    fields: Optional[str] = None
    """Comma separated list of fields to return for each transfer."""

    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    """Maximum number of transfers to return."""

    time_window: Optional[str] = None
    """For terminal states, limit results to `hours[:minutes]` into the past."""

    state_in: Optional[str] = None
    """Comma separated list of job states to match."""

    source_se: Optional[str] = None
    """Source storage element."""

    dest_se: Optional[str] = None
    """Destination storage element."""

    dlg_id: Optional[str] = None
    """Delegation ID of the user who started the transfer."""

    vo_name: Optional[str] = None
    """Virtual organization of the user who started the transfer."""

    user_dn: Optional[str] = None
    """Distinguished name of the user who started the transfer."""

    @property
    def field_names(self) -> List[str]:
        return split_csv(self.fields)

    @property
    def states(self) -> List[str]:
        return split_csv(self.state_in)

    def context_pairs(self) -> List[Tuple[str, str]]:
        """Returns the limit and every non-empty filter as context pairs."""

        pairs = [("limit", str(self.limit))]
        for name in ("fields", "time_window", "state_in", "source_se", "dest_se", "dlg_id", "vo_name", "user_dn"):
            value = getattr(self, name)
            if value:
                pairs.append((f"filter:{name}", value))
        return pairs


class DestinationInfo(BaseModel):
    destination: str
    service: str
    name: str


class DestinationList(BaseModel):
    """
    Configured destinations.

    Example:
        >>> DestinationList(default="dcache", destinations=[DestinationInfo(destination="dcache", service="fts", name="File Transfer Service")])
    """

    kind: str = "DestinationList"
    default: str
    destinations: List[DestinationInfo] = Field(default_factory=list)
