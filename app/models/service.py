"""
Transfer service configuration models.

A destination (logical storage name) maps to exactly one transfer service,
described by a `ServiceDescriptor`. The descriptor fully determines how the
backend adapter for the service is built: adapter kind, base URL and
request timeout.
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class ServiceDescriptor(BaseModel):
    """
    Describes a configured transfer service.

    Descriptors are immutable and hashable, two descriptors with the same
    URL, kind and timeout build the same adapter.

    Example:
        >>> fts = ServiceDescriptor(
        ...     key="fts",
        ...     name="File Transfer Service",
        ...     url="https://fts3-public.cern.ch:8446",
        ...     kind="fts",
        ...     timeout=5000
        ... )
    """

    model_config = ConfigDict(frozen=True)

    key: str
    """Service key used in the configuration (e.g. `fts`)."""

    name: str = ""
    """Human-readable name of the service."""

    url: str
    """Base URL of the transfer service."""

    kind: str
    """Adapter kind implementing the service protocol (e.g. `fts`)."""

    timeout: int = Field(default=5000, gt=0)
    """Request timeout, in milliseconds."""

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0


class TransferConfig(BaseModel):
    """
    The destination table and the services it points at.

    Example:
        >>> config = TransferConfig(
        ...     default_destination="dcache",
        ...     destinations={"dcache": "fts", "storm": "fts"},
        ...     services={"fts": fts}
        ... )
    """

    model_config = ConfigDict(frozen=True)

    default_destination: str
    """Destination used when a request does not name one."""

    destinations: Dict[str, str]
    """Destination key to service key."""

    services: Dict[str, ServiceDescriptor]
    """Service key to descriptor."""
