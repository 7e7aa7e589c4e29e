"""
Transfer gateway faults.

This module defines the fault taxonomy shared by the destination registry,
the service factory, the backend adapters and the normalizer. Every fault
carries a kind tag that decides the HTTP status of the resulting
`ActionError`, plus an error identifier and a human readable description.

Kinds:
    - CONFIGURATION: unknown destination or unusable service descriptor (400).
    - AUTH: missing or rejected credential (401).
    - PERMISSION: the broker denied the operation (403).
    - NOT_FOUND: unknown job or field (404).
    - CREDENTIALS_EXPIRED: credentials must be re-delegated (419).
    - TRANSFER_ERROR: the broker reported a failed or partial job (207).
    - TRANSPORT: timeout or connection failure (500).
    - BACKEND: any other broker error, status passed through.
"""

from enum import Enum
from typing import Any, Dict, Optional


class FaultKind(str, Enum):
    CONFIGURATION = "configuration"
    AUTH = "auth"
    PERMISSION = "permission"
    NOT_FOUND = "notFound"
    CREDENTIALS_EXPIRED = "credentialsExpired"
    TRANSFER_ERROR = "transferError"
    TRANSPORT = "transport"
    BACKEND = "backend"


class TransferServiceFault(Exception):
    """
    A failure in any stage of a transfer request.

    Args:
        kind (FaultKind): Category of the failure.
        error_id (str): Stable error identifier returned to callers
            (e.g. `invalidServiceConfig`).
        description (str, optional): Human readable explanation.
        status (int, optional): HTTP status reported by the backend, if any.
        info (dict, optional): Backend job information attached to
            partial transfer errors.

    Example:
        >>> raise TransferServiceFault(FaultKind.NOT_FOUND, "transferNotFound", "Transfer abc-123 not found")
    """

    def __init__(
        self,
        kind: FaultKind,
        error_id: str,
        description: Optional[str] = None,
        *,
        status: Optional[int] = None,
        info: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(description or error_id)
        self.kind = kind
        self.id = error_id
        self.description = description or error_id
        self.status = status
        self.info = info

    def __repr__(self) -> str:
        return f"TransferServiceFault(kind={self.kind.value}, id={self.id!r}, status={self.status})"


def invalid_service_config(description: str) -> TransferServiceFault:
    return TransferServiceFault(FaultKind.CONFIGURATION, "invalidServiceConfig", description)


def unknown_destination(destination: str) -> TransferServiceFault:
    return TransferServiceFault(
        FaultKind.CONFIGURATION,
        "unknownDestination",
        f"No transfer service is configured for destination '{destination}'",
    )


def not_authorized(description: str = "Missing or invalid bearer credential") -> TransferServiceFault:
    return TransferServiceFault(FaultKind.AUTH, "notAuthorized", description)


class ConfigurationError(RuntimeError):
    """Raised when the transfer configuration file cannot be loaded or validated."""
