"""
Error schema.

`ActionError` is the uniform error envelope returned by every transfer
endpoint, whichever backend service handled the request.
"""

from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field


class ActionError(BaseModel):
    """
    Uniform error returned to callers.

    `details` keeps the context pairs in the order they were supplied by the
    failing operation.

    Example:
        >>> error = ActionError(
        ...     id="unknownDestination",
        ...     status=400,
        ...     description="No transfer service is configured for destination 'unknownkey'",
        ...     details={"destination": "unknownkey"}
        ... )
    """

    id: str
    """Stable error identifier."""

    status: int
    """HTTP status code of the response."""

    description: str
    """Human-readable description of the error."""

    details: Dict[str, Any] = Field(default_factory=dict)
    """Context of the failure (destination, jobId, active filters...)."""

    def context(self) -> List[Tuple[str, Any]]:
        return list(self.details.items())
