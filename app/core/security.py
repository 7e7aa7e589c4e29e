"""
Credential handling.

Every transfer endpoint requires a bearer credential. The gateway does not
validate the token itself: it checks the header shape and passes the
credential through to the backend transfer service, which authenticates
the caller.
"""

from typing import Optional

from fastapi import Header

from app.core.exceptions import not_authorized


async def get_authorization(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Returns the raw `Authorization` header, if any."""

    return authorization


def require_bearer(authorization: Optional[str]) -> str:
    """
    Checks that `authorization` is a bearer credential.

    Raises:
        TransferServiceFault: `notAuthorized` if the header is missing or
            not of the form `Bearer <token>`.

    Returns:
        str: The header value, to be forwarded to the backend.
    """

    if not authorization:
        raise not_authorized("Missing Authorization header")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise not_authorized("Authorization header must carry a bearer token")

    return f"Bearer {token.strip()}"
