"""
Service helpers.

Utility functions shared by the service factory and the backend adapters.

Responsibilities:
    - Validate the base URL of a configured transfer service.
    - Compose request paths below a service base URL.
    - Parse the loosely typed values transfer brokers report.
"""

from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import httpx


def validate_base_url(url: str) -> str:
    """
    Checks that `url` is an absolute http(s) URL with a host.

    Args:
        url (str): Base URL from a service descriptor.

    Raises:
        ValueError: If the URL is malformed.

    Returns:
        str: The URL without trailing slash.
    """

    if not url:
        raise ValueError("Service URL is empty")
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ValueError(f"Service URL '{url}' is malformed: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(f"Service URL '{url}' must be an absolute http(s) URL")
    return url.rstrip("/")


def job_path(job_id: str, *parts: str) -> str:
    """
    Builds `/jobs/{job_id}[/part...]` with the job ID escaped.

    Example:
        >>> job_path("abc-123", "files")
        '/jobs/abc-123/files'
    """

    path = f"/jobs/{quote(job_id, safe='')}"
    for part in parts:
        path = f"{path}/{quote(part, safe='')}"
    return path


def as_bool(value: Any) -> Optional[bool]:
    """Reads booleans reported as bool, `Y`/`N` or `true`/`false`."""

    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("y", "yes", "true", "1"):
        return True
    if text in ("n", "no", "false", "0"):
        return False
    return None


def as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def as_datetime(value: Any) -> Optional[datetime]:
    """Parses ISO 8601 timestamps, returns None for anything else."""

    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None
