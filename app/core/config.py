"""
Gateway configuration.

Settings are read from environment variables (a `.env` file is honoured)
and from a YAML mapping table describing destinations and the transfer
services that handle them.

Environment variables:
    - TRANSFER_CONFIG: Path of the YAML mapping table (default: config/transfer.yaml)
    - CORS_ORIGINS: Comma separated list of allowed origins (default: *)

Mapping table format:
    transfer:
      default-destination: dcache
      destinations:
        dcache: fts
      services:
        fts:
          name: File Transfer Service
          url: https://fts3-public.cern.ch:8446
          kind: fts
          timeout: 5000

The table is loaded once per process. Reloading it requires a restart.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from app.core.exceptions import ConfigurationError
from app.models.service import ServiceDescriptor, TransferConfig

load_dotenv()

# ------------------------------------------------------------------------------
# Environment
# ------------------------------------------------------------------------------

DEFAULT_CONFIG_PATH = "config/transfer.yaml"


def get_config_path() -> Path:
    return Path(os.getenv("TRANSFER_CONFIG", DEFAULT_CONFIG_PATH))


def get_cors_origins() -> List[str]:
    origins = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]

# ------------------------------------------------------------------------------
# Mapping table
# ------------------------------------------------------------------------------

def parse_transfer_config(payload: Any) -> TransferConfig:
    """
    Builds a `TransferConfig` from a parsed YAML document.

    Accepts either the full document (with a top-level `transfer` section)
    or the section itself. Each service may name its adapter with `kind` or,
    as in older configuration tables, with `class`.

    Args:
        payload (Any): Parsed YAML content.

    Raises:
        ConfigurationError: If the document is not a valid mapping table, a
            destination points at an undefined service, or the default
            destination is not configured.

    Returns:
        TransferConfig: The validated configuration.
    """

    if isinstance(payload, dict) and "transfer" in payload:
        payload = payload["transfer"]
    if not isinstance(payload, dict):
        raise ConfigurationError("Transfer configuration must be a mapping")

    destinations = payload.get("destinations")
    services = payload.get("services")
    if not isinstance(destinations, dict) or not destinations:
        raise ConfigurationError("Transfer configuration must define 'destinations'")
    if not isinstance(services, dict) or not services:
        raise ConfigurationError("Transfer configuration must define 'services'")

    descriptors: Dict[str, ServiceDescriptor] = {}
    for key, entry in services.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Service '{key}' must be a mapping")
        try:
            descriptors[str(key)] = ServiceDescriptor(
                key=str(key),
                name=str(entry.get("name", key)),
                url=str(entry.get("url", "")),
                kind=str(entry.get("kind", entry.get("class", ""))),
                timeout=entry.get("timeout", 5000),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid service '{key}': {e}") from e

    mapping: Dict[str, str] = {}
    for destination, service_key in destinations.items():
        if str(service_key) not in descriptors:
            raise ConfigurationError(f"Destination '{destination}' points at undefined service '{service_key}'")
        mapping[str(destination)] = str(service_key)

    default_destination = str(payload.get("default-destination", payload.get("default_destination", next(iter(mapping)))))
    if default_destination not in mapping:
        raise ConfigurationError(f"Default destination '{default_destination}' is not configured")

    return TransferConfig(
        default_destination=default_destination,
        destinations=mapping,
        services=descriptors,
    )


def load_transfer_config(path: Path) -> TransferConfig:
    """
    Reads and validates the mapping table at `path`.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid.
    """

    if not path.is_file():
        raise ConfigurationError(f"Transfer configuration '{path}' does not exist")

    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse '{path}': {e}") from e

    return parse_transfer_config(payload)


@lru_cache(maxsize=1)
def get_transfer_config() -> TransferConfig:
    """Returns the process-wide configuration, loading it on first use."""

    return load_transfer_config(get_config_path())
