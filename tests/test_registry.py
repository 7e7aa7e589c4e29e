from pathlib import Path

import pytest

from app.core.config import load_transfer_config, parse_transfer_config
from app.core.exceptions import ConfigurationError, FaultKind, TransferServiceFault
from app.services.registry import DestinationRegistry


def test_resolve_returns_configured_descriptor(registry, fts_descriptor):
    assert registry.resolve("dcache") == fts_descriptor
    assert registry.resolve("storm") is registry.resolve("dcache")


def test_resolve_uses_default_destination(registry, fts_descriptor):
    assert registry.default_destination == "dcache"
    assert registry.resolve(None) == fts_descriptor
    assert registry.resolve("") == fts_descriptor


@pytest.mark.parametrize("key", ["unknownkey", "DCACHE", "dcache ", "dc"])
def test_resolve_is_exact_and_case_sensitive(registry, key):
    with pytest.raises(TransferServiceFault) as exc_info:
        registry.resolve(key)

    assert exc_info.value.kind == FaultKind.CONFIGURATION
    assert exc_info.value.id == "unknownDestination"
    assert key in exc_info.value.description


def test_registry_rejects_unconfigured_default(fts_descriptor):
    with pytest.raises(ValueError):
        DestinationRegistry({"dcache": fts_descriptor}, "storm")


def test_parse_config_accepts_full_document():
    config = parse_transfer_config({
        "transfer": {
            "default-destination": "storm",
            "destinations": {"dcache": "fts", "storm": "fts"},
            "services": {
                "fts": {
                    "name": "File Transfer Service",
                    "url": "https://fts3-public.cern.ch:8446",
                    "kind": "fts",
                    "timeout": "3000",
                }
            },
        }
    })

    assert config.default_destination == "storm"
    assert config.destinations == {"dcache": "fts", "storm": "fts"}
    assert config.services["fts"].timeout == 3000
    assert config.services["fts"].timeout_seconds == 3.0


def test_parse_config_accepts_class_key_and_defaults_to_first_destination():
    config = parse_transfer_config({
        "destinations": {"dcache": "fts"},
        "services": {"fts": {"url": "https://fts.example.org", "class": "fts"}},
    })

    assert config.default_destination == "dcache"
    assert config.services["fts"].kind == "fts"
    assert config.services["fts"].name == "fts"


@pytest.mark.parametrize(
    "payload, message",
    [
        ([], "mapping"),
        ({"services": {"fts": {"url": "u", "kind": "fts"}}}, "destinations"),
        ({"destinations": {"dcache": "fts"}}, "services"),
        ({"destinations": {"dcache": "eudat"}, "services": {"fts": {"url": "u", "kind": "fts"}}}, "undefined service"),
        (
            {"default-destination": "storm", "destinations": {"dcache": "fts"}, "services": {"fts": {"url": "u", "kind": "fts"}}},
            "Default destination",
        ),
        ({"destinations": {"dcache": "fts"}, "services": {"fts": {"url": "u", "kind": "fts", "timeout": -1}}}, "Invalid service"),
    ],
)
def test_parse_config_rejects_invalid_tables(payload, message):
    with pytest.raises(ConfigurationError, match=message):
        parse_transfer_config(payload)


def test_load_config_from_yaml(tmp_path: Path):
    path = tmp_path / "transfer.yaml"
    path.write_text(
        "transfer:\n"
        "  default-destination: dcache\n"
        "  destinations:\n"
        "    dcache: fts\n"
        "  services:\n"
        "    fts:\n"
        "      name: File Transfer Service\n"
        "      url: https://fts3-public.cern.ch:8446\n"
        "      kind: fts\n"
        "      timeout: 5000\n",
        encoding="utf-8",
    )

    registry = DestinationRegistry.from_config(load_transfer_config(path))

    assert registry.resolve("dcache").url == "https://fts3-public.cern.ch:8446"


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_transfer_config(tmp_path / "missing.yaml")


def test_load_config_invalid_yaml(tmp_path: Path):
    path = tmp_path / "transfer.yaml"
    path.write_text("transfer: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_transfer_config(path)


def test_sample_configuration_is_valid():
    config = load_transfer_config(Path(__file__).resolve().parents[1] / "config" / "transfer.yaml")

    assert config.destinations["dcache"] == "fts"
    assert config.services["fts"].kind == "fts"
