from __future__ import annotations

import json

import pytest

from addonlib.exceptions import MalformedCatalog
from addonlib.models import Catalog, DesiredEntry, DesiredState, is_valid_addon_name


def test_catalog_from_json() -> None:
    payload = json.dumps({
        "baseURL": "https://github.com/Example/",
        "extensions": {
            "Commands": {"description": "Adds commands", "versions": {"2.1.0": "1.7.1", "2.0.0": "1.1.5"}},
        },
    })
    catalog = Catalog.from_json(payload)

    assert catalog.base_url == "https://github.com/Example/"
    assert catalog.extensions["Commands"].description == "Adds commands"
    assert catalog.extensions["Commands"].versions == {"2.1.0": "1.7.1", "2.0.0": "1.1.5"}
    assert catalog.malformed == []
    assert catalog.skipped_versions == {}


def test_catalog_accepts_addons_key() -> None:
    catalog = Catalog.from_document({"baseURL": "https://x.example", "addons": {"A": {"versions": {"1.0": "1.0"}}}})
    assert list(catalog.extensions) == ["A"]
    assert catalog.extensions["A"].description is None


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"extensions": {}},
        {"baseURL": "", "extensions": {}},
        {"baseURL": 42, "extensions": {}},
        {"baseURL": "https://x.example"},
        {"baseURL": "https://x.example", "extensions": ["A"]},
    ],
)
def test_catalog_structure_errors(document) -> None:
    with pytest.raises(MalformedCatalog):
        Catalog.from_document(document)


def test_catalog_invalid_json() -> None:
    with pytest.raises(MalformedCatalog):
        Catalog.from_json(b"<html>not json</html>")


def test_malformed_extension_records_are_set_aside() -> None:
    catalog = Catalog.from_document({
        "baseURL": "https://x.example",
        "extensions": {
            "Good": {"versions": {"1.0": "1.0"}},
            "NoDict": "oops",
            "BadVersions": {"versions": ["1.0"]},
            "../escape": {"versions": {"1.0": "1.0"}},
        },
    })

    assert list(catalog.extensions) == ["Good"]
    assert sorted(catalog.malformed) == ["../escape", "BadVersions", "NoDict"]


def test_malformed_version_entries_are_skipped() -> None:
    catalog = Catalog.from_document({
        "baseURL": "https://x.example",
        "extensions": {"A": {"versions": {"1.0": "1.0", "2.0-beta": "1.0", "3.0": "latest"}}},
    })

    assert catalog.extensions["A"].versions == {"1.0": "1.0"}
    assert sorted(catalog.skipped_versions["A"]) == ["2.0-beta", "3.0"]


def test_catalog_serialization_omits_diagnostics() -> None:
    catalog = Catalog.from_document({"baseURL": "https://x.example", "extensions": {"bad": 1}})
    dumped = catalog.model_dump(by_alias=True)
    assert dumped == {"baseURL": "https://x.example", "extensions": {}}


@pytest.mark.parametrize(
    "base_url",
    ["https://github.com/Example/", "https://github.com/Example"],
)
def test_download_url(base_url: str) -> None:
    catalog = Catalog(base_url=base_url)
    assert catalog.download_url("Commands", "2.1.0", "Commands-2.1.0.jar") == (
        "https://github.com/Example/Commands/releases/download/2.1.0/Commands-2.1.0.jar"
    )


def test_desired_state_defaults_for_missing_fields() -> None:
    state = DesiredState.model_validate({"addons": {"A": {}, "B": {"enabled": True, "extra": 1}}})

    assert state.addons["A"] == DesiredEntry(enabled=False, installed_version=None, description=None)
    assert state.addons["B"].enabled is True
    assert state.settings.auto_upgrade is False


def test_desired_state_null_sections() -> None:
    state = DesiredState.model_validate({"addons": None, "settings": None})
    assert state.addons == {}
    assert state.settings.auto_upgrade is False


def test_desired_state_ignores_unsafe_names() -> None:
    state = DesiredState.model_validate({
        "addons": {
            "../evil": {"enabled": True, "installedVersion": "1.0"},
            "sub/dir": {"enabled": True},
            "Commands": {"enabled": True},
        }
    })

    assert list(state.addons) == ["Commands"]


def test_desired_state_document_uses_file_field_names() -> None:
    state = DesiredState.model_validate({
        "addons": {
            "A": {"enabled": True, "installedVersion": "1.0", "description": "first"},
            "B": {"enabled": False},
        },
        "settings": {"autoUpgrade": True},
    })

    assert state.to_document() == {
        "addons": {
            "A": {"enabled": True, "installedVersion": "1.0", "description": "first"},
            "B": {"enabled": False},
        },
        "settings": {"autoUpgrade": True},
    }


@pytest.mark.parametrize(
    "name, valid",
    [
        ("Commands", True),
        ("my-addon_2.x", True),
        ("", False),
        (".hidden", False),
        ("a/b", False),
        ("a..b", False),
        ("with space", False),
    ],
)
def test_is_valid_addon_name(name: str, valid: bool) -> None:
    assert is_valid_addon_name(name) is valid
