from __future__ import annotations

import pytest

from addonlib.exceptions import MalformedVersion
from addonlib.resolver import best_compatible_version, is_version_available
from addonlib.versioning import is_compatible

VERSIONS = {"2.1.0": "1.7.1", "2.0.0": "1.1.5", "1.0.0": "1.0"}


@pytest.mark.parametrize(
    "host, expected",
    [
        ("1.7.1", "2.1.0"),
        ("2.0", "2.1.0"),
        ("1.7.0", "2.0.0"),
        ("1.1.5", "2.0.0"),
        ("1.1", "1.0.0"),
        ("0.9", None),
    ],
)
def test_best_compatible_version(host: str, expected) -> None:
    assert best_compatible_version(VERSIONS, host) == expected


def test_best_compatible_version_never_picks_incompatible() -> None:
    versions = {"3.0": "5.0", "2.5": "1.0", "2.0": "0.5", "4.0": "2.0"}
    for host in ["0.1", "0.5", "1.0", "1.5", "2.0", "5.0", "9"]:
        best = best_compatible_version(versions, host)
        if best is None:
            assert not any(is_compatible(min_host, host) for min_host in versions.values())
        else:
            assert is_compatible(versions[best], host)


def test_best_compatible_version_empty() -> None:
    assert best_compatible_version({}, "1.0") is None


def test_equal_versions_break_ties_on_raw_string() -> None:
    assert best_compatible_version({"1.0": "1.0", "1.0.0": "1.0"}, "1.0") == "1.0.0"
    assert best_compatible_version({"1.0.0": "1.0", "1.0": "1.0"}, "1.0") == "1.0.0"
    assert best_compatible_version({"2": "1.0", "2.0": "1.0", "1.9": "1.0"}, "1.0") == "2.0"


def test_malformed_entries_are_skipped() -> None:
    versions = {"9.x": "1.0", "2.0": "bogus", "1.5": "1.0"}
    assert best_compatible_version(versions, "1.0") == "1.5"


def test_malformed_host_version_raises() -> None:
    with pytest.raises(MalformedVersion):
        best_compatible_version(VERSIONS, "one")


def test_is_version_available() -> None:
    assert is_version_available(VERSIONS, "2.0.0", "1.7.1")
    assert not is_version_available(VERSIONS, "2.1.0", "1.1.5")
    assert not is_version_available(VERSIONS, "1.9.0", "1.7.1")
    assert not is_version_available({"1.0": "x"}, "1.0", "1.7.1")
