"""Selection of the best installable extension version for a host version"""

import logging
from typing import Mapping, Optional, Tuple

from addonlib.exceptions import MalformedVersion
from addonlib.versioning import is_compatible, version_key

logger = logging.getLogger(__name__)


def _candidate_key(version: str) -> Tuple[Tuple[int, ...], str]:
    # Versions comparing EQUAL ("1.0" vs "1.0.0") fall back to the raw string
    return version_key(version), version


def best_compatible_version(
    versions: Mapping[str, str],
    host_version: str
) -> Optional[str]:
    """
    Pick the greatest extension version the host can run

    Args:
        versions: Extension version -> minimum host version
        host_version: Current host version

    Returns:
        Greatest compatible extension version, or None if none is compatible.
        Entries with an unparseable version on either side are skipped.

    Raises:
        MalformedVersion: If host_version itself cannot be parsed
    """
    version_key(host_version)

    best = None
    best_key = None
    for ext_version, min_host in versions.items():
        try:
            if not is_compatible(min_host, host_version):
                continue
            key = _candidate_key(ext_version)
        except MalformedVersion as e:
            logger.debug(f"Skipping version entry {ext_version!r}: {e}")
            continue

        if best_key is None or key > best_key:
            best = ext_version
            best_key = key

    return best


def is_version_available(
    versions: Mapping[str, str],
    version: str,
    host_version: str
) -> bool:
    """True if `version` is listed and its host requirement is met"""
    min_host = versions.get(version)
    if min_host is None:
        return False
    try:
        return is_compatible(min_host, host_version)
    except MalformedVersion:
        return False
