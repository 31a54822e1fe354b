"""Dotted numeric version ordering

Versions are dot-separated sequences of non-negative integers. Missing
trailing components count as zero, so "1", "1.0" and "1.0.0" are equal.
"""

from enum import IntEnum
from typing import Tuple

from addonlib.exceptions import MalformedVersion


class Ordering(IntEnum):
    """Result of comparing two versions"""
    LESS = -1
    EQUAL = 0
    GREATER = 1

    def inverse(self) -> "Ordering":
        return Ordering(-self.value)


def parse_version(version: str) -> Tuple[int, ...]:
    """
    Parse a version string into its integer components

    Args:
        version: Version string such as "1.7.1"

    Returns:
        Tuple of integer components

    Raises:
        MalformedVersion: If any segment is empty or not a non-negative integer
    """
    if not isinstance(version, str):
        raise MalformedVersion(version, "not a string")
    if not version:
        raise MalformedVersion(version, "empty")

    parts = []
    for segment in version.split("."):
        # isdigit() alone accepts superscripts and other non-ASCII digits
        if not segment or not (segment.isascii() and segment.isdigit()):
            raise MalformedVersion(version, f"invalid segment {segment!r}")
        parts.append(int(segment))
    return tuple(parts)


def is_valid_version(version: str) -> bool:
    try:
        parse_version(version)
    except MalformedVersion:
        return False
    return True


def version_key(version: str) -> Tuple[int, ...]:
    """Sort key with trailing zeros stripped, so equal versions share a key"""
    parts = list(parse_version(version))
    while parts and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def compare(a: str, b: str) -> Ordering:
    """
    Compare two version strings component-wise

    The shorter version is padded with zeros; the first differing
    component decides.

    Raises:
        MalformedVersion: If either version cannot be parsed
    """
    parts_a = parse_version(a)
    parts_b = parse_version(b)

    length = max(len(parts_a), len(parts_b))
    parts_a = parts_a + (0,) * (length - len(parts_a))
    parts_b = parts_b + (0,) * (length - len(parts_b))

    for num_a, num_b in zip(parts_a, parts_b):
        if num_a != num_b:
            return Ordering.LESS if num_a < num_b else Ordering.GREATER
    return Ordering.EQUAL


def is_compatible(min_required: str, actual: str) -> bool:
    """True if `actual` is at least `min_required`"""
    return compare(actual, min_required) != Ordering.LESS
