"""Ordering of dotted version strings.

Versions are split on ``.`` and compared component by component. Two
components that are both integers compare numerically, anything else
compares as text. When one version is a prefix of the other, the shorter
one is lower, so ``1.2 < 1.2.0``.
"""

import re
from enum import IntEnum
from functools import lru_cache

from configgate.errors import MalformedVersionError

_VERSION_CHARS = re.compile(r"[A-Za-z0-9.]+")

Component = int | str


class VersionOrder(IntEnum):
    """Result of comparing two versions."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


@lru_cache(maxsize=256)
def parse_version(version: str) -> tuple[Component, ...]:
    """Split a version string into comparable components.

    Args:
        version: Version string such as "0.0.41"

    Returns:
        tuple: Components, integers where the component is all digits

    Raises:
        MalformedVersionError: If the string is not a valid version
    """
    if not isinstance(version, str) or not version:
        raise MalformedVersionError(str(version), "version must be a non-empty string")
    if not _VERSION_CHARS.fullmatch(version):
        raise MalformedVersionError(version, "only letters, digits and dots are allowed")

    parts = version.split(".")
    if any(part == "" for part in parts):
        raise MalformedVersionError(version, "empty version component")
    if not parts[0].isdigit():
        raise MalformedVersionError(version, "version must start with a number")

    return tuple(int(part) if part.isdigit() else part for part in parts)


def _compare_components(left: Component, right: Component) -> int:
    if isinstance(left, int) and isinstance(right, int):
        return (left > right) - (left < right)
    left_text, right_text = str(left), str(right)
    return (left_text > right_text) - (left_text < right_text)


def compare_versions(a: str, b: str) -> VersionOrder:
    """Compare two version strings.

    Raises:
        MalformedVersionError: If either version is malformed
    """
    left = parse_version(a)
    right = parse_version(b)

    for left_part, right_part in zip(left, right):
        result = _compare_components(left_part, right_part)
        if result:
            return VersionOrder(result)

    # Equal prefix: the longer version wins
    return VersionOrder((len(left) > len(right)) - (len(left) < len(right)))


def version_newer(a: str, b: str) -> bool:
    """Return True if version ``a`` is strictly newer than ``b``."""
    return compare_versions(a, b) is VersionOrder.GREATER
