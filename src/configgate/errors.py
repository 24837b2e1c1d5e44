"""Exception hierarchy for configgate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from configgate.gate import GateFatal


class ConfigGateError(Exception):
    """Base class for all configgate errors."""


class MalformedVersionError(ConfigGateError, ValueError):
    """A version string could not be parsed."""

    def __init__(self, version: str, reason: str):
        self.version = version
        self.reason = reason
        super().__init__(f"Malformed version {version!r}: {reason}")


class EmptyRegistryError(ConfigGateError):
    """The change registry holds no records."""

    def __init__(self) -> None:
        super().__init__("The change registry is empty")


class UnsortedRegistryError(ConfigGateError):
    """A registry record has a lower version than its predecessor."""

    def __init__(self, index: int, previous_version: str, version: str):
        self.index = index
        self.previous_version = previous_version
        self.version = version
        super().__init__(
            f"Change registry is not sorted: record {index} has version {version}, "
            f"which is lower than the preceding version {previous_version}"
        )


class IncompatibleConfigError(ConfigGateError):
    """The configuration is pinned to a version older than applicable changes.

    This is the routine user-facing outcome. The message is the full
    migration notice.
    """

    def __init__(self, result: GateFatal):
        self.result = result
        super().__init__(result.message)


class ConfigLoadError(ConfigGateError):
    """The configuration file could not be read or validated."""
