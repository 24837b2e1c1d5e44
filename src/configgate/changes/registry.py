"""Registry of backwards-incompatible changes."""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from configgate.config.models import ConfigState
from configgate.errors import EmptyRegistryError, UnsortedRegistryError
from configgate.versions import VersionOrder, compare_versions, parse_version

Condition = Callable[[ConfigState], bool]
MessageBuilder = Callable[[ConfigState], str]


def always(state: ConfigState) -> bool:
    """Condition for changes that apply to every deployment."""
    return True


@dataclass(frozen=True)
class ChangeRecord:
    """A breaking change introduced in ``version``.

    ``condition`` decides whether the change is relevant to a deployment and
    ``message`` holds the migration notice, either as text or as a builder
    rendering it from the configuration. Both are evaluated at check time.
    """

    version: str
    message: str | MessageBuilder
    condition: Condition = always

    def applies(self, state: ConfigState) -> bool:
        """Check whether this change is relevant for ``state``."""
        return bool(self.condition(state))

    def render(self, state: ConfigState) -> str:
        """Render the migration notice for ``state``."""
        if callable(self.message):
            return self.message(state)
        return self.message


class ChangeRegistry:
    """Ordered, immutable catalog of change records.

    Records must be registered in non-decreasing version order; the
    registry never re-sorts. Use ``validate_registry`` to check this.
    """

    def __init__(self, records: Iterable[ChangeRecord] = ()):
        self._records: tuple[ChangeRecord, ...] = tuple(records)

    @classmethod
    def validated(cls, records: Iterable[ChangeRecord]) -> "ChangeRegistry":
        """Build a registry and run the validation pass on it."""
        registry = cls(records)
        validate_registry(registry)
        return registry

    def all_changes(self) -> Sequence[ChangeRecord]:
        """Get all records in registration order."""
        return self._records

    def latest_version(self) -> str:
        """Get the highest version known to the registry.

        Raises:
            EmptyRegistryError: If no records are registered
        """
        if not self._records:
            raise EmptyRegistryError()
        return self._records[-1].version

    def __len__(self) -> int:
        return len(self._records)


def validate_registry(registry: ChangeRegistry) -> None:
    """Check that the registry is non-empty and sorted by version.

    Raises:
        EmptyRegistryError: If the registry has no records
        MalformedVersionError: If a record version cannot be parsed
        UnsortedRegistryError: If a record is lower than its predecessor
    """
    records = registry.all_changes()
    if not records:
        raise EmptyRegistryError()

    # A lone record is never compared below
    parse_version(records[0].version)

    for index in range(1, len(records)):
        previous, current = records[index - 1], records[index]
        if compare_versions(previous.version, current.version) is VersionOrder.GREATER:
            raise UnsortedRegistryError(index, previous.version, current.version)
