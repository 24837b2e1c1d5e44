"""Compatibility gate for declared config versions.

Given the change registry and the version an operator declared their config
compatible with, the gate finds every registered change that is newer than
the declared version and applies to the configuration. If there are any,
the result is a fatal migration notice listing them in registry order.

The gate never raises for the routine fatal outcome; it returns a
``GateFatal`` and leaves aborting to the caller. Registry defects such as
``MalformedVersionError`` propagate unchanged.
"""

from dataclasses import dataclass, field

import structlog

from configgate.changes.registry import ChangeRecord, ChangeRegistry
from configgate.config.models import ConfigState
from configgate.versions import VersionOrder, compare_versions

logger = structlog.get_logger(__name__)

DEFAULT_PRODUCT_NAME = "configgate"


@dataclass(frozen=True)
class GateResult:
    """Outcome of a gate check."""

    @property
    def passed(self) -> bool:
        return isinstance(self, GatePass)


@dataclass(frozen=True)
class GatePass(GateResult):
    """The configuration may be evaluated."""


@dataclass(frozen=True)
class GateFatal(GateResult):
    """The configuration must be migrated before evaluation."""

    message: str
    declared_version: str
    latest_version: str
    changes: tuple[ChangeRecord, ...] = field(default_factory=tuple)


class CompatibilityGate:
    """Stateless check of a declared version against the change registry."""

    def __init__(self, registry: ChangeRegistry, product_name: str = DEFAULT_PRODUCT_NAME):
        self.registry = registry
        self.product_name = product_name

    def check(self, declared_version: str | None, state: ConfigState | None = None) -> GateResult:
        """Check a declared version against the registry.

        Args:
            declared_version: Version the config is pinned to, or None if unset
            state: Configuration snapshot passed to conditions and message builders

        Returns:
            GateResult: GatePass, or GateFatal with the aggregated notice

        Raises:
            MalformedVersionError: If the declared or a registered version is malformed
            EmptyRegistryError: If the registry has no records
        """
        # Unset versions are treated as fresh deployments with nothing to migrate
        if declared_version is None:
            logger.debug("No config version declared, skipping compatibility check")
            return GatePass()

        state = state if state is not None else ConfigState()
        latest = self.registry.latest_version()
        if compare_versions(declared_version, latest) is not VersionOrder.LESS:
            logger.debug("Config version is up to date", declared=declared_version, latest=latest)
            return GatePass()

        incompatible = self.incompatible_changes(declared_version, state)
        if not incompatible:
            logger.debug(
                "No applicable changes since declared version",
                declared=declared_version,
                latest=latest,
            )
            return GatePass()

        return GateFatal(
            message=self._format_message(declared_version, latest, incompatible, state),
            declared_version=declared_version,
            latest_version=latest,
            changes=incompatible,
        )

    def check_config(self, state: ConfigState) -> GateResult:
        """Check a configuration against its own declared ``config_version``."""
        return self.check(state.config_version, state)

    def incompatible_changes(
        self, declared_version: str, state: ConfigState
    ) -> tuple[ChangeRecord, ...]:
        """Get changes newer than ``declared_version`` that apply to ``state``.

        Records keep their registry order. Conditions are evaluated once
        per record, and only for records newer than the declared version.
        """
        return tuple(
            change
            for change in self.registry.all_changes()
            if compare_versions(change.version, declared_version) is VersionOrder.GREATER
            and change.applies(state)
        )

    def _format_message(
        self,
        declared_version: str,
        latest_version: str,
        changes: tuple[ChangeRecord, ...],
        state: ConfigState,
    ) -> str:
        entries = "\n".join(self._format_entry(change, state) for change in changes)
        return (
            "\n"
            f"This version of {self.product_name} contains the following changes\n"
            f"that are incompatible with your config (version {declared_version}):\n"
            "\n"
            f"{entries}\n"
            f'After addressing the above changes, set config_version: "{latest_version}"\n'
            "in your configuration.\n"
        )

    @staticmethod
    def _format_entry(change: ChangeRecord, state: ConfigState) -> str:
        body = change.render(state).rstrip("\n")
        return f"- {body}\n(This change was introduced in version {change.version})\n"
