"""Evaluation boundary that aborts on incompatible configurations."""

import structlog

from configgate.changes.catalog import build_default_registry
from configgate.changes.registry import ChangeRegistry, validate_registry
from configgate.config.models import ConfigState
from configgate.errors import IncompatibleConfigError
from configgate.gate import DEFAULT_PRODUCT_NAME, CompatibilityGate, GateFatal

logger = structlog.get_logger(__name__)


class ConfigEvaluator:
    """Runs the compatibility gate before a configuration is evaluated."""

    def __init__(
        self, registry: ChangeRegistry | None = None, product_name: str = DEFAULT_PRODUCT_NAME
    ):
        """Initialize ConfigEvaluator.

        Args:
            registry: Change registry to check against. Defaults to the shipped catalog.
            product_name: Name used in the migration notice

        Raises:
            EmptyRegistryError: If the registry has no records
            UnsortedRegistryError: If the registry is not sorted by version
            MalformedVersionError: If a registered version cannot be parsed
        """
        if registry is None:
            registry = build_default_registry()
        else:
            validate_registry(registry)
        self.registry = registry
        self.gate = CompatibilityGate(registry, product_name)

    @property
    def latest_version(self) -> str:
        return self.registry.latest_version()

    def evaluate(self, state: ConfigState) -> ConfigState:
        """Check ``state`` and return it unchanged if it is compatible.

        Raises:
            IncompatibleConfigError: If changes since the declared version apply
        """
        result = self.gate.check_config(state)
        if isinstance(result, GateFatal):
            logger.warning(
                "Configuration is incompatible with this release",
                declared_version=result.declared_version,
                latest_version=result.latest_version,
                changes=[change.version for change in result.changes],
            )
            raise IncompatibleConfigError(result)
        return state
