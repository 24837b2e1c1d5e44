"""Configuration loading and declared-version bookkeeping."""

import shutil
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from configgate.config.models import ConfigState
from configgate.errors import ConfigLoadError
from configgate.system.path_resolver import PathResolver
from configgate.versions import parse_version

logger = structlog.get_logger(__name__)


class ConfigManager:
    """Loads the host configuration and records the declared version."""

    def __init__(
        self, path_resolver: PathResolver | None = None, config_path: Path | None = None
    ):
        """Initialize ConfigManager.

        Args:
            path_resolver: Optional PathResolver instance. If None, creates a new one.
            config_path: Explicit config file path, overriding the resolver
        """
        self.path_resolver = path_resolver or PathResolver()
        self.config_path = config_path or self.path_resolver.get_config_path()

    def load(self) -> ConfigState:
        """Load and validate the configuration.

        Returns:
            ConfigState: Validated, read-only configuration snapshot

        Raises:
            ConfigLoadError: If the file is missing, unreadable or invalid
        """
        raw_config = self._read_yaml()
        try:
            return ConfigState.model_validate(raw_config)
        except ValidationError as e:
            raise ConfigLoadError(f"Invalid configuration in {self.config_path}: {e}") from e

    def set_config_version(self, version: str) -> None:
        """Record the declared config version in the configuration file.

        Args:
            version: Version the configuration is now compatible with

        Raises:
            MalformedVersionError: If the version cannot be parsed
            ConfigLoadError: If the existing file cannot be read
        """
        parse_version(version)

        raw_config = self._read_yaml() if self.config_path.exists() else {}
        raw_config["config_version"] = version

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        if self.config_path.exists():
            backup_path = self.config_path.with_suffix(".yaml.backup")
            try:
                shutil.copy2(self.config_path, backup_path)
            except PermissionError:
                logger.warning("Could not create backup", backup_path=str(backup_path))

        config_yaml = yaml.dump(raw_config, default_flow_style=False, sort_keys=False)
        self.config_path.write_text(config_yaml)
        logger.info("Declared config version updated", version=version, path=str(self.config_path))

    def _read_yaml(self) -> dict[str, Any]:
        """Read the YAML config file.

        Returns:
            dict: Raw configuration dictionary
        """
        try:
            config_text = self.config_path.read_text()
        except FileNotFoundError as e:
            raise ConfigLoadError(f"Configuration file not found: {self.config_path}") from e
        except OSError as e:
            raise ConfigLoadError(f"Could not read {self.config_path}: {e}") from e

        try:
            raw_config = yaml.safe_load(config_text) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(raw_config, dict):
            raise ConfigLoadError(
                f"Configuration in {self.config_path} must be a mapping, "
                f"got {type(raw_config).__name__}"
            )
        return raw_config
