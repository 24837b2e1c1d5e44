from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from configgate.changes.registry import ChangeRecord, ChangeRegistry
from configgate.config import ConfigManager, ConfigState
from configgate.system.path_resolver import PathResolver


def _always(state: ConfigState) -> bool:
    return True


def _never(state: ConfigState) -> bool:
    return False


@pytest.fixture
def path_resolver(tmp_path: Path) -> PathResolver:
    """Provide a PathResolver whose writable paths live under tmp_path.

    Only attributes are overridden, so tests never depend on the
    CONFIGGATE_* environment of the machine running them.
    """
    resolver = PathResolver()
    resolver.data_dir = tmp_path / "data"
    config_path = tmp_path / "config" / "configgate.yaml"
    resolver.get_config_path = lambda: config_path  # type: ignore[method-assign]
    return resolver


@pytest.fixture
def write_config(path_resolver: PathResolver) -> Callable[[dict[str, Any]], Path]:
    """Write a YAML config to the resolver's config path."""

    def _write(data: dict[str, Any]) -> Path:
        config_path = path_resolver.get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f)
        return config_path

    return _write


@pytest.fixture
def config_manager(path_resolver: PathResolver) -> ConfigManager:
    """Provide a ConfigManager reading from the temporary config path."""
    return ConfigManager(path_resolver)


@pytest.fixture
def scenario_registry() -> ChangeRegistry:
    """Registry with an applicable, an inapplicable and another applicable change."""
    return ChangeRegistry(
        [
            ChangeRecord(version="0.0.26", condition=_always, message="First change.\n"),
            ChangeRecord(version="0.0.30", condition=_never, message="Hidden change.\n"),
            ChangeRecord(version="0.0.41", condition=_always, message="Third change.\n"),
        ]
    )


@pytest.fixture
def empty_state() -> ConfigState:
    """Configuration with no services enabled."""
    return ConfigState()
