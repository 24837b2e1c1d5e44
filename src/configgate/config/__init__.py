"""configgate configuration package.

This package provides configuration loading with:
- A read-only pydantic snapshot of the host configuration
- YAML parsing and serialization
- Recording of the declared config version
"""

from .manager import ConfigManager
from .models import ConfigState, LoggingConfig, ServiceConfig

__all__ = [
    "ConfigManager",
    "ConfigState",
    "LoggingConfig",
    "ServiceConfig",
]
