import os
from pathlib import Path


class PathResolver:
    """Central authority for file path resolution in configgate.

    Uses environment variables for configuration with sensible defaults.
    """

    def __init__(self) -> None:
        """Initialize PathResolver with environment-based configuration."""
        self.data_dir = Path(os.getenv("CONFIGGATE_DATA", "/var/lib/configgate"))

    def get_config_path(self) -> Path:
        """Get the path to the main configuration file.

        Checks CONFIGGATE_CONFIG environment variable first, then falls back to default.
        """
        config_path = os.getenv("CONFIGGATE_CONFIG")
        if config_path:
            return Path(config_path)

        # Default: runtime config in data directory
        return self.data_dir / "config" / "configgate.yaml"

    def get_data_dir(self) -> Path:
        """Get the data directory path."""
        return self.data_dir
