"""Configuration models for configgate.

The models form a read-only snapshot of the host configuration tree. Change
conditions and message builders receive a ``ConfigState`` and only read it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SECRETS_DIR = "/etc/nix-bitcoin-secrets"


class LoggingConfig(BaseModel):
    """Structlog-based logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    json_logs: bool | None = None  # None = auto-detect based on environment
    include_caller: bool = False  # Include file:line info (useful for debugging)
    extra_fields: dict[str, str] = Field(default_factory=lambda: {"service": "configgate"})


class ServiceConfig(BaseModel):
    """Settings of a single service in the host configuration.

    Options beyond the common ones are kept as extra fields and read with
    ``option()``.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    enable: bool = False
    data_dir: str | None = None
    user: str | None = None
    group: str | None = None

    def option(self, key: str, default: Any = None) -> Any:
        """Read a service-specific option."""
        return (self.model_extra or {}).get(key, default)


class ConfigState(BaseModel):
    """Read-only view of the configuration a gate check runs against."""

    model_config = ConfigDict(frozen=True)

    # Version the operator declares their config compatible with
    config_version: str | None = None

    secrets_dir: str = DEFAULT_SECRETS_DIR
    secure_node_preset_enabled: bool = False
    services: dict[str, ServiceConfig] = Field(default_factory=dict)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("config_version", mode="before")
    @classmethod
    def coerce_config_version(cls, v: Any) -> Any:
        """Accept unquoted YAML numbers such as ``0.1`` as version strings."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    def service(self, name: str) -> ServiceConfig:
        """Get a service with its defaults resolved.

        Unconfigured services are returned disabled. ``data_dir`` defaults to
        ``/var/lib/<name>`` and ``user``/``group`` default to the service name.
        """
        configured = self.services.get(name, ServiceConfig())
        return configured.model_copy(
            update={
                "data_dir": configured.data_dir or f"/var/lib/{name}",
                "user": configured.user or name,
                "group": configured.group or configured.user or name,
            }
        )

    def is_enabled(self, name: str) -> bool:
        """Check whether a service is enabled."""
        return self.service(name).enable
