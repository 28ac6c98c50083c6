"""Coordination settings.

Timing constants of the discovery protocol plus logging and registry knobs.
Override via environment variables (TABSYNC_DISCOVERY_TIMEOUT_MS=150) or a
.env file.
"""

from typing import Optional, TYPE_CHECKING

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from tabsync_protocols.protocols import LoggerProtocol


DEFAULT_DISCOVERY_TIMEOUT_MS = 200
DEFAULT_COOLDOWN_MS = 300
DEFAULT_REGISTRY_MAX_AGE_SECONDS = 60 * 60
DEFAULT_POST_OPEN_DELAY_MS = 500


class CoordinationSettings(BaseSettings):
    """Runtime settings for discovery, hand-off and logging."""

    discovery_timeout_ms: int = Field(default=DEFAULT_DISCOVERY_TIMEOUT_MS, gt=0)
    """How long a Coordinator waits for a PONG before giving up."""

    cooldown_ms: int = Field(default=DEFAULT_COOLDOWN_MS, gt=0)
    """Reentrancy lock lifetime, measured from invocation start."""

    post_open_delay_ms: int = Field(default=DEFAULT_POST_OPEN_DELAY_MS, ge=0)
    """Delay before re-sending a COMMAND to a view opened for a deliver-after-open kind."""

    echo_to_sender: bool = False
    """Deliver a context's own publishes back to its own subscriptions."""

    registry_max_age_seconds: int = Field(default=DEFAULT_REGISTRY_MAX_AGE_SECONDS, gt=0)
    """Registry entries older than this are pruned."""

    log_level: str = "INFO"
    json_logs: bool = True

    model_config = SettingsConfigDict(
        env_prefix="TABSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def discovery_timeout(self) -> float:
        """Discovery timeout in seconds."""
        return self.discovery_timeout_ms / 1000.0

    @property
    def cooldown(self) -> float:
        """Cooldown in seconds."""
        return self.cooldown_ms / 1000.0

    @property
    def post_open_delay(self) -> float:
        return self.post_open_delay_ms / 1000.0

    @model_validator(mode="after")
    def validate_timing(self) -> "CoordinationSettings":
        """The lock must outlive the discovery window it protects."""
        if self.cooldown_ms < self.discovery_timeout_ms:
            raise ValueError(
                f"cooldown_ms ({self.cooldown_ms}) must be >= "
                f"discovery_timeout_ms ({self.discovery_timeout_ms})"
            )
        return self

    def log_status(self, logger: "LoggerProtocol") -> None:
        """Log current settings using structured logging."""
        logger.info(
            "coordination_settings",
            discovery_timeout_ms=self.discovery_timeout_ms,
            cooldown_ms=self.cooldown_ms,
            post_open_delay_ms=self.post_open_delay_ms,
            echo_to_sender=self.echo_to_sender,
            registry_max_age_seconds=self.registry_max_age_seconds,
        )


_settings: Optional[CoordinationSettings] = None


def get_settings() -> CoordinationSettings:
    """Get the global settings instance, creating it lazily.

    Prefer passing settings explicitly to components for testability.
    """
    global _settings
    if _settings is None:
        _settings = CoordinationSettings()
    return _settings


def set_settings(settings: CoordinationSettings) -> None:
    """Set the global settings instance (bootstrap time)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Forget the global settings; the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


__all__ = [
    "DEFAULT_DISCOVERY_TIMEOUT_MS",
    "DEFAULT_COOLDOWN_MS",
    "DEFAULT_REGISTRY_MAX_AGE_SECONDS",
    "DEFAULT_POST_OPEN_DELAY_MS",
    "CoordinationSettings",
    "get_settings",
    "set_settings",
    "reset_settings",
]
