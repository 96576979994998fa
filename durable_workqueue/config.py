"""Configuration system for the durable work queue."""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Durable Work Queue Configuration."""

    # Storage
    store_backend: Literal["sqlite", "directory", "memory"] = Field(
        default="sqlite",
        description="Backing store implementation for queues",
    )
    store_path: Path = Field(
        default=Path("./.workqueue"),
        description="Directory holding queue databases / queue directories",
    )
    store_capacity: int = Field(
        default=0,
        ge=0,
        description="Hard entry limit of each backing store (0 = unbounded)",
    )

    # Ownership lock
    filelock_enabled: bool = Field(
        default=True,
        description="Take a cross-process ownership lock on durable stores",
    )
    filelock_timeout: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait for the ownership lock",
    )

    # Work Queue
    max_events: int = Field(
        default=1000,
        description="Queue length at which producers are held back (<= 0 disables)",
    )
    max_submit_wait_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="How long submit() waits on a full queue",
    )
    retry_interval_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Delay before re-attempting an item that asked for RETRY",
    )
    retry_discard_age_seconds: float = Field(
        default=3600.0,
        ge=0.0,
        description="Discard queued items older than this without processing",
    )
    max_shutdown_wait_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="How long close() drains the backlog before giving up",
    )

    # Transaction Sizing
    transaction_duration_goal_seconds: float = Field(
        default=0.1,
        gt=0.0,
        description="Target duration of one batch commit",
    )
    transaction_min_size: int = Field(
        default=50,
        ge=1,
        description="Smallest recommended batch size",
    )
    transaction_max_size: int = Field(
        default=5000,
        ge=1,
        description="Largest recommended batch size",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit structured JSON log lines",
    )

    model_config = {
        "env_prefix": "WORKQUEUE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Settings singleton with dependency injection support
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings instance (lazy-loaded singleton).

    Returns:
        The Settings instance.

    Example:
        from durable_workqueue.config import get_settings
        settings = get_settings()
        print(settings.store_path)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override the settings instance (for testing).

    Args:
        new_settings: The new Settings instance to use.
    """
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to None (forces reload on next get_settings call)."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so ``settings.x`` always reads the current instance."""

    def __getattr__(self, name: str) -> Any:
        return getattr(get_settings(), name)

    def __repr__(self) -> str:
        return repr(get_settings())


settings = _SettingsProxy()
