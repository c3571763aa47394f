# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for store backends, caps, handoff freshness and
logging. Every field can be set through an ``IMAGEFLOW_``-prefixed
environment variable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Stores ===
    durable_backend: Literal["json", "sqlite", "redis", "memory"] = "json"
    transient_backend: Literal["json", "redis", "memory"] = "json"
    store_root: Path = Path("~/.imageflow/store")
    redis_url: str = ""

    # === Handoff ===
    handoff_slot_key: str = "imageflow.image-handoff"
    handoff_max_age_seconds: int = 20 * 60

    # === Workflow library ===
    workflow_library_cap: int = 60
    workflow_max_steps: int = 5
    workflow_name_max_length: int = 60

    # === Run history ===
    run_history_cap: int = 40
    run_history_display_limit: int = 12

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator(
        "handoff_max_age_seconds",
        "workflow_library_cap",
        "workflow_max_steps",
        "workflow_name_max_length",
        "run_history_cap",
        "run_history_display_limit",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field rules."""
        errors: list[str] = []

        uses_redis = "redis" in (self.durable_backend, self.transient_backend)
        if uses_redis and not self.redis_url:
            errors.append("redis backend selected but REDIS_URL is empty")

        if self.workflow_max_steps < 2:
            errors.append("WORKFLOW_MAX_STEPS must be >= 2 (source plus one step)")

        if self.run_history_display_limit > self.run_history_cap:
            errors.append(
                "RUN_HISTORY_DISPLAY_LIMIT must be <= RUN_HISTORY_CAP"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def durable_root(self) -> Path:
        return self.store_root.expanduser() / "durable"

    @property
    def transient_root(self) -> Path:
        return self.store_root.expanduser() / "transient"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
