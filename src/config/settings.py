# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for retry limits, event classification markers,
notification routing and logging. Cross-field rules are enforced in
``validate_config_consistency``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === QA RETRY / ESCALATION ===
    max_auto_attempts: int = 5
    max_total_attempts_per_run: int = 20
    auto_retry_enabled: bool = True
    retry_base_delay_s: float = 2.0
    retry_max_delay_s: float = 30.0
    retry_min_confidence: float = 0.3
    retry_block_severities: str = "critical"
    retry_block_suggestions: str = "manual_review"

    # === Event stream ===
    terminal_event_markers: str = "complete,fail,error"
    complete_on_full_progress: bool = True

    # === Notifications ===
    project_route_template: str = "/projects/{project_id}"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.max_auto_attempts < 1:
            errors.append("MAX_AUTO_ATTEMPTS must be >= 1")

        if self.max_total_attempts_per_run < self.max_auto_attempts:
            errors.append(
                "MAX_TOTAL_ATTEMPTS_PER_RUN must be >= MAX_AUTO_ATTEMPTS"
            )

        if self.retry_max_delay_s < self.retry_base_delay_s:
            errors.append("RETRY_MAX_DELAY_S must be >= RETRY_BASE_DELAY_S")

        if not 0.0 <= self.retry_min_confidence <= 1.0:
            errors.append("RETRY_MIN_CONFIDENCE must be within [0, 1]")

        if "{project_id}" not in self.project_route_template:
            errors.append("PROJECT_ROUTE_TEMPLATE must contain {project_id}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def retry_block_severities_set(self) -> frozenset[str]:
        """Parse comma-separated severities that block auto-retry."""
        return frozenset(
            s.strip().lower() for s in self.retry_block_severities.split(",") if s.strip()
        )

    @property
    def retry_block_suggestions_set(self) -> frozenset[str]:
        """Parse comma-separated suggestion types that block auto-retry."""
        return frozenset(
            s.strip().lower() for s in self.retry_block_suggestions.split(",") if s.strip()
        )

    @property
    def terminal_event_markers_list(self) -> list[str]:
        """Parse comma-separated terminal event markers."""
        return [
            m.strip().lower() for m in self.terminal_event_markers.split(",") if m.strip()
        ]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
