# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: LLM routing,
job defaults, stage retry/timeout policy, crash recovery, persistence
backend and process logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wavebrief.config.stages import STAGE_NAMES


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "google"
    llm_default_model: str = "gemini-2.5-pro"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 32768

    # Provider API keys
    google_api_key: str = ""
    anthropic_api_key: str = ""

    # Per-stage LLM assignment, "provider:model" (highest priority)
    llm_backbone_draft: str = ""
    llm_historical_integration: str = ""
    llm_document_integration: str = ""
    llm_justice_targeting: str = ""
    llm_adversarial_analysis: str = ""
    llm_style_conformance: str = ""
    llm_citation_formatting: str = ""
    llm_final_consolidation: str = ""

    # === Job defaults ===
    job_default_target_word_count: int = 6000
    job_default_aggressive_inclusion: bool = True
    estimated_completion_minutes: int = 15

    # === Stage policy ===
    stage_max_retries: int = 0
    stage_retry_delay_s: float = 2.0
    stage_retry_backoff: float = 2.0
    stage_timeout_s: float | None = None

    # === Recovery ===
    recovery_mode: Literal["fail", "resume"] = "fail"
    # Enable in exactly one process per job store.
    recover_on_startup: bool = True

    # === Persistence ===
    store_backend: Literal["memory", "sqlite", "redis"] = "sqlite"
    store_sqlite_path: Path = Path("~/.wavebrief/jobs.db")
    store_redis_url: str = ""

    # === Log sink ===
    log_sink_max_entries_per_job: int = 2000
    log_notifier_queue_size: int = 256

    # === Collaborator data (CLI) ===
    case_data_root: Path = Path("./cases")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("stage_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("stage_max_retries must be >= 0")
        return v

    @field_validator("stage_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("stage_timeout_s must be > 0 when set")
        return v

    @field_validator("job_default_target_word_count")
    @classmethod
    def validate_target_word_count(cls, v: int) -> int:
        if not 500 <= v <= 50_000:
            raise ValueError("job_default_target_word_count must be in [500, 50000]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.store_backend == "redis" and not self.store_redis_url:
            errors.append("STORE_BACKEND=redis requires STORE_REDIS_URL")

        if self.log_sink_max_entries_per_job < 1:
            errors.append("LOG_SINK_MAX_ENTRIES_PER_JOB must be >= 1")

        for stage, value in self.stage_llm_overrides.items():
            if ":" not in value:
                errors.append(
                    f"LLM_{stage.upper()} must be 'provider:model', got {value!r}"
                )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def stage_llm_overrides(self) -> dict[str, str]:
        """Return stage_name -> 'provider:model' for stages with an override."""
        overrides: dict[str, str] = {}
        for stage in STAGE_NAMES:
            value = getattr(self, f"llm_{stage}", "")
            if value:
                overrides[stage] = value
        return overrides

    def job_defaults(self) -> dict[str, object]:
        """Defaults merged under caller-provided job config."""
        return {
            "target_word_count": self.job_default_target_word_count,
            "aggressive_inclusion": self.job_default_aggressive_inclusion,
        }


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
