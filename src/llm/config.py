# src/llm/config.py - v2
"""Per-stage LLM routing with cascade resolution.

Resolution order:
  1. Per-stage env var (LLM_ADVERSARIAL_ANALYSIS=anthropic:claude-sonnet-4-20250514)
  2. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
  3. Hardcoded fallback (google:gemini-2.5-pro)
"""

from __future__ import annotations

from dataclasses import dataclass

from wavebrief.config.settings import Settings
from wavebrief.config.stages import STAGE_NAMES

_FALLBACK_PROVIDER = "google"
_FALLBACK_MODEL = "gemini-2.5-pro"


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model for a stage."""

    provider: str
    model: str
    source: str  # "stage", "default", or "fallback"

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def resolve_assignment(stage: str, settings: Settings) -> LLMAssignment:
    """Resolve the LLM assignment for one stage."""
    parsed = _parse_assignment(settings.stage_llm_overrides.get(stage, ""))
    if parsed:
        return LLMAssignment(provider=parsed[0], model=parsed[1], source="stage")

    if settings.llm_default_provider and settings.llm_default_model:
        return LLMAssignment(
            provider=settings.llm_default_provider,
            model=settings.llm_default_model,
            source="default",
        )

    return LLMAssignment(
        provider=_FALLBACK_PROVIDER,
        model=_FALLBACK_MODEL,
        source="fallback",
    )


def resolve_all(settings: Settings) -> dict[str, LLMAssignment]:
    """Resolve LLM assignments for every stage, in execution order."""
    return {stage: resolve_assignment(stage, settings) for stage in STAGE_NAMES}
