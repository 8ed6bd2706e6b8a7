# src/pipeline/stages/historical_integration.py - v1
"""Stage 2: weave founding documents and historical precedent into the draft."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context, HistoricalSource
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.stages import prompt_parts


def _format_source(source: HistoricalSource) -> str:
    lines = [f"- {source.title}" + (f" ({source.citation})" if source.citation else "")]
    for label, value in (
        ("Significance", source.significance),
        ("Key quote", source.key_quote),
        ("Context", source.context),
        ("Strategic appeal", source.strategic_appeal),
    ):
        if value:
            lines.append(f"  {label}: {value}")
    return "\n".join(lines)


class HistoricalIntegrationStage(LLMStage):
    """Integrate historical research; skipped when none exists."""

    @property
    def name(self) -> str:
        return "historical_integration"

    @property
    def description(self) -> str:
        return "Integrate founding documents, historical cases and colonial examples"

    def skip_reason(self, context: Context) -> str | None:
        if context.historical_research is None:
            return "No historical research found"
        return None

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        research = context.historical_research
        groups = (
            ("FOUNDING DOCUMENTS", research.founding_documents),
            ("HISTORICAL CASES", research.historical_cases),
            ("COLONIAL EXAMPLES", research.colonial_examples),
        )
        parts = [
            "Revise the brief below to integrate the historical research.",
            prompt_parts.inclusion_rule(context),
            prompt_parts.current_brief(prior),
        ]
        for heading, sources in groups:
            if sources:
                parts.append(f"=== {heading} ===\n" + "\n".join(_format_source(s) for s in sources))
        return "\n\n".join(parts)

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        sources = context.historical_research.all_sources
        referenced = text_metrics.find_mentions(content, [s.title for s in sources])
        return {
            "historical_sources_available": len(sources),
            "historical_sources_referenced": referenced,
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["historical_research"]
