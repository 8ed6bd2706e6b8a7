# src/pipeline/stages/citation_formatting.py - v1
"""Stage 7: Bluebook citation pass and table of authorities."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.stages import prompt_parts


class CitationFormattingStage(LLMStage):
    """Normalize citations to Bluebook form and report the authorities used."""

    @property
    def name(self) -> str:
        return "citation_formatting"

    @property
    def description(self) -> str:
        return "Format citations in Bluebook style and build the table of authorities"

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        parts = [
            "Correct every citation in the brief below to Bluebook form. Replace "
            "citation placeholders with full citations where the authority is "
            "identifiable and use short forms and id. for repeat citations. "
            "Change nothing else.",
            prompt_parts.current_brief(prior),
        ]
        cited = [d for d in context.selected_documents if d.citation]
        if cited:
            parts.append(
                "=== KNOWN CITATIONS ===\n"
                + "\n".join(f"- {d.title}: {d.citation}" for d in cited)
            )
        return "\n\n".join(parts)

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        return {
            "citations": text_metrics.citations_by_type(content),
            "bluebook_compliance": text_metrics.bluebook_compliance(content),
            "table_of_authorities": text_metrics.table_of_authorities(content),
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["bluebook_rules"]
