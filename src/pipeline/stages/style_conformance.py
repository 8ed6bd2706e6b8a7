# src/pipeline/stages/style_conformance.py - v1
"""Stage 6: conform tone and structure to a reference brief."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.stages import prompt_parts

DEFAULT_REFERENCE_SAMPLE_CHARS = 2000


class StyleConformanceStage(LLMStage):
    """Polish headings, tone and transitions.

    Uses the reference brief as a style model when one exists; without it
    the stage still applies standard Supreme Court conventions.
    """

    @property
    def name(self) -> str:
        return "style_conformance"

    @property
    def description(self) -> str:
        return "Conform headings, tone and transitions to Supreme Court style"

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        parts = [
            "Revise the brief below for style only. Standardize headings "
            "(ALL CAPS or roman numerals), keep a formal register and smooth the "
            "transitions between sections. Do not remove arguments or citations.",
            prompt_parts.current_brief(prior),
        ]
        reference = context.reference_brief
        if reference is not None:
            limit = int(
                context.config.options_for(self.name).get(
                    "reference_sample_chars", DEFAULT_REFERENCE_SAMPLE_CHARS
                )
            )
            lines = [f"=== REFERENCE BRIEF: {reference.title} ==="]
            if reference.structure:
                lines.append("Structure: " + " / ".join(reference.structure))
            if reference.content:
                lines.append(reference.content[:limit])
            parts.append("\n".join(lines))
        return "\n\n".join(parts)

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        sections = text_metrics.parse_sections(content)
        standardized = sum(1 for s in sections if text_metrics.is_standardized_heading(s.title))
        return {
            "formal_tone": text_metrics.formal_tone_score(content),
            "transitions": text_metrics.transition_score(content),
            "standardized_headings": standardized,
            "reference_brief_used": context.reference_brief is not None,
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["reference_brief"] if context.reference_brief is not None else []
