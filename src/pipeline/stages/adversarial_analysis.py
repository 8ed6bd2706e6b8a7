# src/pipeline/stages/adversarial_analysis.py - v1
"""Stage 5: anticipate opposing arguments and answer them."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.plugin_kit.models import Thought
from wavebrief.pipeline.stages import prompt_parts


class AdversarialAnalysisStage(LLMStage):
    """Add counterarguments with stronger rebuttals."""

    @property
    def name(self) -> str:
        return "adversarial_analysis"

    @property
    def description(self) -> str:
        return "Add counterarguments and responses to every major argument"

    def opening_thought(self, context: Context, prior: Artifact | None) -> Thought:
        return Thought(
            type="thinking",
            thought="Reading the draft the way opposing counsel would.",
            mood="determined",
        )

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        return "\n\n".join([
            "Strengthen the brief below against its strongest opposing arguments.",
            "For each major section, acknowledge the best counterargument "
            "('To be sure, ...') and answer it with superior authority.",
            prompt_parts.case_header(context),
            prompt_parts.current_brief(prior),
        ])

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        sections = text_metrics.parse_sections(content)
        enhanced = sum(1 for s in sections if text_metrics.counterarguments(s.content))
        return {
            "counterarguments": len(text_metrics.counterarguments(content)),
            "rebuttals": len(text_metrics.rebuttals(content)),
            "sections_with_counterarguments": enhanced,
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["opposing_arguments", "counter_authorities"]
