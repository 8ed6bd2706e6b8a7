# src/pipeline/stages/backbone_draft.py - v1
"""Stage 1: skeletal first draft from the outline and attorney discussion."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.plugin_kit.models import Thought
from wavebrief.pipeline.stages import prompt_parts


class BackboneDraftStage(LLMStage):
    """Write the first full draft following the approved outline."""

    requires_prior = False

    @property
    def name(self) -> str:
        return "backbone_draft"

    @property
    def description(self) -> str:
        return "Build the backbone draft from the approved outline, strategy chat and initial discussion"

    def opening_thought(self, context: Context, prior: Artifact | None) -> Thought:
        return Thought(
            type="planning",
            thought="Starting the backbone draft. This is the foundation for every later wave.",
            details=f"Working from {len(self.sources_used(context))} source(s).",
            mood="excited",
        )

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        # The first draft runs long; final consolidation trims it.
        draft_words = int(context.config.target_word_count * 1.5)
        parts = [
            "Write the backbone draft of a Supreme Court amicus brief.",
            prompt_parts.case_header(context),
            f"Aim for about {draft_words} words. Use placeholders where citations "
            "will be added later.",
        ]
        if context.approved_outline:
            parts.append(
                "=== APPROVED OUTLINE (follow this structure exactly) ===\n"
                + context.approved_outline
            )
        if context.strategy_chat:
            parts.append(
                "=== STRATEGY CHAT ===\n" + prompt_parts.strategy_chat(context.strategy_chat)
            )
        if context.case.transcript:
            parts.append("=== INITIAL ATTORNEY DISCUSSION ===\n" + context.case.transcript)
        return "\n\n".join(parts)

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        return {"outline_provided": bool(context.approved_outline)}

    def sources_used(self, context: Context) -> list[str]:
        used = []
        if context.approved_outline:
            used.append("approved_outline")
        if context.strategy_chat:
            used.append("strategy_chat")
        if context.case.transcript:
            used.append("initial_discussion")
        return used
