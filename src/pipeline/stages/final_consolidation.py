# src/pipeline/stages/final_consolidation.py - v1
"""Stage 8: final polish and trim toward the target length."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.plugin_kit.models import Thought
from wavebrief.pipeline.stages import prompt_parts

DEFAULT_TOLERANCE_WORDS = 200


class FinalConsolidationStage(LLMStage):
    """Produce the final brief.

    Trims when the prior draft is over ``target_word_count``. The result
    counts as on target within ``tolerance_words`` (stage option,
    default 200).
    """

    @property
    def name(self) -> str:
        return "final_consolidation"

    @property
    def description(self) -> str:
        return "Consolidate, polish and trim the brief to its target length"

    def _target(self, context: Context) -> tuple[int, int]:
        options = context.config.options_for(self.name)
        tolerance = int(options.get("tolerance_words", DEFAULT_TOLERANCE_WORDS))
        return context.config.target_word_count, tolerance

    def opening_thought(self, context: Context, prior: Artifact | None) -> Thought:
        target, _ = self._target(context)
        return Thought(
            type="working",
            thought=f"Final pass: {prior.word_count} words against a target of {target}.",
            mood="focused",
        )

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        target, _ = self._target(context)
        if prior.word_count > target:
            instruction = (
                f"Trim the brief below to about {target} words, cutting the weakest "
                "content first and keeping every essential argument."
            )
        else:
            instruction = "Give the brief below a final polish for flow and consistency."
        parts = [
            instruction,
            "Strengthen the introduction and conclusion and remove redundancy.",
            prompt_parts.current_brief(prior),
        ]
        if context.strategy_chat:
            parts.append(
                "=== STRATEGY CHAT (check consistency) ===\n"
                + prompt_parts.strategy_chat(context.strategy_chat)
            )
        return "\n\n".join(parts)

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        target, tolerance = self._target(context)
        words = text_metrics.word_count(content)
        counts = context.source_counts()
        return {
            "target_word_count": target,
            "target_achieved": abs(words - target) <= tolerance,
            "words_removed": max(prior.word_count - words, 0),
            "quality": {
                "argument_strength": text_metrics.argument_strength(content),
                "citation_density": round(text_metrics.citation_density(content), 2),
                "constitutional_depth": text_metrics.constitutional_depth(content),
            },
            "source_coverage": {
                "strategy_chat_used": counts["strategy_chat_messages"] > 0,
                "initial_discussion_used": counts["has_transcript"],
                "documents_used": counts["documents"],
                "historical_sources_used": counts["historical_items"],
                "justice_analysis_used": counts["justices"] > 0,
                "reference_brief_used": counts["has_reference_brief"],
                "approved_outline_followed": counts["has_approved_outline"],
                "estimated_citations": text_metrics.count_citations(content),
            },
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["strategy_consistency", "final_polish"]
