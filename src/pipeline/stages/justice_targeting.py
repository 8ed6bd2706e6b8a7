# src/pipeline/stages/justice_targeting.py - v1
"""Stage 4: tailor arguments to individual justices."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context, JusticeProfile
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.plugin_kit.models import Thought
from wavebrief.pipeline.stages import prompt_parts

_APPROACHES = (
    "originalist",
    "textualist",
    "living constitution",
    "strict constructionist",
    "judicial restraint",
)


def _format_profile(profile: JusticeProfile) -> str:
    lines = [f"--- Justice {profile.name} ---"]
    if profile.ideology:
        lines.append(f"Ideology: {profile.ideology}")
    if profile.key_factors:
        lines.append("Key factors: " + "; ".join(profile.key_factors))
    if profile.persuasion_entry_points:
        lines.append("Entry points: " + "; ".join(profile.persuasion_entry_points))
    if profile.strategy:
        lines.append(f"Strategy: {profile.strategy}")
    return "\n".join(lines)


class JusticeTargetingStage(LLMStage):
    """Add justice-specific framing; skipped when no analysis exists."""

    @property
    def name(self) -> str:
        return "justice_targeting"

    @property
    def description(self) -> str:
        return "Frame arguments for the persuasion entry points of each justice"

    def skip_reason(self, context: Context) -> str | None:
        if not context.justice_analysis:
            return "No justice analysis found"
        return None

    def opening_thought(self, context: Context, prior: Artifact | None) -> Thought:
        return Thought(
            type="thinking",
            thought=f"Targeting {len(context.justice_analysis)} justices.",
            mood="contemplative",
        )

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        return "\n\n".join([
            "Revise the brief below so each argument speaks to the justices most "
            "likely to be persuaded by it. Do not name justices in the brief text "
            "unless quoting their opinions.",
            prompt_parts.current_brief(prior),
            "=== JUSTICE ANALYSIS ===\n"
            + "\n\n".join(_format_profile(p) for p in context.justice_analysis),
        ])

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        names = [p.name for p in context.justice_analysis]
        return {
            "justices_targeted": len(names),
            "justices_referenced": text_metrics.find_mentions(content, names),
            "constitutional_approaches": text_metrics.find_mentions(content, _APPROACHES),
        }

    def sources_used(self, context: Context) -> list[str]:
        return ["justice_analysis"]
