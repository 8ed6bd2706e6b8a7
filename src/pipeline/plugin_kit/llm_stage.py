# src/pipeline/plugin_kit/llm_stage.py - v1
"""Shared base for stages that rewrite the brief with one LLM call.

Subclasses supply the prompt and stage-specific metrics. The base class
handles the prior-artifact requirement, skip rules, the LLM call and the
common metrics (word count, sections, token usage).
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from typing import Any

from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.llm.base_client import BaseLLMClient
from wavebrief.llm.models import LLMResponse, Message
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.base_stage import BaseStage
from wavebrief.pipeline.plugin_kit.models import StageLogLine, StageOutput, Thought

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an experienced Supreme Court advocate drafting an amicus brief. "
    "Return only the full text of the brief, with section headings in capitals."
)


class LLMStage(BaseStage):
    """Base for LLM-backed drafting stages."""

    requires_prior: bool = True

    def __init__(
        self,
        llm: BaseLLMClient,
        temperature: float = 0.3,
        max_tokens: int = 32768,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    # --- Hooks ---

    @abstractmethod
    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        """Return the user prompt for this stage."""

    def skip_reason(self, context: Context) -> str | None:
        """Return why this stage has nothing to add, or None to run it."""
        return None

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        return {}

    def sources_used(self, context: Context) -> list[str]:
        return []

    def opening_thought(self, context: Context, prior: Artifact | None) -> Thought:
        return Thought(type="planning", thought=f"Starting {self.title}.", mood="focused")

    # --- Execution ---

    async def execute(self, context: Context, prior: Artifact | None) -> StageOutput:
        if self.requires_prior and prior is None:
            raise ValueError(f"{self.name} requires the previous artifact")

        reason = self.skip_reason(context)
        if reason is not None:
            return self._skip(prior, reason)

        prompt = self.build_prompt(context, prior)
        response = await self._generate(prompt)
        content = _strip_fences(response.content)
        if not content.strip():
            raise ValueError(f"{self.name}: model returned empty content")
        return self._finish(context, prior, content, response)

    async def _generate(self, prompt: str) -> LLMResponse:
        start = time.monotonic()
        response = await self._llm.complete(
            messages=[Message(role="user", content=prompt)],
            system=_SYSTEM_PROMPT,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        logger.debug(
            "%s: %d tokens in %.1fs",
            self.name,
            response.total_tokens,
            time.monotonic() - start,
        )
        return response

    def _finish(
        self,
        context: Context,
        prior: Artifact | None,
        content: str,
        response: LLMResponse,
    ) -> StageOutput:
        sections = text_metrics.parse_sections(content)
        words = text_metrics.word_count(content)
        metrics: dict[str, Any] = {
            "word_count": words,
            "section_count": len(sections),
            "llm": {
                "provider": response.provider,
                "model": response.model,
                "input_tokens": response.input_tokens,
                "output_tokens": response.output_tokens,
                "latency_ms": response.latency_ms,
            },
        }
        if prior is not None:
            metrics["word_delta"] = words - prior.word_count
            metrics["citations_added"] = len(
                text_metrics.new_citations(content, prior.content)
            )
        metrics.update(self.stage_metrics(context, prior, content))

        return StageOutput(
            content=content,
            metrics=metrics,
            logs=[
                StageLogLine(
                    message=f"{self.title} produced {len(sections)} sections, {words} words",
                    metadata={"word_count": words, "section_count": len(sections)},
                )
            ],
            thoughts=[
                self.opening_thought(context, prior),
                Thought(
                    type="completed",
                    thought=f"{self.title} done: {words} words across {len(sections)} sections.",
                    mood="satisfied",
                ),
            ],
            sources_used=self.sources_used(context),
        )

    def _skip(self, prior: Artifact | None, reason: str) -> StageOutput:
        """Pass the prior content through unchanged."""
        if prior is None:
            raise ValueError(f"{self.name} cannot be skipped without a prior artifact")
        return StageOutput(
            content=prior.content,
            metrics={"skipped": True, "reason": reason, "word_count": prior.word_count},
            logs=[StageLogLine(message=f"{reason}, skipping {self.title}")],
            thoughts=[Thought(type="break", thought=f"Nothing to add in {self.title}: {reason}.")],
        )


def _strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence if the model added one."""
    stripped = text.strip()
    if stripped.startswith("```"):
        lines = [ln for ln in stripped.split("\n") if not ln.strip().startswith("```")]
        return "\n".join(lines).strip()
    return stripped
