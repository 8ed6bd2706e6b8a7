# src/pipeline/stages/document_integration.py - v1
"""Stage 3: integrate the attorney's selected reference documents."""

from __future__ import annotations

from typing import Any

from wavebrief.context.models import Context, SelectedDocument
from wavebrief.core.models import Artifact
from wavebrief.pipeline import text_metrics
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.stages import prompt_parts

DEFAULT_MAX_DOCUMENT_CHARS = 4000


class DocumentIntegrationStage(LLMStage):
    """Integrate selected documents; skipped when none are selected.

    Stage option ``max_document_chars`` caps how much of each document's
    text goes into the prompt.
    """

    @property
    def name(self) -> str:
        return "document_integration"

    @property
    def description(self) -> str:
        return "Integrate selected source documents and their summaries"

    def skip_reason(self, context: Context) -> str | None:
        if not context.selected_documents:
            return "No selected documents found"
        return None

    def _format_document(self, context: Context, doc: SelectedDocument, limit: int) -> str:
        lines = [f"--- {doc.title}" + (f" ({doc.citation})" if doc.citation else "") + " ---"]
        summary = context.summary_for(doc.id)
        if summary is not None:
            lines.append(f"Summary: {summary.summary}")
            lines.extend(f"- {point}" for point in summary.key_points)
        if doc.content:
            lines.append(doc.content[:limit])
        return "\n".join(lines)

    def build_prompt(self, context: Context, prior: Artifact | None) -> str:
        options = context.config.options_for(self.name)
        limit = int(options.get("max_document_chars", DEFAULT_MAX_DOCUMENT_CHARS))
        documents = "\n\n".join(
            self._format_document(context, doc, limit) for doc in context.selected_documents
        )
        return "\n\n".join([
            "Revise the brief below to draw on the selected documents, citing each by name.",
            prompt_parts.inclusion_rule(context),
            prompt_parts.current_brief(prior),
            "=== SELECTED DOCUMENTS ===\n" + documents,
        ])

    def stage_metrics(
        self, context: Context, prior: Artifact | None, content: str
    ) -> dict[str, Any]:
        titles = [doc.title for doc in context.selected_documents]
        return {
            "documents_available": len(titles),
            "documents_referenced": text_metrics.find_mentions(content, titles),
        }

    def sources_used(self, context: Context) -> list[str]:
        return [f"document:{doc.id}" for doc in context.selected_documents]
