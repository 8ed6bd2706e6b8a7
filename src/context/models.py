# src/context/models.py - v1
"""Immutable context snapshot gathered once per job.

Every stage reads the same Context. All models are frozen and collections
are tuples so no stage can alter what a later stage sees.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from wavebrief.core.models import JobConfig, utc_now

_FROZEN = ConfigDict(frozen=True, extra="ignore")


class CaseInformation(BaseModel):
    """Case record plus the transcript of the initial attorney discussion."""

    model_config = _FROZEN

    case_id: str
    owner_id: str
    case_name: str = "Unknown Case"
    court_level: str = "Supreme Court"
    constitutional_question: str = ""
    transcript: str | None = None


class SelectedDocument(BaseModel):
    """A reference document the attorney selected for the brief."""

    model_config = _FROZEN

    id: str
    title: str
    content: str = ""
    citation: str | None = None
    relevance: float | None = None
    document_type: str | None = None
    source: str | None = None
    url: str | None = None


class DocumentSummary(BaseModel):
    model_config = _FROZEN

    document_id: str
    summary: str
    key_points: tuple[str, ...] = ()


class HistoricalSource(BaseModel):
    """Founding document, historical case or colonial example."""

    model_config = _FROZEN

    title: str
    citation: str | None = None
    significance: str = ""
    key_quote: str = ""
    context: str = ""
    strategic_appeal: str = ""


class HistoricalResearch(BaseModel):
    model_config = _FROZEN

    founding_documents: tuple[HistoricalSource, ...] = ()
    historical_cases: tuple[HistoricalSource, ...] = ()
    colonial_examples: tuple[HistoricalSource, ...] = ()

    @property
    def all_sources(self) -> tuple[HistoricalSource, ...]:
        return self.founding_documents + self.historical_cases + self.colonial_examples


class JusticeProfile(BaseModel):
    """Persuasion notes for one justice."""

    model_config = _FROZEN

    name: str
    ideology: str = ""
    key_factors: tuple[str, ...] = ()
    persuasion_entry_points: tuple[str, ...] = ()
    strategy: str = ""


class ReferenceBrief(BaseModel):
    """A previously filed brief used as a style model."""

    model_config = _FROZEN

    title: str = ""
    structure: tuple[str, ...] = ()
    content: str = ""


class ChatMessage(BaseModel):
    model_config = _FROZEN

    role: Literal["user", "assistant"]
    content: str


class Context(BaseModel):
    """Snapshot of every external input a job needs."""

    model_config = ConfigDict(frozen=True)

    case: CaseInformation
    config: JobConfig = Field(default_factory=JobConfig)
    selected_documents: tuple[SelectedDocument, ...] = ()
    document_summaries: tuple[DocumentSummary, ...] = ()
    historical_research: HistoricalResearch | None = None
    justice_analysis: tuple[JusticeProfile, ...] = ()
    reference_brief: ReferenceBrief | None = None
    strategy_chat: tuple[ChatMessage, ...] = ()
    approved_outline: str | None = None
    built_at: datetime = Field(default_factory=utc_now)

    def summary_for(self, document_id: str) -> DocumentSummary | None:
        for summary in self.document_summaries:
            if summary.document_id == document_id:
                return summary
        return None

    def source_counts(self) -> dict[str, Any]:
        """Counts of each input, logged once the context is built."""
        historical = (
            len(self.historical_research.all_sources)
            if self.historical_research is not None
            else 0
        )
        return {
            "has_transcript": bool(self.case.transcript),
            "documents": len(self.selected_documents),
            "summaries": len(self.document_summaries),
            "strategy_chat_messages": len(self.strategy_chat),
            "historical_items": historical,
            "justices": len(self.justice_analysis),
            "has_reference_brief": self.reference_brief is not None,
            "has_approved_outline": bool(self.approved_outline),
        }
