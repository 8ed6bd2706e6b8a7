# src/context/aggregator.py - v2
"""Context aggregator: gather every external input once per job.

Performs a bounded set of reads (case, discussion history, five prior-result
types, selected documents and their summaries) and merges them into one
frozen Context. The executor calls build() exactly once before stage 1, so
every stage sees the same view even if the underlying records change.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from wavebrief.config.stages import RESULT_TYPES
from wavebrief.context.base_sources import (
    BaseCaseStore,
    BaseDiscussionStore,
    BaseDocumentStore,
    BaseResultsStore,
)
from wavebrief.context.models import (
    CaseInformation,
    ChatMessage,
    Context,
    DocumentSummary,
    HistoricalResearch,
    HistoricalSource,
    JusticeProfile,
    ReferenceBrief,
    SelectedDocument,
)
from wavebrief.core.errors import AggregationError, NotFoundError
from wavebrief.core.models import JobConfig

logger = logging.getLogger(__name__)


class ContextAggregator:
    """Build an immutable Context from the collaborator stores.

    Args:
        cases: Parent-record store.
        documents: Document / reference store.
        results: Prior-results store.
        discussions: Discussion-history store.
    """

    def __init__(
        self,
        cases: BaseCaseStore,
        documents: BaseDocumentStore,
        results: BaseResultsStore,
        discussions: BaseDiscussionStore,
    ) -> None:
        self._cases = cases
        self._documents = documents
        self._results = results
        self._discussions = discussions

    async def build(self, case_id: str, config: JobConfig | None = None) -> Context:
        """Read all inputs for a case and return a frozen snapshot.

        Raises:
            NotFoundError: If the case record is absent.
            AggregationError: If any collaborator read or record parse fails.
        """
        try:
            case = await self._cases.get_by_id(case_id)
        except Exception as exc:
            raise AggregationError(f"Failed to read case {case_id}: {exc}") from exc
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        try:
            conversations = await self._discussions.list_by_case(case_id)
            results = {
                result_type: await self._results.get_by_type(case_id, result_type)
                for result_type in RESULT_TYPES
            }
            documents = await self._documents.list_selected(case_id)
            summaries = []
            for doc in documents:
                summary = await self._documents.get_summary(str(doc.get("id")))
                if summary is not None:
                    summaries.append(summary)
        except Exception as exc:
            raise AggregationError(
                f"Failed to read inputs for case {case_id}: {exc}"
            ) from exc

        try:
            context = Context(
                case=_case_information(case_id, case, conversations),
                config=config or JobConfig(),
                selected_documents=tuple(_selected_document(d) for d in documents),
                document_summaries=tuple(_document_summary(s) for s in summaries),
                historical_research=_historical_research(results["historical_research"]),
                justice_analysis=_justice_profiles(results["justice_analysis"]),
                reference_brief=_reference_brief(results["brief_references"]),
                strategy_chat=_chat_messages(results["strategy_chat"]),
                approved_outline=_approved_outline(results["approved_outline"]),
            )
        except (PydanticValidationError, KeyError, TypeError, ValueError) as exc:
            raise AggregationError(
                f"Malformed input record for case {case_id}: {exc}"
            ) from exc

        logger.info("Context built for case %s: %s", case_id, context.source_counts())
        return context


# ------------------------------------------------------------------
# Record mapping
# ------------------------------------------------------------------


def _case_information(
    case_id: str, case: dict[str, Any], conversations: list[dict[str, Any]]
) -> CaseInformation:
    transcript = next(
        (c.get("transcription_text") for c in conversations if c.get("transcription_text")),
        None,
    )
    data: dict[str, Any] = {
        "case_id": case_id,
        "owner_id": case.get("owner_id") or case.get("user_id") or "",
        "transcript": transcript,
    }
    for key, source in (
        ("case_name", "case_name"),
        ("court_level", "court_level"),
        ("court_level", "case_type"),
        ("constitutional_question", "constitutional_question"),
    ):
        if case.get(source) and key not in data:
            data[key] = case[source]
    return CaseInformation(**data)


def _selected_document(doc: dict[str, Any]) -> SelectedDocument:
    return SelectedDocument(
        id=str(doc["id"]),
        title=doc.get("title") or doc.get("case_title") or str(doc["id"]),
        content=doc.get("content") or doc.get("full_text") or "",
        citation=doc.get("citation"),
        relevance=doc.get("relevance") or doc.get("relevance_score"),
        document_type=doc.get("document_type"),
        source=doc.get("source") or doc.get("source_system"),
        url=doc.get("url") or doc.get("download_url"),
    )


def _document_summary(summary: dict[str, Any]) -> DocumentSummary:
    return DocumentSummary(
        document_id=str(summary["document_id"]),
        summary=summary.get("summary", ""),
        key_points=tuple(summary.get("key_points") or ()),
    )


def _historical_research(payload: Any) -> HistoricalResearch | None:
    if not payload:
        return None

    def sources(key: str) -> tuple[HistoricalSource, ...]:
        items = payload.get(key) or []
        return tuple(
            HistoricalSource(
                title=item.get("title", ""),
                citation=item.get("citation"),
                significance=item.get("significance", ""),
                key_quote=item.get("key_quote", ""),
                context=item.get("context")
                or item.get("historical_context")
                or item.get("case_context", ""),
                strategic_appeal=item.get("strategic_appeal", ""),
            )
            for item in items
        )

    research = HistoricalResearch(
        founding_documents=sources("founding_documents"),
        historical_cases=sources("historical_cases"),
        colonial_examples=sources("colonial_examples"),
    )
    return research if research.all_sources else None


def _justice_profiles(payload: Any) -> tuple[JusticeProfile, ...]:
    if not payload:
        return ()
    if isinstance(payload, dict):
        items = [{"name": name, **(analysis or {})} for name, analysis in payload.items()]
    else:
        items = list(payload)
    return tuple(
        JusticeProfile(
            name=item["name"],
            ideology=str(item.get("ideology", "")),
            key_factors=tuple(item.get("key_factors") or ()),
            persuasion_entry_points=tuple(item.get("persuasion_entry_points") or ()),
            strategy=item.get("strategy", ""),
        )
        for item in items
    )


def _reference_brief(payload: Any) -> ReferenceBrief | None:
    if not payload:
        return None
    structure = payload.get("structure") or ()
    if isinstance(structure, dict):
        structure = list(structure)
    return ReferenceBrief(
        title=payload.get("title", ""),
        structure=tuple(structure),
        content=payload.get("content", ""),
    )


def _chat_messages(payload: Any) -> tuple[ChatMessage, ...]:
    if not payload:
        return ()
    messages = payload.get("messages", []) if isinstance(payload, dict) else payload
    return tuple(
        ChatMessage(
            role="user" if m.get("role") == "user" else "assistant",
            content=m.get("content", ""),
        )
        for m in messages
    )


def _approved_outline(payload: Any) -> str | None:
    if not payload:
        return None
    if isinstance(payload, str):
        return payload
    return payload.get("outline") or None
