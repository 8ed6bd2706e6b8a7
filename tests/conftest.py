# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides in-memory collaborator stores, mock LLM clients, stub stages,
a sample context and a memory-backed job store. No network, all LLM calls
are mocked.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any
from unittest.mock import AsyncMock

import pytest

from wavebrief.config.settings import Settings
from wavebrief.context.aggregator import ContextAggregator
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
from wavebrief.core.models import Artifact, JobConfig, artifact_ref
from wavebrief.jobs.lifecycle import JobLifecycle
from wavebrief.llm.models import LLMResponse
from wavebrief.pipeline.plugin_kit.base_stage import BaseStage
from wavebrief.pipeline.plugin_kit.models import StageLogLine, StageOutput, Thought
from wavebrief.pipeline.text_metrics import parse_sections, word_count
from wavebrief.storage.memory_store import MemoryJobStore
from wavebrief.tracking.log_sink import StageLogSink
from wavebrief.tracking.notifier import LogNotifier

BRIEF_TEXT = """INTEREST OF AMICUS CURIAE
Amicus is a nonprofit devoted to constitutional history.

SUMMARY OF ARGUMENT
The founders understood the clause broadly. See Brown v. Board, 347 U.S. 483.

ARGUMENT
I. THE TEXT CONTROLS
To be sure, some read the clause narrowly. However, this reading fails.

CONCLUSION
The judgment should be reversed."""


# === In-memory collaborators ===


class InMemoryCaseRepository(
    BaseCaseStore, BaseDocumentStore, BaseResultsStore, BaseDiscussionStore
):
    """Dict-backed implementation of all four collaborator interfaces."""

    def __init__(self) -> None:
        self.cases: dict[str, dict[str, Any]] = {}
        self.conversations: dict[str, list[dict[str, Any]]] = {}
        self.results: dict[tuple[str, str], Any] = {}
        self.documents: dict[str, list[dict[str, Any]]] = {}
        self.summaries: dict[str, dict[str, Any]] = {}
        self.case_reads = 0

    def add_case(self, case_id: str, owner_id: str = "user-1", **fields: Any) -> dict[str, Any]:
        record = {"id": case_id, "owner_id": owner_id, "case_name": f"Case {case_id}", **fields}
        self.cases[case_id] = record
        return record

    async def get_by_id(self, case_id: str) -> dict[str, Any] | None:
        self.case_reads += 1
        record = self.cases.get(case_id)
        return copy.deepcopy(record) if record is not None else None

    async def list_by_case(self, case_id: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.conversations.get(case_id, []))

    async def get_by_type(self, case_id: str, result_type: str) -> Any | None:
        return copy.deepcopy(self.results.get((case_id, result_type)))

    async def list_selected(self, case_id: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.documents.get(case_id, []))

    async def get_summary(self, document_id: str) -> dict[str, Any] | None:
        return copy.deepcopy(self.summaries.get(document_id))


# === Stub stages ===


class StubStage(BaseStage):
    """Deterministic stage: appends a marker line to the prior content."""

    def __init__(
        self,
        name: str,
        fail_with: Exception | None = None,
        fail_times: int | None = None,
        delay: float = 0.0,
        output: Any = None,
    ) -> None:
        self._name = name
        self._fail_with = fail_with
        self._fail_times = fail_times
        self._delay = delay
        self._output = output
        self.calls: list[tuple[Context, Artifact | None]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"stub {self._name}"

    async def execute(self, context: Context, prior: Artifact | None) -> StageOutput:
        self.calls.append((context, prior))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail_with is not None and (
            self._fail_times is None or len(self.calls) <= self._fail_times
        ):
            raise self._fail_with
        if self._output is not None:
            return self._output
        base = prior.content if prior is not None else f"BRIEF FOR {context.case.case_id.upper()}"
        return StageOutput(
            content=f"{base}\n{self._name} applied",
            metrics={"stage": self._name},
            logs=[StageLogLine(message=f"{self._name} sub-step done")],
            thoughts=[Thought(type="working", thought=f"Working on {self._name}")],
            sources_used=["stub"],
        )


# === FIXTURES: Collaborators and context ===


@pytest.fixture
def repository() -> InMemoryCaseRepository:
    """Repository with one case, case-1, owned by user-1."""
    repo = InMemoryCaseRepository()
    repo.add_case(
        "case-1",
        owner_id="user-1",
        case_name="Smith v. Jones",
        constitutional_question="Does the clause reach private conduct?",
    )
    repo.conversations["case-1"] = [{"transcription_text": "Initial attorney discussion."}]
    repo.results[("case-1", "approved_outline")] = {"outline": "I. Intro\nII. Argument"}
    repo.results[("case-1", "strategy_chat")] = {
        "messages": [
            {"role": "user", "content": "Lead with history."},
            {"role": "assistant", "content": "Agreed."},
        ]
    }
    return repo


@pytest.fixture
def aggregator(repository: InMemoryCaseRepository) -> ContextAggregator:
    return ContextAggregator(repository, repository, repository, repository)


@pytest.fixture
def sample_context() -> Context:
    """Context with every optional input populated."""
    return Context(
        case=CaseInformation(
            case_id="case-1",
            owner_id="user-1",
            case_name="Smith v. Jones",
            constitutional_question="Does the clause reach private conduct?",
            transcript="Initial attorney discussion.",
        ),
        config=JobConfig(target_word_count=1000),
        selected_documents=(
            SelectedDocument(id="d1", title="Federalist No. 78", content="x" * 5000,
                             citation="The Federalist No. 78"),
        ),
        document_summaries=(
            DocumentSummary(document_id="d1", summary="On judicial review",
                            key_points=("Courts guard the constitution",)),
        ),
        historical_research=HistoricalResearch(
            founding_documents=(HistoricalSource(title="Declaration of Independence"),),
        ),
        justice_analysis=(
            JusticeProfile(name="Gorsuch", ideology="originalist"),
            JusticeProfile(name="Kagan", ideology="pragmatist"),
        ),
        reference_brief=ReferenceBrief(title="Prior Brief", structure=("INTEREST", "ARGUMENT"),
                                       content="y" * 3000),
        strategy_chat=(
            ChatMessage(role="user", content="Lead with history."),
            ChatMessage(role="assistant", content="Agreed."),
        ),
        approved_outline="I. Intro\nII. Argument",
    )


@pytest.fixture
def bare_context() -> Context:
    """Context with only the case record."""
    return Context(case=CaseInformation(case_id="case-2", owner_id="user-2"))


@pytest.fixture
def make_artifact():
    def _make(content: str = BRIEF_TEXT, version: int = 1, job_id: str = "job-1") -> Artifact:
        return Artifact(
            ref=artifact_ref(job_id, version),
            job_id=job_id,
            version=version,
            stage_name="backbone_draft",
            content=content,
            sections=parse_sections(content),
            word_count=word_count(content),
        )
    return _make


@pytest.fixture
def brief_text() -> str:
    return BRIEF_TEXT


# === FIXTURES: LLM ===


@pytest.fixture
def mock_llm_response() -> LLMResponse:
    """Standard mock LLM response."""
    return LLMResponse(
        content=BRIEF_TEXT,
        input_tokens=100,
        output_tokens=50,
        model="test-model",
        provider="mock",
        latency_ms=200,
    )


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock LLM client that returns mock_llm_response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.provider_name = "mock"
    client.model_name = "test-model"
    return client


# === FIXTURES: Stages and persistence ===


@pytest.fixture
def stub_stage():
    """The StubStage class, for building mock plans."""
    return StubStage


@pytest.fixture
def memory_store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture
def notifier() -> LogNotifier:
    return LogNotifier(queue_size=64)


@pytest.fixture
def sink(memory_store: MemoryJobStore, notifier: LogNotifier) -> StageLogSink:
    return StageLogSink(memory_store, notifier=notifier, max_entries_per_job=500)


@pytest.fixture
def lifecycle(memory_store: MemoryJobStore) -> JobLifecycle:
    return JobLifecycle(memory_store)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from any .env file, memory backend."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        case_data_root=tmp_path / "cases",
        stage_retry_delay_s=0.0,
    )
