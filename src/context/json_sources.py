# src/context/json_sources.py - v1
"""JSON file-backed collaborator stores.

One file per case under CASE_DATA_ROOT, named {case_id}.json:

    {
      "case": {"id": ..., "owner_id": ..., "case_name": ..., ...},
      "conversations": [{"transcription_text": ...}],
      "research_results": {"strategy_chat": {...}, "approved_outline": "...", ...},
      "documents": [{"id": ..., "title": ..., "is_selected": true, "summary": {...}}]
    }

Files are re-read on every call; the aggregator is what freezes the view.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from wavebrief.context.base_sources import (
    BaseCaseStore,
    BaseDiscussionStore,
    BaseDocumentStore,
    BaseResultsStore,
)

logger = logging.getLogger(__name__)


class JsonCaseRepository(BaseCaseStore, BaseDocumentStore, BaseResultsStore, BaseDiscussionStore):
    """Serve case data from a directory of per-case JSON files."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()

    async def get_by_id(self, case_id: str) -> dict[str, Any] | None:
        data = self._load(case_id)
        if data is None:
            return None
        case = dict(data.get("case") or {})
        case.setdefault("id", case_id)
        return case

    async def list_by_case(self, case_id: str) -> list[dict[str, Any]]:
        data = self._load(case_id) or {}
        return list(data.get("conversations") or [])

    async def get_by_type(self, case_id: str, result_type: str) -> Any | None:
        data = self._load(case_id) or {}
        return (data.get("research_results") or {}).get(result_type)

    async def list_selected(self, case_id: str) -> list[dict[str, Any]]:
        data = self._load(case_id) or {}
        return [
            {k: v for k, v in doc.items() if k != "summary"}
            for doc in data.get("documents") or []
            if doc.get("is_selected", True)
        ]

    async def get_summary(self, document_id: str) -> dict[str, Any] | None:
        # Summaries are stored beside their document, so scan every case file.
        for path in self._case_files():
            data = self._read(path)
            for doc in (data or {}).get("documents") or []:
                if str(doc.get("id")) == document_id and doc.get("summary"):
                    summary = doc["summary"]
                    if isinstance(summary, str):
                        summary = {"summary": summary}
                    return {"document_id": document_id, **summary}
        return None

    # --- Internal helpers ---

    def _case_files(self) -> list[Path]:
        if not self._root.is_dir():
            return []
        return sorted(self._root.glob("*.json"))

    def _load(self, case_id: str) -> dict[str, Any] | None:
        path = self._root / f"{case_id}.json"
        if not path.exists():
            return None
        return self._read(path)

    @staticmethod
    def _read(path: Path) -> dict[str, Any] | None:
        # Decode errors propagate so the aggregator reports them.
        return json.loads(path.read_text(encoding="utf-8"))
