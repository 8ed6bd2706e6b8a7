# src/context/base_sources.py - v1
"""Abstract interfaces for the external collaborators the pipeline reads.

Records cross this boundary as plain dicts; the aggregator validates them
into context models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseCaseStore(ABC):
    """Parent-record store."""

    @abstractmethod
    async def get_by_id(self, case_id: str) -> dict[str, Any] | None:
        """Return the case record, or None if absent."""


class BaseDocumentStore(ABC):
    """Document / reference store."""

    @abstractmethod
    async def list_selected(self, case_id: str) -> list[dict[str, Any]]:
        """Return documents the attorney selected for this case."""

    @abstractmethod
    async def get_summary(self, document_id: str) -> dict[str, Any] | None:
        """Return the stored summary of a document, or None."""


class BaseResultsStore(ABC):
    """Prior-results store (strategy chat, outline, research, ...)."""

    @abstractmethod
    async def get_by_type(self, case_id: str, result_type: str) -> Any | None:
        """Return the payload of the named result type, or None."""


class BaseDiscussionStore(ABC):
    """Discussion-history store (recorded attorney conversations)."""

    @abstractmethod
    async def list_by_case(self, case_id: str) -> list[dict[str, Any]]:
        """Return conversation records for a case, oldest first."""


class BaseAccessPolicy(ABC):
    """Authorization check performed before job creation."""

    @abstractmethod
    def is_authorized(self, user_id: str, case: dict[str, Any]) -> bool:
        """Return True if user_id may start jobs on this case."""


class OwnerAccessPolicy(BaseAccessPolicy):
    """Only the case owner may generate or inspect its briefs."""

    def is_authorized(self, user_id: str, case: dict[str, Any]) -> bool:
        owner = case.get("owner_id") or case.get("user_id")
        return bool(user_id) and owner == user_id
