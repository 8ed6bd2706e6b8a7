# src/pipeline/plugin_kit/models.py - v2
"""Stage plugin models: Thought, StageLogLine, StageOutput."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ThoughtType = Literal["thinking", "planning", "working", "completed", "insight", "break"]
Mood = Literal["focused", "excited", "contemplative", "satisfied", "determined"]


class Thought(BaseModel):
    """Narrative progress note shown in the thoughts feed."""

    type: ThoughtType = "thinking"
    thought: str
    details: str | None = None
    mood: Mood | None = None


class StageLogLine(BaseModel):
    """Sub-message reported by a stage, written to the log sink in order."""

    message: str
    level: Literal["info", "debug", "error"] = "info"
    metadata: dict[str, Any] = Field(default_factory=dict)


class StageOutput(BaseModel):
    """Standard return type for all BaseStage.execute() calls.

    content becomes the next artifact version; metrics are stored on the
    StageRun next to the artifact reference.
    """

    content: str
    metrics: dict[str, Any] = Field(default_factory=dict)
    logs: list[StageLogLine] = Field(default_factory=list)
    thoughts: list[Thought] = Field(default_factory=list)
    sources_used: list[str] = Field(default_factory=list)
