# tests/unit/core/test_unit_errors.py - v1
"""Tests for core/errors.py - error taxonomy and messages."""

from __future__ import annotations

from wavebrief.core.errors import (
    AggregationError,
    InvalidTransitionError,
    NotFoundError,
    StageError,
    StageTimeoutError,
    UnauthorizedError,
    ValidationError,
    WaveBriefError,
)


class TestErrors:
    def test_hierarchy(self):
        for cls in (ValidationError, UnauthorizedError, NotFoundError, AggregationError,
                    StageError, InvalidTransitionError):
            assert issubclass(cls, WaveBriefError)
        assert issubclass(StageTimeoutError, StageError)

    def test_validation_errors_list(self):
        err = ValidationError("bad config", errors=[{"loc": ["x"], "msg": "m", "type": "t"}])
        assert str(err) == "bad config"
        assert err.errors[0]["loc"] == ["x"]
        assert ValidationError("bad").errors == []

    def test_stage_error_message(self):
        err = StageError(3, "document_integration", "provider unavailable", attempts=2)
        assert str(err) == "Stage 3 (document_integration) failed: provider unavailable"
        assert err.stage_index == 3
        assert err.attempts == 2

    def test_stage_error_wraps_exception(self):
        cause = RuntimeError("boom")
        err = StageError(1, "backbone_draft", cause)
        assert err.cause is cause
        assert "boom" in str(err)

    def test_invalid_transition(self):
        err = InvalidTransitionError("job-1", "completed", "running")
        assert "completed -> running" in str(err)
        assert err.target == "running"
