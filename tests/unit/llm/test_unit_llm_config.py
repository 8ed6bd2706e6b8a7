# tests/unit/llm/test_unit_llm_config.py - v2
"""Tests for llm/config.py - per-stage LLM routing cascade."""

from __future__ import annotations

from wavebrief.config.settings import Settings
from wavebrief.config.stages import STAGE_NAMES
from wavebrief.llm.config import LLMAssignment, _parse_assignment, resolve_all, resolve_assignment


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestResolveAssignment:
    def test_default(self):
        r = resolve_assignment("backbone_draft", _settings())
        assert r.provider == "google"
        assert r.model == "gemini-2.5-pro"
        assert r.source == "default"

    def test_per_stage_override(self):
        s = _settings(llm_adversarial_analysis="anthropic:claude-sonnet-4-20250514")
        r = resolve_assignment("adversarial_analysis", s)
        assert r.provider == "anthropic"
        assert r.model == "claude-sonnet-4-20250514"
        assert r.source == "stage"

    def test_override_only_affects_its_stage(self):
        s = _settings(llm_adversarial_analysis="anthropic:claude-sonnet-4-20250514")
        assert resolve_assignment("backbone_draft", s).source == "default"

    def test_fallback_when_default_blank(self):
        r = resolve_assignment("backbone_draft", _settings(llm_default_provider=""))
        assert r.source == "fallback"
        assert r.key == "google:gemini-2.5-pro"

    def test_unknown_stage_uses_default(self):
        assert resolve_assignment("unknown_stage", _settings()).source == "default"

    def test_key_format(self):
        r = LLMAssignment(provider="anthropic", model="claude-sonnet-4-20250514", source="default")
        assert r.key == "anthropic:claude-sonnet-4-20250514"


class TestParseAssignment:
    def test_model_with_colon(self):
        assert _parse_assignment("google: models/gemini:latest") == ("google", "models/gemini:latest")

    def test_empty(self):
        assert _parse_assignment("") is None
        assert _parse_assignment("nocolon") is None


class TestResolveAll:
    def test_resolves_every_stage_in_order(self):
        assignments = resolve_all(_settings())
        assert tuple(assignments) == STAGE_NAMES
