# tests/unit/pipeline/test_unit_registry.py - v2
"""Tests for pipeline/registry.py - stage plan construction."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from wavebrief.config.stages import STAGE_NAMES
from wavebrief.pipeline.plugin_kit.llm_stage import LLMStage
from wavebrief.pipeline.registry import (
    RegistryError,
    _import_stage_class,
    build_default_plan,
    build_stage_plan,
)


class TestBuildStagePlan:
    def test_indices_one_based(self, stub_stage):
        plan = build_stage_plan([stub_stage("alpha"), stub_stage("beta")])
        assert [(d.index, d.name) for d in plan] == [(1, "alpha"), (2, "beta")]
        assert plan[0].title == "Alpha"

    def test_empty(self):
        with pytest.raises(RegistryError, match="at least one"):
            build_stage_plan([])

    def test_duplicate_names(self, stub_stage):
        with pytest.raises(RegistryError, match="Duplicate"):
            build_stage_plan([stub_stage("alpha"), stub_stage("alpha")])


class TestBuildDefaultPlan:
    def test_eight_stages_in_order(self):
        factory = MagicMock(side_effect=lambda name: MagicMock(name=f"llm-{name}"))
        plan = build_default_plan(factory, temperature=0.2, max_tokens=1000)
        assert tuple(d.name for d in plan) == STAGE_NAMES
        assert [d.index for d in plan] == list(range(1, 9))
        assert all(isinstance(d.stage, LLMStage) for d in plan)
        assert plan[6].title == "Bluebook & Citations"
        assert [c.args[0] for c in factory.call_args_list] == list(STAGE_NAMES)

    def test_stage_settings_passed(self):
        plan = build_default_plan(lambda name: MagicMock(), temperature=0.7, max_tokens=123)
        stage = plan[0].stage
        assert stage._temperature == 0.7
        assert stage._max_tokens == 123


class TestImportStageClass:
    def test_valid(self):
        cls = _import_stage_class(
            "wavebrief.pipeline.stages.backbone_draft.BackboneDraftStage"
        )
        assert cls.__name__ == "BackboneDraftStage"

    def test_invalid_path(self):
        with pytest.raises(RegistryError, match="Invalid class path"):
            _import_stage_class("NoDots")

    def test_missing_module(self):
        with pytest.raises(RegistryError, match="Cannot import"):
            _import_stage_class("wavebrief.pipeline.stages.nope.Stage")

    def test_missing_class(self):
        with pytest.raises(RegistryError, match="not found"):
            _import_stage_class("wavebrief.pipeline.stages.backbone_draft.Missing")

    def test_not_a_stage(self):
        with pytest.raises(RegistryError, match="not a BaseStage"):
            _import_stage_class("wavebrief.pipeline.stages.prompt_parts.Context")
