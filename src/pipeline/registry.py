# src/pipeline/registry.py - v2
"""Stage registry: build the ordered stage plan the executor walks.

A plan is a list of StageDescriptor records with 1-based indices. The
default plan loads the eight stage classes named in config/stages.py and
gives each one the LLM client assigned to it.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from wavebrief.config.stages import STAGE_NAMES, STAGE_REGISTRY
from wavebrief.llm.base_client import BaseLLMClient
from wavebrief.pipeline.plugin_kit.base_stage import BaseStage

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when stage loading or plan validation fails."""


@dataclass(frozen=True)
class StageDescriptor:
    """One entry of the stage plan."""

    index: int
    name: str
    stage: BaseStage

    @property
    def title(self) -> str:
        return self.stage.title


def build_stage_plan(stages: Sequence[BaseStage]) -> list[StageDescriptor]:
    """Assign 1-based indices to stages in the given order.

    Raises:
        RegistryError: If the plan is empty or two stages share a name.
    """
    if not stages:
        raise RegistryError("Stage plan must contain at least one stage")
    seen: set[str] = set()
    plan: list[StageDescriptor] = []
    for index, stage in enumerate(stages, start=1):
        if stage.name in seen:
            raise RegistryError(f"Duplicate stage name in plan: {stage.name!r}")
        seen.add(stage.name)
        plan.append(StageDescriptor(index=index, name=stage.name, stage=stage))
    return plan


def build_default_plan(
    llm_factory: Callable[[str], BaseLLMClient],
    temperature: float = 0.3,
    max_tokens: int = 32768,
) -> list[StageDescriptor]:
    """Instantiate the eight configured stages in execution order.

    Args:
        llm_factory: Callable(stage_name) -> BaseLLMClient.
        temperature: Sampling temperature passed to every stage.
        max_tokens: Completion budget passed to every stage.
    """
    stages: list[BaseStage] = []
    for name, class_path in zip(STAGE_NAMES, STAGE_REGISTRY, strict=True):
        cls = _import_stage_class(class_path)
        stage = cls(llm_factory(name), temperature=temperature, max_tokens=max_tokens)
        if stage.name != name:
            raise RegistryError(
                f"{class_path} reports name {stage.name!r}, expected {name!r}"
            )
        stages.append(stage)
        logger.debug("Loaded stage %s from %s", name, class_path)
    return build_stage_plan(stages)


def _import_stage_class(class_path: str) -> type[BaseStage]:
    """Import a stage class from a dotted class path."""
    parts = class_path.rsplit(".", 1)
    if len(parts) != 2:
        raise RegistryError(f"Invalid class path: {class_path}")
    module_path, class_name = parts

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise RegistryError(f"Cannot import module {module_path}: {exc}") from exc

    cls = getattr(module, class_name, None)
    if cls is None:
        raise RegistryError(f"Class {class_name} not found in {module_path}")

    if not isinstance(cls, type) or not issubclass(cls, BaseStage):
        raise RegistryError(f"{class_path} is not a BaseStage subclass")

    return cls
