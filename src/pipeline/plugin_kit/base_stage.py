# src/pipeline/plugin_kit/base_stage.py - v1
"""Standard stage interface for the brief pipeline.

A stage is a function of (Context, prior artifact) to a StageOutput. The
executor knows nothing else about it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wavebrief.config.stages import STAGE_TITLES
from wavebrief.context.models import Context
from wavebrief.core.models import Artifact
from wavebrief.pipeline.plugin_kit.models import StageOutput


class BaseStage(ABC):
    """Standard interface for all pipeline stages."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique stage identifier (e.g., 'backbone_draft')."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this stage does."""

    @property
    def title(self) -> str:
        """Display title used in log messages."""
        return STAGE_TITLES.get(self.name, self.name.replace("_", " ").title())

    @abstractmethod
    async def execute(self, context: Context, prior: Artifact | None) -> StageOutput:
        """Produce the next artifact version.

        Args:
            context: Frozen job context. Must not be modified.
            prior: Artifact produced by the previous stage, None for stage 1.

        Returns:
            StageOutput whose content becomes the next artifact version.
        """
