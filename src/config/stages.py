# src/config/stages.py - v1
"""Declarative stage configuration for the eight-wave brief pipeline.

Order in STAGE_REGISTRY is execution order. Each stage consumes the artifact
produced by the one before it.
"""

from __future__ import annotations

# Fully qualified class paths for dynamic import by pipeline/registry.py.
STAGE_REGISTRY: list[str] = [
    "wavebrief.pipeline.stages.backbone_draft.BackboneDraftStage",
    "wavebrief.pipeline.stages.historical_integration.HistoricalIntegrationStage",
    "wavebrief.pipeline.stages.document_integration.DocumentIntegrationStage",
    "wavebrief.pipeline.stages.justice_targeting.JusticeTargetingStage",
    "wavebrief.pipeline.stages.adversarial_analysis.AdversarialAnalysisStage",
    "wavebrief.pipeline.stages.style_conformance.StyleConformanceStage",
    "wavebrief.pipeline.stages.citation_formatting.CitationFormattingStage",
    "wavebrief.pipeline.stages.final_consolidation.FinalConsolidationStage",
]

STAGE_NAMES: tuple[str, ...] = (
    "backbone_draft",
    "historical_integration",
    "document_integration",
    "justice_targeting",
    "adversarial_analysis",
    "style_conformance",
    "citation_formatting",
    "final_consolidation",
)

# Display titles used in log messages.
STAGE_TITLES: dict[str, str] = {
    "backbone_draft": "Backbone Draft",
    "historical_integration": "Historical Integration",
    "document_integration": "Document Integration",
    "justice_targeting": "Justice Targeting",
    "adversarial_analysis": "Adversarial Analysis",
    "style_conformance": "Style Conformance",
    "citation_formatting": "Bluebook & Citations",
    "final_consolidation": "Final Consolidation",
}

# Result types read from the prior-results store when building the context.
RESULT_TYPES: tuple[str, ...] = (
    "strategy_chat",
    "approved_outline",
    "justice_analysis",
    "historical_research",
    "brief_references",
)
