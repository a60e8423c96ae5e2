"""Generation run: the step machine and the localisation import built on it."""

from __future__ import annotations

from .importer import (
    AtlasGroup,
    FetchFactory,
    LocalisationImport,
    atlas_groups,
    audit_generated_atlases,
    offline_fetch_factory,
    online_fetch_factory,
)
from .logging import PipelineLogger
from .steps import PipelineStep, StepPipeline, StepResult


__all__ = [
    "AtlasGroup",
    "FetchFactory",
    "LocalisationImport",
    "PipelineLogger",
    "PipelineStep",
    "StepPipeline",
    "StepResult",
    "atlas_groups",
    "audit_generated_atlases",
    "offline_fetch_factory",
    "online_fetch_factory",
]
