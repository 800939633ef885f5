"""
Step implementations for preparing point sets.

All steps in this package:
- Inherit from pointscape.core.pipeline.Step
- Return a new PointFrame, never mutating the input
- Record provenance for the columns they add
"""

from pointscape.core.point_process import KFunctionStep
from pointscape.core.steps.spatial import (
    ClipToWindowStep,
    DeduplicateStep,
    DropMissingStep,
    RequireNonEmptyStep,
    TransformCRSStep,
    reproject_coordinates,
)

__all__ = [
    "ClipToWindowStep",
    "DeduplicateStep",
    "DropMissingStep",
    "KFunctionStep",
    "RequireNonEmptyStep",
    "TransformCRSStep",
    "reproject_coordinates",
]
