"""Core module containing generic, dataset-agnostic primitives."""

from pointscape.core.cache import StudyData, load_or_build
from pointscape.core.density import DensitySurface, kernel_density
from pointscape.core.point_frame import PointFrame
from pointscape.core.point_process import KFunctionResult, KFunctionStep, ripley_k
from pointscape.core.schema import (
    AnalysisConfig,
    DataConfig,
    FeatureProvenance,
    KDEConfig,
    KFunctionConfig,
    OutputConfig,
    PointMetadata,
    PointSchema,
    SyntheticConfig,
)
from pointscape.core.window import StudyWindow

__all__ = [
    "PointFrame",
    "PointSchema",
    "PointMetadata",
    "FeatureProvenance",
    "StudyWindow",
    "StudyData",
    "load_or_build",
    "DensitySurface",
    "kernel_density",
    "KFunctionResult",
    "KFunctionStep",
    "ripley_k",
    "AnalysisConfig",
    "DataConfig",
    "SyntheticConfig",
    "KDEConfig",
    "KFunctionConfig",
    "OutputConfig",
]
