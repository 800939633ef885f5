"""Pointscape: exploratory spatial point-pattern analysis of crime incidents."""

__version__ = "0.1.0"

from pointscape.core.point_frame import PointFrame
from pointscape.core.schema import AnalysisConfig, PointMetadata, PointSchema
from pointscape.core.window import StudyWindow

__all__ = [
    "PointFrame",
    "PointSchema",
    "PointMetadata",
    "StudyWindow",
    "AnalysisConfig",
    "__version__",
]
