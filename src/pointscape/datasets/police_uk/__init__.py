"""police.uk street-level crime dataset adapter."""

from pointscape.datasets.police_uk.mapping import (
    build_study_data,
    load_boundaries,
    load_crime_points,
    load_police_uk,
)
from pointscape.datasets.police_uk.schema import POLICE_UK_SCHEMA

__all__ = [
    "build_study_data",
    "load_boundaries",
    "load_crime_points",
    "load_police_uk",
    "POLICE_UK_SCHEMA",
]
