"""
Pydantic Schemas - Request Validation Layer
"""

from enarva.database.schemas.mission import (
    MissionTaskCreate,
    MissionCreate,
    MissionStatusUpdate,
    MissionValidation,
)

from enarva.database.schemas.task import (
    TaskStatusUpdate,
    TaskAssign,
    TaskTimeUpdate,
)

from enarva.database.schemas.quality_check import (
    QualityCheckCreate,
    QualityCheckUpdate,
)

from enarva.database.schemas.activity import (
    ActivityCreate,
)

__all__ = [
    # Mission schemas
    "MissionTaskCreate",
    "MissionCreate",
    "MissionStatusUpdate",
    "MissionValidation",

    # Task schemas
    "TaskStatusUpdate",
    "TaskAssign",
    "TaskTimeUpdate",

    # Quality check schemas
    "QualityCheckCreate",
    "QualityCheckUpdate",

    # Activity schemas
    "ActivityCreate",
]
