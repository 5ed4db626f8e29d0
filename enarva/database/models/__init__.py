"""
数据库模型包初始化
"""
from enarva.database.models.base import Base, BaseModel, TimestampMixin, utcnow

# 人员与客户
from enarva.database.models.user import User, UserRole
from enarva.database.models.lead import Lead
from enarva.database.models.team import Team, TeamMember

# 任务生命周期
from enarva.database.models.mission import Mission, MissionStatus, Priority, MissionType
from enarva.database.models.task import Task, TaskStatus, TaskCategory, DONE_STATUSES
from enarva.database.models.quality_check import (
    QualityCheck, QualityCheckType, QualityStatus, RESOLVED_STATUSES
)

# 审计日志
from enarva.database.models.activity import Activity, ActivityType

__all__ = [
    # 基础类
    "Base",
    "BaseModel",
    "TimestampMixin",
    "utcnow",

    # 人员与客户
    "User",
    "UserRole",
    "Lead",
    "Team",
    "TeamMember",

    # 任务生命周期
    "Mission",
    "MissionStatus",
    "Priority",
    "MissionType",
    "Task",
    "TaskStatus",
    "TaskCategory",
    "DONE_STATUSES",
    "QualityCheck",
    "QualityCheckType",
    "QualityStatus",
    "RESOLVED_STATUSES",

    # 审计日志
    "Activity",
    "ActivityType",
]
