"""
子任务模型
"""
import enum

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class TaskStatus(enum.Enum):
    """子任务状态枚举"""
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    VALIDATED = "VALIDATED"
    REJECTED = "REJECTED"


# 视为“已完成”的状态
DONE_STATUSES = (TaskStatus.COMPLETED, TaskStatus.VALIDATED)


class TaskCategory(enum.Enum):
    """子任务类别枚举"""
    GENERAL = "GENERAL"
    EXTERIOR_FACADE = "EXTERIOR_FACADE"
    WALLS_BASEBOARDS = "WALLS_BASEBOARDS"
    FLOORS = "FLOORS"
    STAIRS = "STAIRS"
    WINDOWS_JOINERY = "WINDOWS_JOINERY"
    KITCHEN = "KITCHEN"
    BATHROOM_SANITARY = "BATHROOM_SANITARY"
    LIVING_SPACES = "LIVING_SPACES"
    LOGISTICS_ACCESS = "LOGISTICS_ACCESS"


class Task(BaseModel):
    """子任务表"""
    __tablename__ = "tasks"

    # 外键
    mission_id = Column(
        Integer,
        ForeignKey("missions.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属任务ID"
    )
    assigned_to_id = Column(
        Integer,
        ForeignKey("team_members.id", ondelete="SET NULL"),
        comment="负责的团队成员ID"
    )

    title = Column(String(200), nullable=False, comment="子任务标题")
    description = Column(Text, comment="子任务描述")
    category = Column(Enum(TaskCategory), default=TaskCategory.GENERAL, nullable=False, comment="类别")
    status = Column(Enum(TaskStatus), default=TaskStatus.ASSIGNED, nullable=False, comment="状态")
    notes = Column(Text, comment="备注")

    estimated_time = Column(Integer, comment="预计耗时（分钟）")
    actual_time = Column(Integer, comment="实际耗时（分钟）")
    started_at = Column(DateTime, comment="开始时间")
    completed_at = Column(DateTime, comment="完成时间")

    # 关系定义
    mission = relationship("Mission", back_populates="tasks")
    assigned_to = relationship("TeamMember", back_populates="tasks")

    __table_args__ = (
        Index("ix_tasks_mission_status", "mission_id", "status"),
        {'comment': '子任务表'},
    )

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', status={self.status})>"
