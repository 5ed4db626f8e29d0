"""
任务（Mission）模型：一次排期的保洁服务
"""
import enum

from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class MissionStatus(enum.Enum):
    """任务状态枚举"""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    QUALITY_CHECK = "QUALITY_CHECK"
    CLIENT_VALIDATION = "CLIENT_VALIDATION"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(enum.Enum):
    """优先级枚举"""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MissionType(enum.Enum):
    """任务类型枚举"""
    SERVICE = "SERVICE"
    TECHNICAL_VISIT = "TECHNICAL_VISIT"
    DELIVERY = "DELIVERY"
    INTERNAL = "INTERNAL"
    RECURRING = "RECURRING"


class Mission(BaseModel):
    """任务表：Task 与 QualityCheck 的聚合根"""
    __tablename__ = "missions"

    mission_number = Column(String(50), nullable=False, unique=True, comment="任务编号")

    status = Column(
        Enum(MissionStatus),
        default=MissionStatus.SCHEDULED,
        nullable=False,
        comment="任务状态"
    )
    priority = Column(Enum(Priority), default=Priority.NORMAL, nullable=False, comment="优先级")
    type = Column(Enum(MissionType), default=MissionType.SERVICE, nullable=False, comment="任务类型")

    # 排期
    scheduled_date = Column(DateTime, nullable=False, comment="计划日期时间")
    estimated_duration = Column(Float, comment="预计时长（小时）")
    actual_start_time = Column(DateTime, comment="实际开始时间")
    actual_end_time = Column(DateTime, comment="实际结束时间")

    address = Column(String(500), nullable=False, comment="服务地址")
    admin_notes = Column(Text, comment="管理员备注")

    # 管理员验收
    admin_validated = Column(Boolean, comment="是否通过管理员验收")
    admin_validated_by = Column(Integer, ForeignKey("users.id"), comment="验收人ID")
    admin_validated_at = Column(DateTime, comment="验收时间")
    quality_score = Column(Integer, comment="质量评分（1-5）")
    issues_found = Column(Text, comment="发现的问题")
    correction_required = Column(Boolean, default=False, comment="是否需要返工")

    # 外键
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, comment="所属线索ID")
    team_leader_id = Column(Integer, ForeignKey("users.id"), comment="队长用户ID")
    team_id = Column(Integer, ForeignKey("teams.id"), comment="执行团队ID")

    # 关系定义
    lead = relationship("Lead", back_populates="missions")
    team_leader = relationship("User", foreign_keys=[team_leader_id])
    team = relationship("Team", back_populates="missions")
    tasks = relationship(
        "Task",
        back_populates="mission",
        cascade="all, delete-orphan",
        order_by="Task.id"
    )
    quality_checks = relationship(
        "QualityCheck",
        back_populates="mission",
        cascade="all, delete-orphan",
        order_by="QualityCheck.id"
    )

    __table_args__ = (
        Index("ix_missions_status", "status"),
        {'comment': '任务表'},
    )

    def to_dict(self, exclude: list = None, camel: bool = True, include_children: bool = False):
        data = super().to_dict(exclude=exclude, camel=camel)
        if include_children:
            data["tasks"] = [task.to_dict() for task in self.tasks]
            data["qualityChecks"] = [check.to_dict() for check in self.quality_checks]
        return data

    def __repr__(self):
        return f"<Mission(id={self.id}, number='{self.mission_number}', status={self.status})>"
