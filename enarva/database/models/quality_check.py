"""
质检记录模型
"""
import enum

from sqlalchemy import Column, Text, Integer, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class QualityCheckType(enum.Enum):
    """质检类型枚举"""
    TEAM_LEADER_CHECK = "TEAM_LEADER_CHECK"
    FINAL_INSPECTION = "FINAL_INSPECTION"
    CLIENT_WALKTHROUGH = "CLIENT_WALKTHROUGH"


class QualityStatus(enum.Enum):
    """质检状态枚举"""
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    NEEDS_CORRECTION = "NEEDS_CORRECTION"


# 触发验收签字（validated_by / validated_at）的终态
RESOLVED_STATUSES = (QualityStatus.PASSED, QualityStatus.FAILED)


class QualityCheck(BaseModel):
    """质检记录表"""
    __tablename__ = "quality_checks"

    mission_id = Column(
        Integer,
        ForeignKey("missions.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属任务ID"
    )

    type = Column(Enum(QualityCheckType), nullable=False, comment="质检类型")
    status = Column(Enum(QualityStatus), default=QualityStatus.PENDING, nullable=False, comment="质检状态")
    score = Column(Integer, comment="评分（1-5）")
    notes = Column(Text, comment="备注")
    photos = Column(JSON, comment="照片链接列表")
    issues = Column(JSON, comment="问题列表")
    corrections = Column(JSON, comment="整改列表")

    checked_by = Column(Integer, ForeignKey("users.id"), comment="检查人ID")
    checked_at = Column(DateTime, comment="检查时间")
    validated_by = Column(Integer, ForeignKey("users.id"), comment="验收人ID")
    validated_at = Column(DateTime, comment="验收时间")

    # 关系定义
    mission = relationship("Mission", back_populates="quality_checks")

    def __repr__(self):
        return f"<QualityCheck(id={self.id}, mission_id={self.mission_id}, status={self.status})>"
