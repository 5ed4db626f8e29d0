"""
活动日志模型（只追加，不修改）
"""
import enum

from sqlalchemy import Column, String, Text, Integer, ForeignKey, JSON, Enum, Index

from enarva.database.models.base import BaseModel


class ActivityType(enum.Enum):
    """活动类型枚举"""
    LEAD_CREATED = "LEAD_CREATED"
    LEAD_QUALIFIED = "LEAD_QUALIFIED"
    QUOTE_GENERATED = "QUOTE_GENERATED"
    QUOTE_SENT = "QUOTE_SENT"
    MISSION_SCHEDULED = "MISSION_SCHEDULED"
    MISSION_STARTED = "MISSION_STARTED"
    MISSION_STATUS_UPDATED = "MISSION_STATUS_UPDATED"
    MISSION_COMPLETED = "MISSION_COMPLETED"
    TASK_STATUS_UPDATED = "TASK_STATUS_UPDATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_TIME_UPDATED = "TASK_TIME_UPDATED"
    QUALITY_CHECK_CREATED = "QUALITY_CHECK_CREATED"
    QUALITY_CHECK_UPDATED = "QUALITY_CHECK_UPDATED"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    CLIENT_FEEDBACK = "CLIENT_FEEDBACK"


class Activity(BaseModel):
    """活动日志表：按ID引用用户/线索/任务，不持有关系"""
    __tablename__ = "activities"

    type = Column(Enum(ActivityType), nullable=False, comment="活动类型")
    title = Column(String(255), nullable=False, comment="标题")
    description = Column(Text, nullable=False, comment="描述")

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), comment="操作人ID")
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), comment="相关线索ID")
    mission_id = Column(Integer, ForeignKey("missions.id", ondelete="SET NULL"), comment="相关任务ID")

    # "metadata" 是声明式基类的保留属性名
    extra = Column("metadata", JSON, comment="附加信息")

    __table_args__ = (
        Index("ix_activities_created_at", "created_at"),
        {'comment': '活动日志表'},
    )

    def __repr__(self):
        return f"<Activity(id={self.id}, type={self.type})>"
