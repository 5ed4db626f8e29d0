"""
任务（Mission）Pydantic Schema
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from enarva.database.models import MissionStatus, MissionType, Priority, TaskCategory


class _CamelModel(BaseModel):
    """接受camelCase或snake_case输入"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class MissionTaskCreate(_CamelModel):
    """排期时随任务创建的子任务"""
    title: str = Field(..., min_length=1, max_length=200, description="子任务标题")
    description: Optional[str] = Field(None, max_length=1000, description="子任务描述")
    category: TaskCategory = Field(TaskCategory.GENERAL, description="类别")
    estimated_time: Optional[int] = Field(None, ge=1, le=1440, description="预计耗时（分钟）")
    assigned_to_id: Optional[int] = Field(None, description="团队成员ID")


class MissionCreate(_CamelModel):
    """手动排期 Schema"""
    lead_id: int = Field(..., description="所属线索ID")
    scheduled_date: datetime = Field(..., description="计划日期时间")
    address: str = Field(..., min_length=1, max_length=500, description="服务地址")
    estimated_duration: Optional[float] = Field(None, ge=0.5, le=24, description="预计时长（小时）")
    priority: Priority = Field(Priority.NORMAL, description="优先级")
    type: MissionType = Field(MissionType.SERVICE, description="任务类型")
    team_leader_id: Optional[int] = Field(None, description="队长用户ID")
    team_id: Optional[int] = Field(None, description="执行团队ID")
    admin_notes: Optional[str] = Field(None, description="管理员备注")
    tasks: List[MissionTaskCreate] = Field(default_factory=list, description="子任务列表")

    @field_validator('scheduled_date')
    @classmethod
    def normalize_scheduled_date(cls, v):
        """带时区的时间统一转换为naive UTC"""
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class MissionStatusUpdate(_CamelModel):
    """状态更新 Schema（PATCH /missions/{id}/status）"""
    status: MissionStatus = Field(..., description="目标状态")
    notes: Optional[str] = Field(None, description="管理员备注")


class MissionValidation(_CamelModel):
    """管理员验收 Schema（POST /missions/{id}/validate）"""
    approved: bool = Field(..., description="是否通过")
    admin_notes: Optional[str] = Field(None, description="管理员备注")
    quality_score: Optional[int] = Field(None, ge=1, le=5, description="质量评分")
    issues_found: Optional[str] = Field(None, description="发现的问题")
    correction_needed: bool = Field(False, description="是否需要返工")

    @field_validator('issues_found')
    @classmethod
    def strip_issues(cls, v):
        """空字符串视为未填写"""
        if v is not None and not v.strip():
            return None
        return v
