"""
子任务 Pydantic Schema
"""
from typing import Optional

from pydantic import Field

from enarva.database.models import TaskStatus
from enarva.database.schemas.mission import _CamelModel


class TaskStatusUpdate(_CamelModel):
    """状态更新 Schema（PATCH /tasks/{id}/status）"""
    status: TaskStatus = Field(..., description="目标状态")


class TaskAssign(_CamelModel):
    """重新分配 Schema（PATCH /tasks/{id}/assign）"""
    member_id: int = Field(..., description="团队成员ID")


class TaskTimeUpdate(_CamelModel):
    """耗时更新 Schema（PATCH /tasks/{id}/time）"""
    estimated_time: int = Field(..., ge=1, le=1440, description="预计耗时（分钟）")
    actual_time: Optional[int] = Field(None, ge=1, le=1440, description="实际耗时（分钟）")
