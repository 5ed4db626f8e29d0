"""
活动日志 Pydantic Schema
"""
from typing import Any, Dict, Optional

from pydantic import Field

from enarva.database.models import ActivityType
from enarva.database.schemas.mission import _CamelModel


class ActivityCreate(_CamelModel):
    """手动记录活动 Schema（POST /activities）"""
    type: ActivityType = Field(..., description="活动类型")
    title: str = Field(..., min_length=1, max_length=255, description="标题")
    description: str = Field(..., min_length=1, description="描述")
    lead_id: Optional[int] = Field(None, description="相关线索ID")
    mission_id: Optional[int] = Field(None, description="相关任务ID")
    metadata: Optional[Dict[str, Any]] = Field(None, description="附加信息")
