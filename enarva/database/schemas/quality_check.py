"""
质检 Pydantic Schema
"""
from typing import Any, List, Optional

from pydantic import Field

from enarva.database.models import QualityCheckType, QualityStatus
from enarva.database.schemas.mission import _CamelModel


class QualityCheckCreate(_CamelModel):
    """创建质检 Schema（POST /quality-checks）"""
    mission_id: int = Field(..., description="所属任务ID")
    type: QualityCheckType = Field(..., description="质检类型")
    status: QualityStatus = Field(QualityStatus.PENDING, description="质检状态")
    score: Optional[int] = Field(None, ge=1, le=5, description="评分")
    notes: Optional[str] = Field(None, max_length=1000, description="备注")
    photos: Optional[List[str]] = Field(None, description="照片链接列表")
    issues: Optional[List[Any]] = Field(None, description="问题列表")
    corrections: Optional[List[Any]] = Field(None, description="整改列表")


class QualityCheckUpdate(_CamelModel):
    """更新质检 Schema（PUT /quality-checks/{id}），仅更新显式提供的字段"""
    status: Optional[QualityStatus] = Field(None, description="质检状态")
    score: Optional[int] = Field(None, ge=1, le=5, description="评分")
    notes: Optional[str] = Field(None, max_length=1000, description="备注")
    photos: Optional[List[str]] = Field(None, description="照片链接列表")
    issues: Optional[List[Any]] = Field(None, description="问题列表")
    corrections: Optional[List[Any]] = Field(None, description="整改列表")
