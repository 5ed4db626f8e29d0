"""
基础模型定义
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic.alias_generators import to_camel
from sqlalchemy import Column, Integer, DateTime, inspect
from sqlalchemy.orm import declarative_base, declared_attr


# 创建Base类
Base = declarative_base()


def utcnow() -> datetime:
    """当前UTC时间（naive，与数据库DateTime列保持一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """时间戳混入类"""

    @declared_attr
    def created_at(self):
        return Column(DateTime, default=utcnow, nullable=False, comment="创建时间")

    @declared_attr
    def updated_at(self):
        return Column(
            DateTime,
            default=utcnow,
            onupdate=utcnow,
            nullable=False,
            comment="更新时间"
        )


class BaseModel(Base, TimestampMixin):
    """基础模型类"""
    __abstract__ = True

    # 所有模型都有id主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="主键ID")

    def to_dict(self, exclude: list = None, camel: bool = True) -> Dict[str, Any]:
        """
        将模型转换为字典（API响应使用camelCase键）

        Args:
            exclude: 要排除的字段列表（列名）
            camel: 是否将列名转换为camelCase

        Returns:
            字典格式的模型数据
        """
        exclude = exclude or []
        result = {}

        for attr in inspect(self).mapper.column_attrs:
            column_name = attr.columns[0].name
            if column_name in exclude:
                continue
            value = getattr(self, attr.key)
            # 处理datetime与枚举类型
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, enum.Enum):
                value = value.value
            result[to_camel(column_name) if camel else column_name] = value

        return result

    def update_from_dict(self, data: Dict[str, Any], exclude: list = None):
        """
        从字典更新模型

        Args:
            data: 数据字典
            exclude: 要排除的字段列表
        """
        exclude = exclude or ['id', 'created_at', 'updated_at']

        for key, value in data.items():
            if key not in exclude and hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self):
        """字符串表示"""
        return f"<{self.__class__.__name__}(id={self.id})>"
