"""
用户模型
"""
import enum

from sqlalchemy import Column, String, Boolean, JSON, Enum
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class UserRole(enum.Enum):
    """用户角色枚举"""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    AGENT = "AGENT"
    TEAM_LEADER = "TEAM_LEADER"
    TECHNICIAN = "TECHNICIAN"


class User(BaseModel):
    """用户表"""
    __tablename__ = "users"

    name = Column(String(255), nullable=False, comment="姓名")
    email = Column(String(255), nullable=False, unique=True, comment="邮箱")
    role = Column(Enum(UserRole), default=UserRole.TECHNICIAN, nullable=False, comment="角色")
    is_active = Column(Boolean, default=True, nullable=False, comment="是否启用")
    push_subscription = Column(JSON, comment="Web Push订阅信息")

    # 关系定义
    team_memberships = relationship("TeamMember", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
