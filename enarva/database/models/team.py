"""
团队与团队成员模型
"""
from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class Team(BaseModel):
    """团队表"""
    __tablename__ = "teams"

    name = Column(String(255), nullable=False, comment="团队名称")
    description = Column(Text, comment="团队描述")

    # 关系定义
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    missions = relationship("Mission", back_populates="team")

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"


class TeamMember(BaseModel):
    """团队成员表"""
    __tablename__ = "team_members"

    # 外键
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属团队ID"
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="对应用户ID"
    )

    is_active = Column(Boolean, default=True, nullable=False, comment="是否在职")

    # 关系定义
    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_memberships")
    tasks = relationship("Task", back_populates="assigned_to")

    def __repr__(self):
        return f"<TeamMember(id={self.id}, team_id={self.team_id}, user_id={self.user_id})>"
