"""
客户线索模型
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from enarva.database.models.base import BaseModel


class Lead(BaseModel):
    """线索表：任务（Mission）的来源客户"""
    __tablename__ = "leads"

    first_name = Column(String(100), nullable=False, comment="名")
    last_name = Column(String(100), nullable=False, comment="姓")
    email = Column(String(255), comment="邮箱")
    phone = Column(String(50), comment="电话")
    status = Column(String(50), default="NEW", nullable=False, comment="线索状态")

    missions = relationship("Mission", back_populates="lead")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Lead(id={self.id}, name='{self.full_name}')>"
