"""
prepdesk/orm/exam_type.py
Named exam tracks (e.g. TYT, AYT)
"""
from sqlalchemy import Column, String, Integer
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class ExamType(BaseModel):
    __tablename__ = "exam_types"
    
    name = Column(String(50), nullable=False, unique=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    
    subjects = relationship(
        "Subject",
        back_populates="exam_type",
        cascade="all, delete-orphan",
        order_by="Subject.sort_order"
    )
    
    def __repr__(self):
        return f"<ExamType(id={self.id}, name='{self.name}')>"
