"""
prepdesk/orm/subject.py
Graded course areas within an exam type
"""
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class Subject(BaseModel):
    """
    A subject (e.g. Mathematics) of one exam type.
    
    question_count is the number of questions the subject has on the
    exam. The priority scorer uses it as the subject's relative weight.
    """
    __tablename__ = "subjects"
    
    exam_type_id = Column(
        Integer,
        ForeignKey("exam_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(100), nullable=False, index=True)
    question_count = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)
    
    exam_type = relationship("ExamType", back_populates="subjects", lazy="selectin")
    topics = relationship(
        "Topic",
        back_populates="subject",
        cascade="all, delete-orphan",
        order_by="Topic.curriculum_order"
    )
    
    __table_args__ = (
        UniqueConstraint('exam_type_id', 'name', name='uq_subject_exam_type_name'),
    )
    
    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"
