"""
prepdesk/orm/exam.py
Mock exams and the questions answered wrong in them
"""
from datetime import datetime
from sqlalchemy import Column, Integer, Float, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class Exam(BaseModel):
    __tablename__ = "exams"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    exam_type_id = Column(
        Integer,
        ForeignKey("exam_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    notes = Column(Text, nullable=True)
    
    exam_type = relationship("ExamType", lazy="selectin")
    wrong_questions = relationship(
        "ExamWrongQuestion",
        back_populates="exam",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    subject_results = relationship(
        "ExamSubjectResult",
        back_populates="exam",
        cascade="all, delete-orphan",
        lazy="selectin"
    )


class ExamWrongQuestion(BaseModel):
    """A question answered wrong in a mock exam. Counted per topic."""
    __tablename__ = "exam_wrong_questions"
    
    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    topic_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    question_number = Column(Integer, nullable=True)
    error_reason = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    
    exam = relationship("Exam", back_populates="wrong_questions")
    subject = relationship("Subject", lazy="selectin")
    topic = relationship("Topic", lazy="selectin")


class ExamSubjectResult(BaseModel):
    """Per-subject score sheet of one exam. Net = correct - wrong / 4."""
    __tablename__ = "exam_subject_results"
    
    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    correct_count = Column(Integer, nullable=False, default=0)
    wrong_count = Column(Integer, nullable=False, default=0)
    empty_count = Column(Integer, nullable=False, default=0)
    net_score = Column(Float, nullable=False, default=0.0)
    
    exam = relationship("Exam", back_populates="subject_results")
    subject = relationship("Subject", lazy="selectin")
