"""
prepdesk/orm/spaced_repetition.py
Review cards scheduled from wrong exam questions
"""
from enum import Enum
from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class ReviewStatus(str, Enum):
    PENDING = "pending"
    MASTERED = "mastered"


class SpacedRepetitionItem(BaseModel):
    __tablename__ = "spaced_repetition_items"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    wrong_question_id = Column(
        Integer,
        ForeignKey("exam_wrong_questions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True)
    
    interval = Column(Integer, nullable=False, default=1, comment="Days")
    ease_factor = Column(Float, nullable=False, default=2.5)
    next_review_date = Column(DateTime, nullable=False)
    review_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=ReviewStatus.PENDING.value, index=True)
    
    subject = relationship("Subject", lazy="selectin")
    topic = relationship("Topic", lazy="selectin")
