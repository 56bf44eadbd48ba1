"""
prepdesk/orm/study_log.py
Study events: daily study logs and topic reviews.

Both tables feed "days since last studied" for the priority scorer.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class DailyStudy(BaseModel):
    __tablename__ = "daily_studies"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
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
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    duration = Column(Integer, nullable=True, comment="Minutes")
    question_count = Column(Integer, nullable=True)
    correct_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    
    subject = relationship("Subject", lazy="selectin")
    topic = relationship("Topic", lazy="selectin")
    
    __table_args__ = (
        Index('ix_daily_study_user_topic_date', 'user_id', 'topic_id', 'date'),
    )


class TopicReview(BaseModel):
    __tablename__ = "topic_reviews"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
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
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    duration = Column(Integer, nullable=True, comment="Minutes")
    confidence = Column(Integer, nullable=True, comment="Self-rated 1-5")
    method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    
    subject = relationship("Subject", lazy="selectin")
    topic = relationship("Topic", lazy="selectin")
    
    __table_args__ = (
        Index('ix_topic_review_user_topic_date', 'user_id', 'topic_id', 'date'),
    )
