"""
prepdesk/orm/topic.py
Curriculum topics and the prerequisite graph between them
"""
from enum import Enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class PrerequisiteStrength(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class Topic(BaseModel):
    """
    Smallest curriculum unit a student studies.
    
    curriculum_order follows the official syllabus sequence within the
    subject. difficulty is 1 (easy) to 5 (hard).
    """
    __tablename__ = "topics"
    
    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(200), nullable=False, index=True)
    curriculum_order = Column(Integer, nullable=False, default=0)
    difficulty = Column(Integer, nullable=False, default=3)
    estimated_hours = Column(Float, nullable=True)
    
    subject = relationship("Subject", back_populates="topics", lazy="selectin")
    prerequisites = relationship(
        "TopicPrerequisite",
        foreign_keys="TopicPrerequisite.topic_id",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    
    __table_args__ = (
        CheckConstraint('difficulty BETWEEN 1 AND 5', name='ck_topic_difficulty'),
    )
    
    def __repr__(self):
        return f"<Topic(id={self.id}, name='{self.name}')>"


class TopicPrerequisite(BaseModel):
    """Directed edge: topic_id depends on prerequisite_id."""
    __tablename__ = "topic_prerequisites"
    
    topic_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    prerequisite_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    strength = Column(String(10), nullable=False, default=PrerequisiteStrength.HARD.value)
    
    __table_args__ = (
        UniqueConstraint('topic_id', 'prerequisite_id', name='uq_topic_prerequisite'),
    )
    
    @property
    def is_hard(self) -> bool:
        return self.strength == PrerequisiteStrength.HARD.value
