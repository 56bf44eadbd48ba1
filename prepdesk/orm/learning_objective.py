"""
prepdesk/orm/learning_objective.py
Checklist sub-objectives of a topic and per-user progress on them
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint
from prepdesk.orm.base import BaseModel


class LearningObjective(BaseModel):
    __tablename__ = "learning_objectives"
    
    topic_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)


class ObjectiveProgress(BaseModel):
    """One row per (user, objective)."""
    __tablename__ = "objective_progress"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    objective_id = Column(
        Integer,
        ForeignKey("learning_objectives.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    checked = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    
    __table_args__ = (
        UniqueConstraint('user_id', 'objective_id', name='uq_user_objective'),
    )
