"""
prepdesk/orm/student_profile.py
Study preferences used by the plan generator
"""
from sqlalchemy import Column, Integer, String, Float, Date, JSON, ForeignKey
from prepdesk.orm.base import BaseModel


class StudentProfile(BaseModel):
    """
    One profile per user.
    
    available_days holds weekday indexes (0=Monday). break_preference is
    one of 'frequent', 'balanced', 'long' and drives session length.
    """
    __tablename__ = "student_profiles"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    daily_study_hours = Column(Float, nullable=True)
    available_days = Column(JSON, nullable=True)
    study_regularity = Column(String(50), nullable=True)
    break_preference = Column(String(50), nullable=True)
    target_rank = Column(Integer, nullable=True)
    exam_date = Column(Date, nullable=True)
