"""
prepdesk/orm/weekly_plan.py
Weekly study plans and their day-indexed items
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class WeeklyPlan(BaseModel):
    """
    A 7-day schedule owned by one user.
    
    Items are ordered by (day_of_week, sort_order). Replacing a plan's
    items deletes every previous item in the same transaction.
    """
    
    __tablename__ = "weekly_plans"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner"
    )
    
    title = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    
    notes = Column(
        Text,
        nullable=True,
        comment="Free text; AI plans store their explanation here"
    )
    
    items = relationship(
        "WeeklyPlanItem",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by=lambda: [WeeklyPlanItem.day_of_week, WeeklyPlanItem.sort_order],
        lazy="selectin"
    )
    
    __table_args__ = (
        Index('ix_weekly_plan_user_start', 'user_id', 'start_date'),
    )
    
    def __repr__(self):
        return f"<WeeklyPlan(id={self.id}, user={self.user_id}, start={self.start_date})>"


class WeeklyPlanItem(BaseModel):
    """One study session: day, subject, optional topic, minutes."""
    
    __tablename__ = "weekly_plan_items"
    
    weekly_plan_id = Column(
        Integer,
        ForeignKey("weekly_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    day_of_week = Column(Integer, nullable=False, comment="0=Monday ... 6=Sunday")
    
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
    
    duration = Column(Integer, nullable=True, comment="Minutes")
    question_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    
    plan = relationship("WeeklyPlan", back_populates="items")
    subject = relationship("Subject", lazy="selectin")
    topic = relationship("Topic", lazy="selectin")
    
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_plan_item_day'),
    )
    
    def __repr__(self):
        return f"<WeeklyPlanItem(id={self.id}, day={self.day_of_week}, subject={self.subject_id})>"
