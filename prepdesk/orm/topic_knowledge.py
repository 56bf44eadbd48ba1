"""
prepdesk/orm/topic_knowledge.py
Per-student knowledge level (0-5) for each topic
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from prepdesk.orm.base import BaseModel


class TopicKnowledge(BaseModel):
    """
    Knowledge level of a user on a topic.
    
    0 = never seen, 5 = mastered. Set directly by the student or derived
    from the checked learning-objective ratio. A missing row means 0.
    """
    __tablename__ = "topic_knowledge"
    
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    topic_id = Column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    level = Column(Integer, nullable=False, default=0)
    
    topic = relationship("Topic", lazy="selectin")
    
    __table_args__ = (
        UniqueConstraint('user_id', 'topic_id', name='uq_user_topic_knowledge'),
        CheckConstraint('level BETWEEN 0 AND 5', name='ck_knowledge_level'),
    )
    
    def __repr__(self):
        return f"<TopicKnowledge(user={self.user_id}, topic={self.topic_id}, level={self.level})>"
