"""
prepdesk/schemas/strategy_schemas.py
Topic recommendation schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import Field

from prepdesk.schemas.common import CamelModel


class TopicRecommendation(CamelModel):
    topic_id: int
    topic_name: str
    subject_id: int
    subject_name: str
    exam_type_name: str
    knowledge_level: int = Field(..., ge=0, le=5)
    days_since_last_study: Optional[int] = Field(None, description="Null when never studied")
    wrong_count: int
    priority_score: float


class LastStudiedEntry(CamelModel):
    topic_id: int
    last_studied_date: datetime
    days_since: int
