"""
prepdesk/schemas/catalog_schemas.py
Exam types, subjects and topics (reference data)
"""

from typing import Optional, List
from pydantic import Field

from prepdesk.schemas.common import CamelModel


class ExamTypeResponse(CamelModel):
    id: int
    name: str
    sort_order: int


class SubjectResponse(CamelModel):
    id: int
    exam_type_id: int
    name: str
    question_count: int
    sort_order: int


class PrerequisiteResponse(CamelModel):
    prerequisite_id: int
    strength: str


class TopicResponse(CamelModel):
    id: int
    subject_id: int
    name: str
    curriculum_order: int
    difficulty: int
    estimated_hours: Optional[float] = None
    prerequisites: List[PrerequisiteResponse] = Field(default_factory=list)
