"""
prepdesk/schemas/plan_schemas.py
Weekly plan API schemas
"""

from datetime import date, datetime
from typing import Optional, List
from pydantic import Field

from prepdesk.schemas.common import CamelModel, SubjectBrief, TopicBrief


class PlanItemInput(CamelModel):
    """One session in a create/replace request. Ranges are checked by the validator."""
    day_of_week: int = Field(..., description="0=Monday ... 6=Sunday")
    subject_id: int
    topic_id: Optional[int] = None
    duration: Optional[int] = Field(None, description="Minutes")
    question_count: Optional[int] = None
    notes: Optional[str] = None


class CreatePlanRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date
    notes: Optional[str] = None
    items: List[PlanItemInput] = Field(default_factory=list)

    model_config = CamelModel.model_config | {
        "json_schema_extra": {
            "example": {
                "title": "Week 12",
                "startDate": "2026-03-16",
                "endDate": "2026-03-22",
                "items": [
                    {"dayOfWeek": 0, "subjectId": 1, "topicId": 4, "duration": 60}
                ]
            }
        }
    }


class ReplacePlanRequest(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    notes: Optional[str] = None
    items: List[PlanItemInput] = Field(default_factory=list)


class UpdateItemRequest(CamelModel):
    """Patch: only fields present in the body are applied."""
    day_of_week: Optional[int] = None
    subject_id: Optional[int] = None
    topic_id: Optional[int] = None
    duration: Optional[int] = None
    question_count: Optional[int] = None
    notes: Optional[str] = None


class ReorderRequest(CamelModel):
    item_id: int
    day_of_week: int
    sort_order: int


class ToggleRequest(CamelModel):
    completed: bool


class PlanItemResponse(CamelModel):
    id: int
    day_of_week: int
    subject_id: int
    topic_id: Optional[int] = None
    duration: Optional[int] = None
    question_count: Optional[int] = None
    notes: Optional[str] = None
    completed: bool
    sort_order: int
    subject: Optional[SubjectBrief] = None
    topic: Optional[TopicBrief] = None


class WeeklyPlanResponse(CamelModel):
    id: int
    title: str
    start_date: date
    end_date: date
    notes: Optional[str] = None
    created_at: datetime
    items: List[PlanItemResponse] = Field(default_factory=list)


class PlanPreferences(CamelModel):
    """Overrides for the stored profile, for one generation only."""
    daily_study_hours: Optional[float] = Field(None, ge=0, le=16)
    available_days: Optional[List[int]] = None
    break_preference: Optional[str] = None
    study_regularity: Optional[str] = None


class GeneratePlanRequest(CamelModel):
    week_start_date: date
    week_end_date: Optional[date] = Field(None, description="Defaults to start + 6 days")
    exam_type_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=200)
    preferences: Optional[PlanPreferences] = None


class GeneratePlanResponse(CamelModel):
    plan: WeeklyPlanResponse
    explanation: str
    source: str = Field(..., description="'ai' or 'rule_based'")
