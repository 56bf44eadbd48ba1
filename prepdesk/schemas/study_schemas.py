"""
prepdesk/schemas/study_schemas.py
Schemas for the student's study records: profile, knowledge levels,
objective progress, study logs, exams and review cards
"""

from datetime import date, datetime
from typing import Optional, List
from pydantic import Field

from prepdesk.schemas.common import CamelModel, SubjectBrief, TopicBrief


# ============================================================================
# Profile
# ============================================================================

class ProfileUpdate(CamelModel):
    daily_study_hours: Optional[float] = None
    available_days: Optional[List[int]] = None
    study_regularity: Optional[str] = None
    break_preference: Optional[str] = None
    target_rank: Optional[int] = Field(None, ge=1)
    exam_date: Optional[date] = None
    exam_track: Optional[str] = None


class ProfileResponse(CamelModel):
    daily_study_hours: Optional[float] = None
    available_days: Optional[List[int]] = None
    study_regularity: Optional[str] = None
    break_preference: Optional[str] = None
    target_rank: Optional[int] = None
    exam_date: Optional[date] = None
    exam_track: Optional[str] = None


# ============================================================================
# Knowledge
# ============================================================================

class KnowledgeUpdate(CamelModel):
    topic_id: int
    level: int


class BulkKnowledgeUpdate(CamelModel):
    updates: List[KnowledgeUpdate]


class BulkKnowledgeResponse(CamelModel):
    count: int


class KnowledgeResponse(CamelModel):
    id: int
    topic_id: int
    level: int
    updated_at: datetime
    topic: Optional[TopicBrief] = None


class ObjectiveProgressEntry(CamelModel):
    objective_id: int
    code: Optional[str] = None
    description: str
    checked: bool
    notes: Optional[str] = None


class ObjectiveProgressUpdate(CamelModel):
    objective_id: int
    checked: Optional[bool] = None
    notes: Optional[str] = None


class ObjectiveProgressResult(CamelModel):
    objective_id: int
    checked: bool
    notes: Optional[str] = None
    auto_level: int
    checked_count: int
    total_count: int


# ============================================================================
# Study logs
# ============================================================================

class DailyStudyCreate(CamelModel):
    subject_id: int
    topic_id: Optional[int] = None
    date: Optional[datetime] = None
    duration: Optional[int] = Field(None, description="Minutes")
    question_count: Optional[int] = Field(None, ge=0)
    correct_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class DailyStudyResponse(CamelModel):
    id: int
    subject_id: int
    topic_id: Optional[int] = None
    date: datetime
    duration: Optional[int] = None
    question_count: Optional[int] = None
    correct_count: Optional[int] = None
    notes: Optional[str] = None
    subject: Optional[SubjectBrief] = None
    topic: Optional[TopicBrief] = None


class TopicReviewCreate(CamelModel):
    subject_id: int
    topic_id: int
    date: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    confidence: Optional[int] = None
    method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class TopicReviewResponse(CamelModel):
    id: int
    subject_id: int
    topic_id: int
    date: datetime
    duration: Optional[int] = None
    confidence: Optional[int] = None
    method: Optional[str] = None
    notes: Optional[str] = None
    subject: Optional[SubjectBrief] = None
    topic: Optional[TopicBrief] = None


# ============================================================================
# Exams
# ============================================================================

class ExamCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    exam_type_id: int
    date: Optional[datetime] = None
    notes: Optional[str] = None


class SubjectResultInput(CamelModel):
    subject_id: int
    correct_count: int = Field(..., ge=0)
    wrong_count: int = Field(..., ge=0)
    empty_count: int = Field(..., ge=0)


class SubjectResultsRequest(CamelModel):
    results: List[SubjectResultInput]


class SubjectResultResponse(CamelModel):
    id: int
    subject_id: int
    correct_count: int
    wrong_count: int
    empty_count: int
    net_score: float
    subject: Optional[SubjectBrief] = None


class SubjectResultsResponse(CamelModel):
    results: List[SubjectResultResponse]
    total_net: float


class WrongQuestionCreate(CamelModel):
    subject_id: int
    topic_id: Optional[int] = None
    question_number: Optional[int] = Field(None, ge=1)
    error_reason: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class WrongQuestionResponse(CamelModel):
    id: int
    exam_id: int
    subject_id: int
    topic_id: Optional[int] = None
    question_number: Optional[int] = None
    error_reason: Optional[str] = None
    notes: Optional[str] = None
    subject: Optional[SubjectBrief] = None
    topic: Optional[TopicBrief] = None


class ExamResponse(CamelModel):
    id: int
    exam_type_id: int
    title: str
    date: datetime
    notes: Optional[str] = None
    subject_results: List[SubjectResultResponse] = Field(default_factory=list)
    wrong_questions: List[WrongQuestionResponse] = Field(default_factory=list)


# ============================================================================
# Spaced repetition
# ============================================================================

class ReviewItemResponse(CamelModel):
    id: int
    wrong_question_id: int
    subject_id: int
    topic_id: Optional[int] = None
    interval: int
    ease_factor: float
    next_review_date: datetime
    review_count: int
    status: str
    subject: Optional[SubjectBrief] = None
    topic: Optional[TopicBrief] = None


class ReviewStats(CamelModel):
    due_today: int
    total_pending: int
    total_mastered: int


class DueItemsResponse(CamelModel):
    due_items: List[ReviewItemResponse]
    stats: ReviewStats


class ReviewSubmit(CamelModel):
    item_id: int
    quality: str = Field(..., description="easy | hard | wrong")


class EnqueueExamRequest(CamelModel):
    exam_id: int


class EnqueueResult(CamelModel):
    added: int
    already_exists: int
