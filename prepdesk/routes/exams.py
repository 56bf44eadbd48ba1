"""
prepdesk/routes/exams.py
Mock exams, per-subject results and wrong questions
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.study_schemas import (
    ExamCreate,
    ExamResponse,
    SubjectResultsRequest,
    SubjectResultsResponse,
    WrongQuestionCreate,
    WrongQuestionResponse,
)
from prepdesk.services import exam_service

router = APIRouter(prefix="/api/exams", tags=["exams"])


@router.get("", response_model=List[ExamResponse])
async def list_exams(
    exam_type_id: Optional[int] = Query(None, alias="examTypeId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await exam_service.list_exams(current_user.id, db, exam_type_id)


@router.post("", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
async def create_exam(
    request: ExamCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await exam_service.create_exam(
        current_user.id,
        db,
        title=request.title,
        exam_type_id=request.exam_type_id,
        date=request.date,
        notes=request.notes,
    )


@router.get("/{exam_id}", response_model=ExamResponse)
async def get_exam(
    exam_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await exam_service.get_owned_exam(exam_id, current_user.id, db)


@router.post("/{exam_id}/results", response_model=SubjectResultsResponse, status_code=status.HTTP_201_CREATED)
async def save_results(
    exam_id: int,
    request: SubjectResultsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace the exam's per-subject results. Net = correct - wrong / 4."""
    return await exam_service.save_subject_results(
        exam_id, current_user.id, [r.model_dump() for r in request.results], db
    )


@router.get("/{exam_id}/wrong-questions", response_model=List[WrongQuestionResponse])
async def list_wrong_questions(
    exam_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await exam_service.list_wrong_questions(exam_id, current_user.id, db)


@router.post("/{exam_id}/wrong-questions", response_model=WrongQuestionResponse, status_code=status.HTTP_201_CREATED)
async def add_wrong_question(
    exam_id: int,
    request: WrongQuestionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Record a wrong answer; it is also queued for spaced repetition."""
    return await exam_service.add_wrong_question(
        exam_id,
        current_user.id,
        db,
        subject_id=request.subject_id,
        topic_id=request.topic_id,
        question_number=request.question_number,
        error_reason=request.error_reason,
        notes=request.notes,
    )
