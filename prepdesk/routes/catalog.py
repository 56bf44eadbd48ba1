"""
prepdesk/routes/catalog.py
Reference data: exam types, subjects, topics with prerequisite edges
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.orm.exam_type import ExamType
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic import Topic
from prepdesk.errors import NotFoundError
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.catalog_schemas import ExamTypeResponse, SubjectResponse, TopicResponse

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/exam-types", response_model=List[ExamTypeResponse])
async def list_exam_types(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(ExamType).order_by(ExamType.sort_order, ExamType.id))
    return result.scalars().all()


@router.get("/subjects/{exam_type_id}", response_model=List[SubjectResponse])
async def list_subjects(
    exam_type_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if await db.get(ExamType, exam_type_id) is None:
        raise NotFoundError("Exam type", exam_type_id)

    result = await db.execute(
        select(Subject)
        .where(Subject.exam_type_id == exam_type_id)
        .order_by(Subject.sort_order, Subject.id)
    )
    return result.scalars().all()


@router.get("/topics", response_model=List[TopicResponse])
async def list_topics(
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    exam_type_id: Optional[int] = Query(None, alias="examTypeId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Topics in curriculum order, optionally narrowed to a subject or exam type."""
    stmt = select(Topic).join(Subject, Topic.subject_id == Subject.id)
    if subject_id is not None:
        stmt = stmt.where(Topic.subject_id == subject_id)
    if exam_type_id is not None:
        stmt = stmt.where(Subject.exam_type_id == exam_type_id)
    stmt = stmt.order_by(Subject.sort_order, Topic.subject_id, Topic.curriculum_order, Topic.id)

    result = await db.execute(stmt)
    return result.scalars().all()
