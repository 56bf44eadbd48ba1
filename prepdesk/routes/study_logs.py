"""
prepdesk/routes/study_logs.py
Daily study logs and topic reviews
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.study_schemas import (
    DailyStudyCreate,
    DailyStudyResponse,
    TopicReviewCreate,
    TopicReviewResponse,
)
from prepdesk.services import study_log_service

router = APIRouter(tags=["study-logs"])


@router.get("/api/daily-study", response_model=List[DailyStudyResponse])
async def list_daily_study(
    start: Optional[datetime] = Query(None, alias="startDate"),
    end: Optional[datetime] = Query(None, alias="endDate"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await study_log_service.list_daily_studies(current_user.id, db, start, end, subject_id)


@router.post("/api/daily-study", response_model=DailyStudyResponse, status_code=status.HTTP_201_CREATED)
async def create_daily_study(
    request: DailyStudyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await study_log_service.create_daily_study(current_user.id, db, request.model_dump())


@router.get("/api/topic-reviews", response_model=List[TopicReviewResponse])
async def list_topic_reviews(
    start: Optional[datetime] = Query(None, alias="startDate"),
    end: Optional[datetime] = Query(None, alias="endDate"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await study_log_service.list_topic_reviews(current_user.id, db, start, end, subject_id)


@router.post("/api/topic-reviews", response_model=TopicReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_topic_review(
    request: TopicReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await study_log_service.create_topic_review(current_user.id, db, request.model_dump())
