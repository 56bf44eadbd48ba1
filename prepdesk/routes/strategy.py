"""
prepdesk/routes/strategy.py
Topic recommendations and rule-based plan generation
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.strategy_schemas import TopicRecommendation, LastStudiedEntry
from prepdesk.schemas.plan_schemas import GeneratePlanRequest, GeneratePlanResponse, WeeklyPlanResponse
from prepdesk.services.topic_priority_engine import (
    get_topic_recommendations,
    get_last_studied,
    DEFAULT_LIMIT,
    MAX_LIMIT,
)
from prepdesk.services.plan_builder import generate_rule_based_plan

router = APIRouter(prefix="/api/strategy", tags=["strategy"])
logger = logging.getLogger(__name__)


@router.get("/recommendations", response_model=List[TopicRecommendation])
async def recommendations(
    exam_type_id: Optional[int] = Query(None, alias="examTypeId"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Topics ranked by priority, highest first.

    Score = subjectWeight × (5 - level) × timeFactor + ln(wrong + 1) × 0.5
    """
    return await get_topic_recommendations(current_user.id, db, exam_type_id, limit)


@router.get("/last-studied", response_model=List[LastStudiedEntry])
async def last_studied(
    exam_type_id: Optional[int] = Query(None, alias="examTypeId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_last_studied(current_user.id, db, exam_type_id)


@router.post("/generate-plan", response_model=GeneratePlanResponse, status_code=status.HTTP_201_CREATED)
async def generate_plan(
    request: GeneratePlanRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Build and store a weekly plan with the rule-based planner.

    Raises:
        400: No topics, or end before start
        409: A plan already covers part of the week
    """
    logger.info(f"Rule-based plan requested: user={current_user.id}, week={request.week_start_date}")

    overrides = request.preferences.model_dump(exclude_unset=True) if request.preferences else None
    plan, draft = await generate_rule_based_plan(
        current_user.id,
        db,
        start_date=request.week_start_date,
        end_date=request.week_end_date,
        exam_type_id=request.exam_type_id,
        preference_overrides=overrides,
        title=request.title,
    )
    return GeneratePlanResponse(
        plan=WeeklyPlanResponse.model_validate(plan),
        explanation=draft.explanation,
        source=draft.source,
    )
