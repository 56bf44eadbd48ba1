"""
prepdesk/routes/spaced_repetition.py
Review queue built from wrong exam questions
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.errors import BadRequestError, ErrorCode
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.study_schemas import (
    DueItemsResponse,
    ReviewItemResponse,
    ReviewSubmit,
    EnqueueExamRequest,
    EnqueueResult,
)
from prepdesk.services import spaced_repetition
from prepdesk.services.spaced_repetition import ReviewQuality

router = APIRouter(prefix="/api/spaced-repetition", tags=["spaced-repetition"])


@router.get("", response_model=DueItemsResponse)
async def due_items(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await spaced_repetition.get_due_items(current_user.id, db)


@router.post("", response_model=ReviewItemResponse)
async def submit_review(
    request: ReviewSubmit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        quality = ReviewQuality(request.quality)
    except ValueError:
        raise BadRequestError(
            "quality must be one of easy, hard, wrong",
            code=ErrorCode.INVALID_INPUT,
            details={"field": "quality", "value": request.quality}
        )
    return await spaced_repetition.submit_review(current_user.id, request.item_id, quality, db)


@router.put("", response_model=EnqueueResult)
async def enqueue_exam(
    request: EnqueueExamRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Queue all wrong questions of an exam that are not queued yet."""
    return await spaced_repetition.enqueue_exam(current_user.id, request.exam_id, db)
