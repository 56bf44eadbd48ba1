"""
prepdesk/routes/ai_plan.py
AI-assisted weekly plan generation.

The model's plan is validated against the catalog before anything is
stored. When the model fails, the rule-based planner takes over unless
AI_PLAN_FALLBACK_ENABLED is off, in which case the caller gets a 502.
"""

import logging
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.config.feature_flags import feature_flags
from prepdesk.errors import ForbiddenError
from prepdesk.routes.auth import require_ai_access
from prepdesk.schemas.plan_schemas import GeneratePlanRequest, GeneratePlanResponse, WeeklyPlanResponse
from prepdesk.services.gemini_client import GeminiPlanClient, get_plan_client
from prepdesk.services.ai_plan_service import generate_ai_draft
from prepdesk.services.plan_builder import default_week_end, persist_draft
from prepdesk.services.weekly_plan_service import ensure_week_is_free, check_date_range

router = APIRouter(prefix="/api/ai", tags=["ai"])
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


@router.post("/generate-plan", response_model=GeneratePlanResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(feature_flags.AI_PLAN_RATE_LIMIT)
async def generate_ai_plan(
    request: Request,
    body: GeneratePlanRequest,
    current_user: User = Depends(require_ai_access),
    client: GeminiPlanClient = Depends(get_plan_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Generate and store an AI-assisted weekly plan.

    Raises:
        403: AI not enabled for the user, or feature switched off
        409: A plan already covers part of the week
        429: Rate limit exceeded
        502: Generation failed and fallback is disabled
    """
    if not feature_flags.FEATURE_AI_PLAN_GENERATION:
        raise ForbiddenError("AI plan generation is currently disabled")

    start_date = body.week_start_date
    end_date = body.week_end_date or default_week_end(start_date)
    check_date_range(start_date, end_date)
    await ensure_week_is_free(current_user.id, db, start_date, end_date)

    logger.info(f"AI plan requested: user={current_user.id}, week={start_date}..{end_date}")

    overrides = body.preferences.model_dump(exclude_unset=True) if body.preferences else None
    draft = await generate_ai_draft(
        current_user.id,
        db,
        client,
        start_date,
        end_date,
        exam_type_id=body.exam_type_id,
        preference_overrides=overrides,
        title=body.title,
    )
    plan = await persist_draft(current_user.id, db, draft, start_date, end_date)

    logger.info(f"AI plan stored: id={plan.id}, source={draft.source}, items={len(draft.items)}")
    return GeneratePlanResponse(
        plan=WeeklyPlanResponse.model_validate(plan),
        explanation=draft.explanation,
        source=draft.source,
    )
