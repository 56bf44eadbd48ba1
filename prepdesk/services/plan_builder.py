"""
prepdesk/services/plan_builder.py
Loads planner inputs from the database and turns generated plans into
persisted weekly plans.

Shared by the rule-based and the AI-assisted generation endpoints.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.orm.topic import Topic
from prepdesk.orm.subject import Subject
from prepdesk.orm.weekly_plan import WeeklyPlan
from prepdesk.errors import BadRequestError, ErrorCode
from prepdesk.services import topic_priority_engine
from prepdesk.services.knowledge_service import get_completion_ratios
from prepdesk.services.profile_service import get_profile
from prepdesk.services.weekly_plan_generator import (
    TopicCandidate,
    PlannerPreferences,
    generate_weekly_plan,
)
from prepdesk.services.weekly_plan_service import (
    create_plan,
    ensure_week_is_free,
    check_date_range,
)

logger = logging.getLogger(__name__)

WEEK_LENGTH_DAYS = 7


@dataclass
class PlanDraft:
    """A generated plan that has not been persisted yet."""
    title: str
    items: List[Dict[str, Any]]
    explanation: str
    source: str


@dataclass
class PlannerInputs:
    candidates: List[TopicCandidate]
    knowledge_levels: Dict[int, int]


def default_week_end(start_date: date) -> date:
    return start_date + timedelta(days=WEEK_LENGTH_DAYS - 1)


def default_title(start_date: date, end_date: date) -> str:
    return f"Weekly plan {start_date.isoformat()} - {end_date.isoformat()}"


async def load_preferences(
    user_id: int,
    db: AsyncSession,
    overrides: Optional[Dict[str, Any]] = None
) -> PlannerPreferences:
    """Stored profile values, with any request overrides on top."""
    profile = await get_profile(user_id, db)
    preferences = PlannerPreferences()
    if profile is not None:
        preferences = PlannerPreferences(
            daily_study_hours=profile.daily_study_hours,
            available_days=profile.available_days,
            break_preference=profile.break_preference,
            study_regularity=profile.study_regularity,
        )

    for key, value in (overrides or {}).items():
        if value is not None and hasattr(preferences, key):
            setattr(preferences, key, value)
    return preferences


async def load_planner_inputs(
    user_id: int,
    db: AsyncSession,
    exam_type_id: Optional[int] = None
) -> PlannerInputs:
    """
    Gather per-topic signals for the generator.

    Topics without learning objectives use knowledge_level / 5 as their
    completion ratio.
    """
    stmt = select(Topic).join(Subject, Topic.subject_id == Subject.id)
    if exam_type_id is not None:
        stmt = stmt.where(Subject.exam_type_id == exam_type_id)
    topics = (await db.execute(stmt.order_by(Topic.id))).scalars().all()

    levels = await topic_priority_engine.fetch_knowledge_levels(user_id, db)
    ratios = await get_completion_ratios(user_id, db)
    ranked = topic_priority_engine.rank_topics(
        await topic_priority_engine.fetch_topic_signals(db, exam_type_id),
        levels,
        await topic_priority_engine.fetch_last_studied(user_id, db),
        await topic_priority_engine.fetch_wrong_counts(user_id, db),
        limit=None,
    )
    scores = {entry["topic_id"]: entry["priority_score"] for entry in ranked}

    candidates = []
    for topic in topics:
        level = levels.get(topic.id, 0)
        candidates.append(TopicCandidate(
            topic_id=topic.id,
            topic_name=topic.name,
            subject_id=topic.subject_id,
            subject_name=topic.subject.name,
            curriculum_order=topic.curriculum_order,
            difficulty=topic.difficulty,
            estimated_hours=topic.estimated_hours,
            knowledge_level=level,
            completion_ratio=ratios.get(topic.id, level / 5),
            priority_score=scores.get(topic.id, 0.0),
            hard_prerequisites=[p.prerequisite_id for p in topic.prerequisites if p.is_hard],
        ))

    return PlannerInputs(candidates=candidates, knowledge_levels=levels)


async def build_rule_based_draft(
    user_id: int,
    db: AsyncSession,
    start_date: date,
    end_date: date,
    exam_type_id: Optional[int] = None,
    preference_overrides: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None
) -> PlanDraft:
    inputs = await load_planner_inputs(user_id, db, exam_type_id)
    if not inputs.candidates:
        raise BadRequestError(
            "No topics available to plan",
            code=ErrorCode.INVALID_INPUT,
            details={"examTypeId": exam_type_id}
        )

    preferences = await load_preferences(user_id, db, preference_overrides)
    generated = generate_weekly_plan(inputs.candidates, preferences, inputs.knowledge_levels)

    return PlanDraft(
        title=title or default_title(start_date, end_date),
        items=generated.to_items(),
        explanation=generated.explanation,
        source=generated.source,
    )


async def persist_draft(
    user_id: int,
    db: AsyncSession,
    draft: PlanDraft,
    start_date: date,
    end_date: date
) -> WeeklyPlan:
    """Validate and store the draft as one plan; the explanation goes to notes."""
    return await create_plan(
        user_id=user_id,
        db=db,
        title=draft.title,
        start_date=start_date,
        end_date=end_date,
        items=draft.items,
        notes=draft.explanation,
    )


async def generate_rule_based_plan(
    user_id: int,
    db: AsyncSession,
    start_date: date,
    end_date: Optional[date] = None,
    exam_type_id: Optional[int] = None,
    preference_overrides: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None
):
    """Generate with the rule-based planner and persist. Returns (plan, draft)."""
    end_date = end_date or default_week_end(start_date)
    check_date_range(start_date, end_date)
    await ensure_week_is_free(user_id, db, start_date, end_date)

    draft = await build_rule_based_draft(
        user_id, db, start_date, end_date, exam_type_id, preference_overrides, title
    )
    plan = await persist_draft(user_id, db, draft, start_date, end_date)
    logger.info(f"Rule-based plan stored: id={plan.id}, items={len(draft.items)}")
    return plan, draft
