"""
prepdesk/services/ai_plan_service.py
AI-assisted weekly plan generation.

PROCESS:
1. Build a compact context: weak topics, latest exam net scores, the last
   14 days of study per subject, preferences and the allowed subjects
2. Ask the model for a JSON plan, bounded by a caller-owned timeout
3. Extract the JSON object from the reply
4. Resolve names against the catalog and validate every item
5. On any failure, fall back to the rule-based planner when enabled,
   otherwise raise a generic 502

Nothing is persisted here; the caller stores the accepted draft.
"""

import re
import json
import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from prepdesk.orm.exam import Exam
from prepdesk.orm.study_log import DailyStudy
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic_knowledge import TopicKnowledge
from prepdesk.config.feature_flags import feature_flags
from prepdesk.errors import PlanGenerationError
from prepdesk.services.gemini_client import GeminiPlanClient
from prepdesk.services.plan_validator import load_plan_catalog, normalize_external_items
from prepdesk.services.plan_builder import (
    PlanDraft,
    build_rule_based_draft,
    load_preferences,
    default_title,
)

logger = logging.getLogger(__name__)

WEAK_TOPIC_MAX_LEVEL = 3
WEAK_TOPIC_LIMIT = 20
STUDY_HISTORY_DAYS = 14

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = """You are a weekly study plan assistant for students preparing for a university entrance exam.
Build a personalised weekly plan from the student's weak topics, latest mock exam and recent study history.

RULES:
- Total weekly study between 15 and 25 hours
- Give more weight to weak topics (knowledge level 0-2)
- 2 to 4 subjects per day
- Weekends may be slightly heavier
- Each session lasts 30 to 90 minutes
- Use only subject and topic names from the allowed list; a subject name alone is fine

When student preferences are given, follow them:
- Put little or nothing on unavailable days
- Scale the weekly total to the daily study hours
- Irregular students get short, motivating sessions
- Frequent breaks mean 30-40 minute sessions, long sessions mean 60-90 minutes

Reply with JSON only, in this format:
{
  "title": "Plan title",
  "items": [
    {"dayOfWeek": 0, "subjectName": "Mathematics", "topicName": "Derivatives", "duration": 60, "notes": "optional"}
  ],
  "explanation": "Two or three sentences on why the plan looks like this"
}

dayOfWeek: 0=Monday, 1=Tuesday, 2=Wednesday, 3=Thursday, 4=Friday, 5=Saturday, 6=Sunday"""


class PlanParseError(ValueError):
    pass


def extract_plan_json(raw: str) -> Dict[str, Any]:
    """Pull the JSON object out of a reply that may be wrapped in prose or fences."""
    if not raw:
        raise PlanParseError("Empty reply")
    match = JSON_OBJECT_PATTERN.search(raw)
    if not match:
        raise PlanParseError("No JSON object in reply")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise PlanParseError(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, dict) or not isinstance(parsed.get("items"), list):
        raise PlanParseError("Reply has no items list")
    return parsed


async def build_plan_context(
    user_id: int,
    db: AsyncSession,
    start_date: date,
    end_date: date,
    preferences: Optional[Dict[str, Any]] = None
) -> str:
    weak = (await db.execute(
        select(TopicKnowledge)
        .where(
            and_(
                TopicKnowledge.user_id == user_id,
                TopicKnowledge.level <= WEAK_TOPIC_MAX_LEVEL
            )
        )
        .order_by(TopicKnowledge.level, TopicKnowledge.id)
        .limit(WEAK_TOPIC_LIMIT)
    )).scalars().all()
    weak_str = ", ".join(
        f"{k.topic.subject.name}-{k.topic.name}({k.level})" for k in weak
    )

    latest_exam = (await db.execute(
        select(Exam).where(Exam.user_id == user_id).order_by(Exam.date.desc(), Exam.id.desc()).limit(1)
    )).scalar_one_or_none()
    if latest_exam is not None and latest_exam.subject_results:
        exam_str = f"Latest mock exam ({latest_exam.exam_type.name}): " + ", ".join(
            f"{r.subject.name}:{r.net_score:.1f}" for r in latest_exam.subject_results
        )
    else:
        exam_str = "No mock exam results yet."

    history_start = datetime.combine(start_date - timedelta(days=STUDY_HISTORY_DAYS), datetime.min.time())
    distribution = (await db.execute(
        select(
            Subject.name,
            func.coalesce(func.sum(DailyStudy.duration), 0).label("minutes"),
            func.coalesce(func.sum(DailyStudy.question_count), 0).label("questions")
        )
        .join(Subject, DailyStudy.subject_id == Subject.id)
        .where(
            and_(
                DailyStudy.user_id == user_id,
                DailyStudy.date >= history_start,
                DailyStudy.date < datetime.combine(start_date, datetime.min.time())
            )
        )
        .group_by(Subject.name)
        .order_by(Subject.name)
    )).all()
    study_str = ", ".join(f"{row.name}:{row.minutes}min/{row.questions}q" for row in distribution)

    subjects = (await db.execute(select(Subject).order_by(Subject.exam_type_id, Subject.sort_order))).scalars().all()
    allowed_str = ", ".join(f"{s.exam_type.name} - {s.name}" for s in subjects)

    lines = [
        f"Week: {start_date.isoformat()} to {end_date.isoformat()}",
        f"Weak topics (level 0-3): {weak_str or 'not assessed yet'}",
        exam_str,
        f"Study in the last 2 weeks: {study_str or 'no data'}",
        f"Allowed subjects: {allowed_str}",
    ]
    if preferences:
        lines.append("Student preferences:")
        lines.extend(f"- {key}: {value}" for key, value in preferences.items() if value is not None)
    return "\n".join(lines)


async def request_ai_draft(
    user_id: int,
    db: AsyncSession,
    client: GeminiPlanClient,
    start_date: date,
    end_date: date,
    preferences: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None
) -> PlanDraft:
    """
    One generation attempt. Raises on any failure.

    Raises:
        asyncio.TimeoutError, PlanParseError, or whatever the client raises
    """
    timeout = timeout if timeout is not None else feature_flags.AI_PLAN_TIMEOUT_SECONDS
    context = await build_plan_context(user_id, db, start_date, end_date, preferences)

    logger.info(f"Requesting AI plan: user={user_id}, week={start_date}, timeout={timeout}s")
    raw = await asyncio.wait_for(client.generate(SYSTEM_PROMPT, context), timeout=timeout)

    parsed = extract_plan_json(raw)
    result = normalize_external_items(parsed["items"], await load_plan_catalog(db))
    if not result.items:
        raise PlanParseError(f"No valid items in AI plan ({len(result.violations)} rejected)")

    return PlanDraft(
        title=str(parsed.get("title") or default_title(start_date, end_date)),
        items=result.items,
        explanation=str(parsed.get("explanation") or "Weekly plan generated by AI."),
        source="ai",
    )


async def generate_ai_draft(
    user_id: int,
    db: AsyncSession,
    client: GeminiPlanClient,
    start_date: date,
    end_date: date,
    exam_type_id: Optional[int] = None,
    preference_overrides: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None
) -> PlanDraft:
    """AI draft, or the rule-based draft when the AI attempt fails and fallback is on."""
    preferences = await load_preferences(user_id, db, preference_overrides)
    try:
        draft = await request_ai_draft(
            user_id, db, client, start_date, end_date,
            preferences={
                "daily_study_hours": preferences.daily_study_hours,
                "available_days": preferences.days,
                "break_preference": preferences.break_preference,
                "study_regularity": preferences.study_regularity,
            }
        )
        if title:
            draft.title = title
        return draft
    except Exception as e:
        if not feature_flags.AI_PLAN_FALLBACK_ENABLED:
            logger.error(f"AI plan generation failed: {type(e).__name__}: {str(e)}", exc_info=True)
            raise PlanGenerationError()
        logger.warning(f"AI plan generation failed ({type(e).__name__}: {str(e)}); using rule-based planner")

    return await build_rule_based_draft(
        user_id, db, start_date, end_date, exam_type_id, preference_overrides, title
    )
