"""
prepdesk/services/knowledge_service.py
Knowledge levels and learning-objective progress.

A knowledge level (0-5) exists at most once per (user, topic). Setting it
is a find-or-create under that uniqueness constraint. Checking learning
objectives recomputes the topic's level as round(checked / total × 5).
"""

import math
import logging
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from prepdesk.orm.topic import Topic
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic_knowledge import TopicKnowledge
from prepdesk.orm.learning_objective import LearningObjective, ObjectiveProgress
from prepdesk.errors import NotFoundError, BadRequestError, ErrorCode, validate_range

logger = logging.getLogger(__name__)

MIN_LEVEL = 0
MAX_LEVEL = 5


def level_from_objectives(checked_count: int, total_count: int) -> int:
    """Half-up rounding of checked/total scaled to 0-5."""
    if total_count <= 0:
        return 0
    return int(math.floor(checked_count / total_count * MAX_LEVEL + 0.5))


async def _require_topic(topic_id: int, db: AsyncSession) -> Topic:
    topic = await db.get(Topic, topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic


async def list_knowledge(
    user_id: int,
    db: AsyncSession,
    exam_type_id: Optional[int] = None
) -> List[TopicKnowledge]:
    stmt = select(TopicKnowledge).where(TopicKnowledge.user_id == user_id)
    if exam_type_id is not None:
        stmt = stmt.join(Topic, TopicKnowledge.topic_id == Topic.id).join(
            Subject, Topic.subject_id == Subject.id
        ).where(Subject.exam_type_id == exam_type_id)
    stmt = stmt.order_by(TopicKnowledge.updated_at.desc())

    result = await db.execute(stmt)
    return result.scalars().all()


async def _upsert_level(user_id: int, topic_id: int, level: int, db: AsyncSession) -> TopicKnowledge:
    """Find-or-create without committing."""
    result = await db.execute(
        select(TopicKnowledge).where(
            and_(
                TopicKnowledge.user_id == user_id,
                TopicKnowledge.topic_id == topic_id
            )
        )
    )
    knowledge = result.scalar_one_or_none()
    if knowledge is None:
        knowledge = TopicKnowledge(user_id=user_id, topic_id=topic_id, level=level)
        db.add(knowledge)
    else:
        knowledge.level = level
    return knowledge


async def set_knowledge_level(user_id: int, topic_id: int, level: int, db: AsyncSession) -> TopicKnowledge:
    validate_range(level, "level", MIN_LEVEL, MAX_LEVEL)
    await _require_topic(topic_id, db)

    knowledge = await _upsert_level(user_id, topic_id, level, db)
    await db.commit()
    await db.refresh(knowledge)

    logger.info(f"Knowledge level set: user={user_id}, topic={topic_id}, level={level}")
    return knowledge


async def bulk_set_knowledge_levels(
    user_id: int,
    updates: List[Dict[str, int]],
    db: AsyncSession
) -> int:
    """Apply every update or none of them."""
    if not updates:
        raise BadRequestError("updates must not be empty", code=ErrorCode.MISSING_FIELD, details={"field": "updates"})

    for update in updates:
        validate_range(update["level"], "level", MIN_LEVEL, MAX_LEVEL)

    topic_ids = {u["topic_id"] for u in updates}
    result = await db.execute(select(Topic.id).where(Topic.id.in_(topic_ids)))
    missing = topic_ids - set(result.scalars().all())
    if missing:
        raise BadRequestError(
            "Unknown topics in updates",
            code=ErrorCode.UNKNOWN_REFERENCE,
            details={"topic_ids": sorted(missing)}
        )

    try:
        for update in updates:
            await _upsert_level(user_id, update["topic_id"], update["level"], db)
            await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Bulk knowledge update: user={user_id}, count={len(updates)}")
    return len(updates)


# ============================================================================
# Learning objectives
# ============================================================================

async def list_objective_progress(user_id: int, topic_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
    """Every objective of the topic with the user's checked state."""
    objectives = (await db.execute(
        select(LearningObjective)
        .where(LearningObjective.topic_id == topic_id)
        .order_by(LearningObjective.sort_order, LearningObjective.id)
    )).scalars().all()

    progress = (await db.execute(
        select(ObjectiveProgress).where(
            and_(
                ObjectiveProgress.user_id == user_id,
                ObjectiveProgress.objective_id.in_([o.id for o in objectives])
            )
        )
    )).scalars().all()
    by_objective = {p.objective_id: p for p in progress}

    return [
        {
            "objective_id": objective.id,
            "code": objective.code,
            "description": objective.description,
            "checked": by_objective[objective.id].checked if objective.id in by_objective else False,
            "notes": by_objective[objective.id].notes if objective.id in by_objective else None,
        }
        for objective in objectives
    ]


async def update_objective_progress(
    user_id: int,
    objective_id: int,
    db: AsyncSession,
    changes: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Set checked/notes on an objective and recompute the topic level.

    Returns:
        Dict with objective_id, checked, notes, auto_level, checked_count,
        total_count
    """
    objective = await db.get(LearningObjective, objective_id)
    if objective is None:
        raise NotFoundError("Learning objective", objective_id)

    result = await db.execute(
        select(ObjectiveProgress).where(
            and_(
                ObjectiveProgress.user_id == user_id,
                ObjectiveProgress.objective_id == objective_id
            )
        )
    )
    progress = result.scalar_one_or_none()
    if progress is None:
        progress = ObjectiveProgress(
            user_id=user_id,
            objective_id=objective_id,
            checked=bool(changes.get("checked", False)),
            notes=changes.get("notes"),
        )
        db.add(progress)
    else:
        if "checked" in changes:
            progress.checked = bool(changes["checked"])
        if "notes" in changes:
            progress.notes = changes["notes"]
    await db.flush()

    total_count = await db.scalar(
        select(func.count(LearningObjective.id)).where(
            LearningObjective.topic_id == objective.topic_id
        )
    )
    checked_count = await db.scalar(
        select(func.count(ObjectiveProgress.id))
        .join(LearningObjective, ObjectiveProgress.objective_id == LearningObjective.id)
        .where(
            and_(
                ObjectiveProgress.user_id == user_id,
                ObjectiveProgress.checked.is_(True),
                LearningObjective.topic_id == objective.topic_id
            )
        )
    )

    auto_level = level_from_objectives(checked_count, total_count)
    await _upsert_level(user_id, objective.topic_id, auto_level, db)
    await db.commit()

    logger.info(f"Objective progress: user={user_id}, topic={objective.topic_id}, {checked_count}/{total_count} -> level {auto_level}")
    return {
        "objective_id": objective_id,
        "checked": progress.checked,
        "notes": progress.notes,
        "auto_level": auto_level,
        "checked_count": checked_count,
        "total_count": total_count,
    }


async def get_completion_ratios(user_id: int, db: AsyncSession) -> Dict[int, float]:
    """Checked / total objectives per topic, for topics that have objectives."""
    totals = dict((await db.execute(
        select(LearningObjective.topic_id, func.count(LearningObjective.id))
        .group_by(LearningObjective.topic_id)
    )).all())

    checked = dict((await db.execute(
        select(LearningObjective.topic_id, func.count(ObjectiveProgress.id))
        .join(ObjectiveProgress, ObjectiveProgress.objective_id == LearningObjective.id)
        .where(
            and_(
                ObjectiveProgress.user_id == user_id,
                ObjectiveProgress.checked.is_(True)
            )
        )
        .group_by(LearningObjective.topic_id)
    )).all())

    return {
        topic_id: checked.get(topic_id, 0) / total
        for topic_id, total in totals.items()
        if total
    }
