"""
prepdesk/services/study_log_service.py
Daily study logs and topic reviews (the study events behind
"days since last studied")
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.orm.study_log import DailyStudy, TopicReview
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic import Topic
from prepdesk.errors import BadRequestError, ErrorCode, validate_range

logger = logging.getLogger(__name__)


async def _check_references(db: AsyncSession, subject_id: int, topic_id: Optional[int]):
    if await db.get(Subject, subject_id) is None:
        raise BadRequestError(
            "Unknown subject",
            code=ErrorCode.UNKNOWN_REFERENCE,
            details={"field": "subjectId", "value": subject_id}
        )
    if topic_id is not None:
        topic = await db.get(Topic, topic_id)
        if topic is None or topic.subject_id != subject_id:
            raise BadRequestError(
                "Topic does not exist in this subject",
                code=ErrorCode.UNKNOWN_REFERENCE,
                details={"field": "topicId", "value": topic_id}
            )


def _date_filters(model, user_id: int, start: Optional[datetime], end: Optional[datetime], subject_id: Optional[int]):
    stmt = select(model).where(model.user_id == user_id)
    if start is not None:
        stmt = stmt.where(model.date >= start)
    if end is not None:
        stmt = stmt.where(model.date <= end)
    if subject_id is not None:
        stmt = stmt.where(model.subject_id == subject_id)
    return stmt.order_by(model.date.desc(), model.id.desc())


async def list_daily_studies(
    user_id: int,
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    subject_id: Optional[int] = None
) -> List[DailyStudy]:
    result = await db.execute(_date_filters(DailyStudy, user_id, start, end, subject_id))
    return result.scalars().all()


async def create_daily_study(user_id: int, db: AsyncSession, data: Dict[str, Any]) -> DailyStudy:
    await _check_references(db, data["subject_id"], data.get("topic_id"))
    if data.get("duration") is not None and data["duration"] < 0:
        raise BadRequestError("duration must not be negative", code=ErrorCode.OUT_OF_RANGE, details={"field": "duration"})

    study = DailyStudy(
        user_id=user_id,
        subject_id=data["subject_id"],
        topic_id=data.get("topic_id"),
        date=data.get("date") or datetime.utcnow(),
        duration=data.get("duration"),
        question_count=data.get("question_count"),
        correct_count=data.get("correct_count"),
        notes=data.get("notes"),
    )
    db.add(study)
    await db.commit()
    await db.refresh(study)

    logger.info(f"Daily study logged: user={user_id}, subject={study.subject_id}, topic={study.topic_id}")
    return study


async def list_topic_reviews(
    user_id: int,
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    subject_id: Optional[int] = None
) -> List[TopicReview]:
    result = await db.execute(_date_filters(TopicReview, user_id, start, end, subject_id))
    return result.scalars().all()


async def create_topic_review(user_id: int, db: AsyncSession, data: Dict[str, Any]) -> TopicReview:
    await _check_references(db, data["subject_id"], data["topic_id"])
    validate_range(data.get("confidence"), "confidence", 1, 5)

    review = TopicReview(
        user_id=user_id,
        subject_id=data["subject_id"],
        topic_id=data["topic_id"],
        date=data.get("date") or datetime.utcnow(),
        duration=data.get("duration"),
        confidence=data.get("confidence"),
        method=data.get("method"),
        notes=data.get("notes"),
    )
    db.add(review)
    await db.commit()
    await db.refresh(review)

    logger.info(f"Topic review logged: user={user_id}, topic={review.topic_id}")
    return review
