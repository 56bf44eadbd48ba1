"""
prepdesk/services/spaced_repetition.py
Review scheduling for wrong exam questions (simplified SM-2).

QUALITY RULES:
- easy:  interval = round(interval × ease), ease + 0.15 (max 3.0);
         mastered once the interval exceeds 60 days
- hard:  interval = max(1, round(interval × 1.5)), ease - 0.1 (min 1.3)
- wrong: interval = 1, ease - 0.2 (min 1.3)

The next review is `interval` days from the moment of review.
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, Optional, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_

from prepdesk.orm.spaced_repetition import SpacedRepetitionItem, ReviewStatus
from prepdesk.orm.exam import Exam, ExamWrongQuestion
from prepdesk.errors import NotFoundError

logger = logging.getLogger(__name__)

INITIAL_INTERVAL_DAYS = 1
INITIAL_EASE = 2.5
MAX_EASE = 3.0
MIN_EASE = 1.3
MASTERY_INTERVAL_DAYS = 60


class ReviewQuality(str, Enum):
    EASY = "easy"
    HARD = "hard"
    WRONG = "wrong"


@dataclass
class ReviewOutcome:
    interval: int
    ease_factor: float
    status: str


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def schedule_review(interval: int, ease_factor: float, status: str, quality: ReviewQuality) -> ReviewOutcome:
    """Next interval, ease and status after one review."""
    if quality == ReviewQuality.EASY:
        new_interval = _round_half_up(interval * ease_factor)
        new_ease = min(MAX_EASE, ease_factor + 0.15)
        if new_interval > MASTERY_INTERVAL_DAYS:
            status = ReviewStatus.MASTERED.value
    elif quality == ReviewQuality.HARD:
        new_interval = max(1, _round_half_up(interval * 1.5))
        new_ease = max(MIN_EASE, ease_factor - 0.1)
    else:
        new_interval = 1
        new_ease = max(MIN_EASE, ease_factor - 0.2)

    return ReviewOutcome(interval=new_interval, ease_factor=round(new_ease, 2), status=status)


def new_item_for(wrong_question: ExamWrongQuestion, user_id: int, now: Optional[datetime] = None) -> SpacedRepetitionItem:
    now = now or datetime.utcnow()
    return SpacedRepetitionItem(
        user_id=user_id,
        wrong_question_id=wrong_question.id,
        subject_id=wrong_question.subject_id,
        topic_id=wrong_question.topic_id,
        interval=INITIAL_INTERVAL_DAYS,
        ease_factor=INITIAL_EASE,
        next_review_date=now + timedelta(days=INITIAL_INTERVAL_DAYS),
        review_count=0,
        status=ReviewStatus.PENDING.value,
    )


async def get_due_items(user_id: int, db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Pending items due by the end of today, plus queue statistics."""
    now = now or datetime.utcnow()
    end_of_today = datetime.combine(now.date(), datetime.max.time())

    due = (await db.execute(
        select(SpacedRepetitionItem).where(
            and_(
                SpacedRepetitionItem.user_id == user_id,
                SpacedRepetitionItem.status == ReviewStatus.PENDING.value,
                SpacedRepetitionItem.next_review_date <= end_of_today
            )
        ).order_by(SpacedRepetitionItem.next_review_date, SpacedRepetitionItem.id)
    )).scalars().all()

    counts = dict((await db.execute(
        select(SpacedRepetitionItem.status, func.count(SpacedRepetitionItem.id))
        .where(SpacedRepetitionItem.user_id == user_id)
        .group_by(SpacedRepetitionItem.status)
    )).all())

    return {
        "due_items": due,
        "stats": {
            "due_today": len(due),
            "total_pending": counts.get(ReviewStatus.PENDING.value, 0),
            "total_mastered": counts.get(ReviewStatus.MASTERED.value, 0),
        },
    }


async def submit_review(
    user_id: int,
    item_id: int,
    quality: ReviewQuality,
    db: AsyncSession,
    now: Optional[datetime] = None
) -> SpacedRepetitionItem:
    result = await db.execute(
        select(SpacedRepetitionItem).where(
            and_(
                SpacedRepetitionItem.id == item_id,
                SpacedRepetitionItem.user_id == user_id
            )
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Review item", item_id)

    outcome = schedule_review(item.interval, item.ease_factor, item.status, quality)
    now = now or datetime.utcnow()

    item.interval = outcome.interval
    item.ease_factor = outcome.ease_factor
    item.status = outcome.status
    item.review_count = (item.review_count or 0) + 1
    item.next_review_date = now + timedelta(days=outcome.interval)
    await db.commit()

    logger.info(f"Review submitted: item={item_id}, quality={quality.value}, interval={outcome.interval}, status={outcome.status}")
    return item


async def enqueue_wrong_questions(
    user_id: int,
    wrong_questions: Iterable[ExamWrongQuestion],
    db: AsyncSession
) -> Dict[str, int]:
    """Add review items for questions not yet queued. Does not commit."""
    wrong_questions = list(wrong_questions)
    if not wrong_questions:
        return {"added": 0, "already_exists": 0}

    existing = set((await db.execute(
        select(SpacedRepetitionItem.wrong_question_id).where(
            SpacedRepetitionItem.wrong_question_id.in_([q.id for q in wrong_questions])
        )
    )).scalars().all())

    added = 0
    for question in wrong_questions:
        if question.id in existing:
            continue
        db.add(new_item_for(question, user_id))
        added += 1

    return {"added": added, "already_exists": len(existing)}


async def enqueue_exam(user_id: int, exam_id: int, db: AsyncSession) -> Dict[str, int]:
    """Queue every wrong question of one of the user's exams."""
    exam = (await db.execute(
        select(Exam).where(and_(Exam.id == exam_id, Exam.user_id == user_id))
    )).scalar_one_or_none()
    if exam is None:
        raise NotFoundError("Exam", exam_id)

    questions = (await db.execute(
        select(ExamWrongQuestion).where(ExamWrongQuestion.exam_id == exam.id)
    )).scalars().all()

    counts = await enqueue_wrong_questions(user_id, questions, db)
    await db.commit()
    logger.info(f"Enqueued exam {exam_id} for review: {counts}")
    return counts
