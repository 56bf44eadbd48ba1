"""
prepdesk/services/topic_priority_engine.py
Topic priority scoring: what should the student study next?

PRIORITY SCORING FORMULA:
=========================
Priority Score = SubjectWeight × KnowledgeGap × TimeFactor + WrongFactor × 0.5

Components:
1. SUBJECT WEIGHT:
   - subject.question_count / Σ question_count of the distinct subjects in the set
   - Each subject is counted once, however many topics it has
   - Denominator floored at 1

2. KNOWLEDGE GAP:
   - 5 - knowledge_level (missing level = 0)
   - Range: 0 to 5

3. TIME FACTOR:
   - ln(days_since_last_study + 2) if the topic was ever studied
   - 3 if never studied
   - Last study = latest of daily study logs and topic reviews

4. WRONG FACTOR:
   - ln(wrong_count + 1), wrong answers counted across the student's exams

The score is rounded half up to 2 decimals. Ranking is descending by score, ties
broken by topic id ascending.

NO AI/LLM CALLS - PURE COMPUTATION OVER FETCHED AGGREGATES
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Dict, Any, Optional, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from prepdesk.orm.topic import Topic
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic_knowledge import TopicKnowledge
from prepdesk.orm.study_log import DailyStudy, TopicReview
from prepdesk.orm.exam import Exam, ExamWrongQuestion

logger = logging.getLogger(__name__)

MAX_KNOWLEDGE_LEVEL = 5
NEVER_STUDIED_TIME_FACTOR = 3.0
WRONG_FACTOR_WEIGHT = 0.5

DEFAULT_LIMIT = 20
MAX_LIMIT = 200

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class TopicSignal:
    """Catalog data the scorer needs for one topic."""
    topic_id: int
    topic_name: str
    subject_id: int
    subject_name: str
    exam_type_name: str
    subject_question_count: int


def compute_subject_weights(topics: Iterable[TopicSignal]) -> Dict[int, float]:
    """Share of exam questions per subject, over the subjects present in `topics`."""
    question_counts: Dict[int, int] = {}
    for topic in topics:
        if topic.subject_id not in question_counts:
            question_counts[topic.subject_id] = max(topic.subject_question_count, 0)

    total = max(sum(question_counts.values()), 1)
    return {
        subject_id: count / total
        for subject_id, count in question_counts.items()
    }


def time_factor(days_since_last_study: Optional[int]) -> float:
    if days_since_last_study is None:
        return NEVER_STUDIED_TIME_FACTOR
    return math.log(max(days_since_last_study, 0) + 2)


def wrong_factor(wrong_count: int) -> float:
    return math.log(max(wrong_count, 0) + 1)


def compute_priority_score(
    knowledge_level: int,
    days_since_last_study: Optional[int],
    wrong_count: int,
    subject_weight: float
) -> float:
    """
    Score one topic.

    MUST be deterministic - same inputs = same output.
    """
    knowledge_gap = MAX_KNOWLEDGE_LEVEL - knowledge_level
    score = (
        subject_weight * knowledge_gap * time_factor(days_since_last_study)
        + wrong_factor(wrong_count) * WRONG_FACTOR_WEIGHT
    )
    return math.floor(score * 100 + 0.5) / 100


def days_since(now: datetime, last_studied: Optional[datetime]) -> Optional[int]:
    """Whole days elapsed, floored. None when never studied."""
    if last_studied is None:
        return None
    return math.floor((now - last_studied).total_seconds() / SECONDS_PER_DAY)


def rank_topics(
    topics: List[TopicSignal],
    knowledge_levels: Dict[int, int],
    last_studied: Dict[int, datetime],
    wrong_counts: Dict[int, int],
    now: Optional[datetime] = None,
    limit: Optional[int] = DEFAULT_LIMIT
) -> List[Dict[str, Any]]:
    """
    Rank topics by priority, highest first.

    Returns:
        List of dicts with topic_id, topic_name, subject_id, subject_name,
        exam_type_name, knowledge_level, days_since_last_study,
        wrong_count, priority_score
    """
    if not topics:
        return []

    now = now or datetime.utcnow()
    weights = compute_subject_weights(topics)

    scored = []
    for topic in topics:
        level = knowledge_levels.get(topic.topic_id, 0)
        days = days_since(now, last_studied.get(topic.topic_id))
        wrongs = wrong_counts.get(topic.topic_id, 0)

        scored.append({
            "topic_id": topic.topic_id,
            "topic_name": topic.topic_name,
            "subject_id": topic.subject_id,
            "subject_name": topic.subject_name,
            "exam_type_name": topic.exam_type_name,
            "knowledge_level": level,
            "days_since_last_study": days,
            "wrong_count": wrongs,
            "priority_score": compute_priority_score(
                level, days, wrongs, weights[topic.subject_id]
            ),
        })

    scored.sort(key=lambda x: (-x["priority_score"], x["topic_id"]))

    if limit is not None:
        scored = scored[:limit]
    return scored


# ============================================================================
# Aggregation queries
# ============================================================================

async def fetch_topic_signals(db: AsyncSession, exam_type_id: Optional[int] = None) -> List[TopicSignal]:
    stmt = select(Topic).join(Subject, Topic.subject_id == Subject.id)
    if exam_type_id is not None:
        stmt = stmt.where(Subject.exam_type_id == exam_type_id)
    stmt = stmt.order_by(Topic.id)

    result = await db.execute(stmt)
    return [
        TopicSignal(
            topic_id=topic.id,
            topic_name=topic.name,
            subject_id=topic.subject_id,
            subject_name=topic.subject.name,
            exam_type_name=topic.subject.exam_type.name,
            subject_question_count=topic.subject.question_count or 0,
        )
        for topic in result.scalars().all()
    ]


async def fetch_knowledge_levels(user_id: int, db: AsyncSession) -> Dict[int, int]:
    result = await db.execute(
        select(TopicKnowledge.topic_id, TopicKnowledge.level).where(
            TopicKnowledge.user_id == user_id
        )
    )
    return {row.topic_id: row.level for row in result.all()}


async def fetch_last_studied(
    user_id: int,
    db: AsyncSession,
    exam_type_id: Optional[int] = None
) -> Dict[int, datetime]:
    """Latest study event per topic across daily studies and topic reviews."""
    last_studied: Dict[int, datetime] = {}

    for model in (DailyStudy, TopicReview):
        stmt = select(
            model.topic_id,
            func.max(model.date).label("last_date")
        ).where(
            model.user_id == user_id,
            model.topic_id.isnot(None)
        )
        if exam_type_id is not None:
            stmt = stmt.join(Subject, model.subject_id == Subject.id).where(
                Subject.exam_type_id == exam_type_id
            )
        stmt = stmt.group_by(model.topic_id)

        result = await db.execute(stmt)
        for row in result.all():
            if row.last_date is None:
                continue
            existing = last_studied.get(row.topic_id)
            if existing is None or row.last_date > existing:
                last_studied[row.topic_id] = row.last_date

    return last_studied


async def fetch_wrong_counts(user_id: int, db: AsyncSession) -> Dict[int, int]:
    result = await db.execute(
        select(
            ExamWrongQuestion.topic_id,
            func.count(ExamWrongQuestion.id).label("wrong_count")
        ).join(
            Exam, ExamWrongQuestion.exam_id == Exam.id
        ).where(
            Exam.user_id == user_id,
            ExamWrongQuestion.topic_id.isnot(None)
        ).group_by(ExamWrongQuestion.topic_id)
    )
    return {row.topic_id: row.wrong_count for row in result.all()}


async def get_topic_recommendations(
    user_id: int,
    db: AsyncSession,
    exam_type_id: Optional[int] = None,
    limit: Optional[int] = DEFAULT_LIMIT
) -> List[Dict[str, Any]]:
    """
    Compute the ranked recommendation list for a user.

    Algorithm:
    1. Fetch topics (optionally one exam type) with subject weights
    2. Fetch knowledge levels, last study dates, wrong-answer counts
    3. Score and rank
    """
    logger.info(f"Computing topic recommendations: user={user_id}, exam_type={exam_type_id}, limit={limit}")

    topics = await fetch_topic_signals(db, exam_type_id)
    knowledge = await fetch_knowledge_levels(user_id, db)
    last_studied = await fetch_last_studied(user_id, db)
    wrong_counts = await fetch_wrong_counts(user_id, db)

    ranked = rank_topics(topics, knowledge, last_studied, wrong_counts, limit=limit)

    logger.info(f"Ranked {len(topics)} topics, returning {len(ranked)}")
    return ranked


async def get_last_studied(
    user_id: int,
    db: AsyncSession,
    exam_type_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Last study date and days elapsed for every topic the user has studied."""
    now = now or datetime.utcnow()
    last_studied = await fetch_last_studied(user_id, db, exam_type_id)
    return [
        {
            "topic_id": topic_id,
            "last_studied_date": last_date,
            "days_since": days_since(now, last_date),
        }
        for topic_id, last_date in sorted(last_studied.items())
    ]
