"""
prepdesk/services/exam_service.py
Mock exams, per-subject results and wrong questions
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from prepdesk.orm.exam import Exam, ExamWrongQuestion, ExamSubjectResult
from prepdesk.orm.exam_type import ExamType
from prepdesk.orm.subject import Subject
from prepdesk.orm.topic import Topic
from prepdesk.errors import NotFoundError, BadRequestError, ErrorCode
from prepdesk.services.spaced_repetition import enqueue_wrong_questions

logger = logging.getLogger(__name__)

WRONG_ANSWER_PENALTY = 0.25


def net_score(correct_count: int, wrong_count: int) -> float:
    """Four wrong answers cancel one correct answer."""
    return correct_count - wrong_count * WRONG_ANSWER_PENALTY


async def get_owned_exam(exam_id: int, user_id: int, db: AsyncSession) -> Exam:
    result = await db.execute(
        select(Exam).where(and_(Exam.id == exam_id, Exam.user_id == user_id))
        .execution_options(populate_existing=True)
    )
    exam = result.scalar_one_or_none()
    if exam is None:
        raise NotFoundError("Exam", exam_id)
    return exam


async def list_exams(user_id: int, db: AsyncSession, exam_type_id: Optional[int] = None) -> List[Exam]:
    stmt = select(Exam).where(Exam.user_id == user_id)
    if exam_type_id is not None:
        stmt = stmt.where(Exam.exam_type_id == exam_type_id)
    result = await db.execute(stmt.order_by(Exam.date.desc(), Exam.id.desc()))
    return result.scalars().all()


async def create_exam(
    user_id: int,
    db: AsyncSession,
    title: str,
    exam_type_id: int,
    date: Optional[datetime] = None,
    notes: Optional[str] = None
) -> Exam:
    if await db.get(ExamType, exam_type_id) is None:
        raise BadRequestError(
            "Unknown exam type",
            code=ErrorCode.UNKNOWN_REFERENCE,
            details={"field": "examTypeId", "value": exam_type_id}
        )

    exam = Exam(
        user_id=user_id,
        exam_type_id=exam_type_id,
        title=title,
        date=date or datetime.utcnow(),
        notes=notes,
    )
    db.add(exam)
    await db.commit()
    await db.refresh(exam)

    logger.info(f"Created exam: id={exam.id}, user={user_id}")
    return exam


async def save_subject_results(
    exam_id: int,
    user_id: int,
    results: List[Dict[str, int]],
    db: AsyncSession
) -> Dict[str, Any]:
    """Replace the exam's per-subject results. Returns rows and total net."""
    exam = await get_owned_exam(exam_id, user_id, db)
    if not results:
        raise BadRequestError("results must not be empty", code=ErrorCode.MISSING_FIELD, details={"field": "results"})

    subject_ids = {r["subject_id"] for r in results}
    known = set((await db.execute(select(Subject.id).where(Subject.id.in_(subject_ids)))).scalars().all())
    if subject_ids - known:
        raise BadRequestError(
            "Unknown subjects in results",
            code=ErrorCode.UNKNOWN_REFERENCE,
            details={"subject_ids": sorted(subject_ids - known)}
        )

    try:
        exam.subject_results.clear()
        await db.flush()
        for r in results:
            exam.subject_results.append(ExamSubjectResult(
                subject_id=r["subject_id"],
                correct_count=r["correct_count"],
                wrong_count=r["wrong_count"],
                empty_count=r["empty_count"],
                net_score=net_score(r["correct_count"], r["wrong_count"]),
            ))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    rows = (await db.execute(
        select(ExamSubjectResult)
        .where(ExamSubjectResult.exam_id == exam_id)
        .order_by(ExamSubjectResult.id)
    )).scalars().all()

    return {
        "results": rows,
        "total_net": sum(r.net_score for r in rows),
    }


async def list_wrong_questions(exam_id: int, user_id: int, db: AsyncSession) -> List[ExamWrongQuestion]:
    await get_owned_exam(exam_id, user_id, db)
    result = await db.execute(
        select(ExamWrongQuestion)
        .where(ExamWrongQuestion.exam_id == exam_id)
        .order_by(ExamWrongQuestion.question_number, ExamWrongQuestion.id)
    )
    return result.scalars().all()


async def add_wrong_question(
    exam_id: int,
    user_id: int,
    db: AsyncSession,
    subject_id: int,
    topic_id: Optional[int] = None,
    question_number: Optional[int] = None,
    error_reason: Optional[str] = None,
    notes: Optional[str] = None
) -> ExamWrongQuestion:
    """Record a wrong answer and queue it for spaced repetition."""
    await get_owned_exam(exam_id, user_id, db)

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

    question = ExamWrongQuestion(
        exam_id=exam_id,
        subject_id=subject_id,
        topic_id=topic_id,
        question_number=question_number,
        error_reason=error_reason,
        notes=notes,
    )
    db.add(question)
    await db.flush()

    await enqueue_wrong_questions(user_id, [question], db)
    await db.commit()
    await db.refresh(question)

    logger.info(f"Wrong question recorded: exam={exam_id}, subject={subject_id}, topic={topic_id}")
    return question
