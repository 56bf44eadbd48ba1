"""
prepdesk/services/profile_service.py
Student profile (study preferences) with patch-style upsert
"""

import logging
from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from prepdesk.orm.user import User
from prepdesk.orm.student_profile import StudentProfile
from prepdesk.errors import BadRequestError, ErrorCode

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "daily_study_hours",
    "available_days",
    "study_regularity",
    "break_preference",
    "target_rank",
    "exam_date",
)
BREAK_PREFERENCES = ("frequent", "balanced", "long")
MAX_DAILY_HOURS = 16


async def get_profile(user_id: int, db: AsyncSession) -> Optional[StudentProfile]:
    result = await db.execute(select(StudentProfile).where(StudentProfile.user_id == user_id))
    return result.scalar_one_or_none()


def _check_changes(changes: Dict[str, Any]):
    hours = changes.get("daily_study_hours")
    if hours is not None and not 0 <= hours <= MAX_DAILY_HOURS:
        raise BadRequestError(
            f"dailyStudyHours must be between 0 and {MAX_DAILY_HOURS}",
            code=ErrorCode.OUT_OF_RANGE,
            details={"field": "dailyStudyHours", "value": hours}
        )

    days = changes.get("available_days")
    if days is not None and any(d not in range(7) for d in days):
        raise BadRequestError(
            "availableDays must contain weekdays 0-6",
            code=ErrorCode.OUT_OF_RANGE,
            details={"field": "availableDays", "value": days}
        )

    preference = changes.get("break_preference")
    if preference is not None and preference not in BREAK_PREFERENCES:
        raise BadRequestError(
            f"breakPreference must be one of {', '.join(BREAK_PREFERENCES)}",
            code=ErrorCode.INVALID_INPUT,
            details={"field": "breakPreference", "value": preference}
        )


async def upsert_profile(user: User, db: AsyncSession, changes: Dict[str, Any]) -> StudentProfile:
    """
    Create or update the user's profile.

    Only keys present in `changes` are written; everything else keeps
    its stored value. exam_track lives on the user row.
    """
    _check_changes(changes)

    try:
        if "exam_track" in changes:
            user.exam_track = changes["exam_track"] or None

        profile = await get_profile(user.id, db)
        if profile is None:
            profile = StudentProfile(user_id=user.id)
            db.add(profile)

        for field in PROFILE_FIELDS:
            if field in changes:
                value = changes[field]
                if field == "available_days" and value is not None:
                    value = sorted(set(value))
                setattr(profile, field, value)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(profile)
    logger.info(f"Profile saved: user={user.id}, fields={sorted(changes)}")
    return profile
