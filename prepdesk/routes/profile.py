"""
prepdesk/routes/profile.py
Student profile (study preferences)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.study_schemas import ProfileUpdate, ProfileResponse
from prepdesk.services.profile_service import get_profile, upsert_profile

router = APIRouter(prefix="/api/student-profile", tags=["profile"])


def _to_response(profile, user: User) -> ProfileResponse:
    if profile is None:
        return ProfileResponse(exam_track=user.exam_track)
    response = ProfileResponse.model_validate(profile)
    response.exam_track = user.exam_track
    return response


@router.get("", response_model=ProfileResponse)
async def read_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return _to_response(await get_profile(current_user.id, db), current_user)


@router.put("", response_model=ProfileResponse)
async def save_profile(
    request: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Upsert; fields missing from the body keep their stored values."""
    profile = await upsert_profile(current_user, db, request.model_dump(exclude_unset=True))
    return _to_response(profile, current_user)
