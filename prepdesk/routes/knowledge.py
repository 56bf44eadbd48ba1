"""
prepdesk/routes/knowledge.py
Topic knowledge levels and learning-objective checklists
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.study_schemas import (
    KnowledgeUpdate,
    KnowledgeResponse,
    BulkKnowledgeUpdate,
    BulkKnowledgeResponse,
    ObjectiveProgressEntry,
    ObjectiveProgressUpdate,
    ObjectiveProgressResult,
)
from prepdesk.services import knowledge_service

router = APIRouter(tags=["knowledge"])


@router.get("/api/topic-knowledge", response_model=List[KnowledgeResponse])
async def list_knowledge(
    exam_type_id: Optional[int] = Query(None, alias="examTypeId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await knowledge_service.list_knowledge(current_user.id, db, exam_type_id)


@router.post("/api/topic-knowledge", response_model=KnowledgeResponse)
async def set_knowledge(
    request: KnowledgeUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await knowledge_service.set_knowledge_level(current_user.id, request.topic_id, request.level, db)


@router.post("/api/topic-knowledge/bulk", response_model=BulkKnowledgeResponse)
async def bulk_set_knowledge(
    request: BulkKnowledgeUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All updates succeed together or none are applied."""
    count = await knowledge_service.bulk_set_knowledge_levels(
        current_user.id, [u.model_dump() for u in request.updates], db
    )
    return BulkKnowledgeResponse(count=count)


@router.get("/api/objective-progress", response_model=List[ObjectiveProgressEntry])
async def list_objective_progress(
    topic_id: int = Query(..., alias="topicId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await knowledge_service.list_objective_progress(current_user.id, topic_id, db)


@router.post("/api/objective-progress", response_model=ObjectiveProgressResult)
async def update_objective_progress(
    request: ObjectiveProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Check or annotate an objective; the topic's level follows the checked ratio."""
    changes = request.model_dump(exclude_unset=True)
    changes.pop("objective_id", None)
    return await knowledge_service.update_objective_progress(
        current_user.id, request.objective_id, db, changes
    )
