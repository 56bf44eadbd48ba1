"""
prepdesk/routes/weekly_plans.py
Weekly plan CRUD, item edits, reordering and completion.

Every route resolves the plan through its owner. Another user's plan
answers 404, the same as a plan that does not exist.
"""

import logging
from datetime import date
from typing import List, Optional, Union
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from prepdesk.database import get_db
from prepdesk.orm.user import User
from prepdesk.routes.auth import get_current_user
from prepdesk.schemas.plan_schemas import (
    CreatePlanRequest,
    ReplacePlanRequest,
    UpdateItemRequest,
    ReorderRequest,
    ToggleRequest,
    WeeklyPlanResponse,
    PlanItemResponse,
)
from prepdesk.services import weekly_plan_service

router = APIRouter(prefix="/api/weekly-plans", tags=["weekly-plans"])
logger = logging.getLogger(__name__)


@router.get("", response_model=Union[List[WeeklyPlanResponse], Optional[WeeklyPlanResponse]])
async def list_plans(
    current: bool = Query(False),
    start_date: Optional[date] = Query(None, alias="startDate"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List plans.

    - current=true: the plan covering today, or null
    - startDate: plans starting on that date
    - otherwise: latest 10 plans
    """
    result = await weekly_plan_service.list_plans(
        current_user.id, db, current=current, start_date=start_date
    )
    if current:
        return WeeklyPlanResponse.model_validate(result) if result is not None else None
    return [WeeklyPlanResponse.model_validate(plan) for plan in result]


@router.post("", response_model=WeeklyPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    request: CreatePlanRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await weekly_plan_service.create_plan(
        current_user.id,
        db,
        title=request.title,
        start_date=request.start_date,
        end_date=request.end_date,
        notes=request.notes,
        items=[item.model_dump() for item in request.items],
    )


@router.get("/{plan_id}", response_model=WeeklyPlanResponse)
async def get_plan(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await weekly_plan_service.get_owned_plan(plan_id, current_user.id, db)


@router.put("/{plan_id}", response_model=WeeklyPlanResponse)
async def replace_plan(
    plan_id: int,
    request: ReplacePlanRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace title, notes and the whole item set in one transaction."""
    return await weekly_plan_service.replace_plan(
        plan_id,
        current_user.id,
        db,
        title=request.title,
        notes=request.notes,
        items=[item.model_dump() for item in request.items],
    )


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await weekly_plan_service.delete_plan(plan_id, current_user.id, db)


@router.patch("/{plan_id}/reorder", response_model=WeeklyPlanResponse)
async def reorder_item(
    plan_id: int,
    request: ReorderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Move one item. Day load and prerequisites are not re-checked."""
    return await weekly_plan_service.reorder_item(
        plan_id,
        request.item_id,
        current_user.id,
        db,
        day_of_week=request.day_of_week,
        sort_order=request.sort_order,
    )


@router.patch("/{plan_id}/items/{item_id}", response_model=PlanItemResponse)
async def update_item(
    plan_id: int,
    item_id: int,
    request: UpdateItemRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await weekly_plan_service.update_item(
        plan_id, item_id, current_user.id, db, request.model_dump(exclude_unset=True)
    )


@router.delete("/{plan_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    plan_id: int,
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await weekly_plan_service.delete_item(plan_id, item_id, current_user.id, db)


@router.patch("/{plan_id}/items/{item_id}/toggle", response_model=PlanItemResponse)
async def toggle_item(
    plan_id: int,
    item_id: int,
    request: ToggleRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await weekly_plan_service.set_item_completed(
        plan_id, item_id, current_user.id, db, request.completed
    )
