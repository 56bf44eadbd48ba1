"""
prepdesk/services/weekly_plan_service.py
Weekly plan persistence and mutation.

Ownership is enforced on every lookup: a plan that exists but belongs to
someone else is reported exactly like a missing plan (404).

Writes that touch several rows (create, full replace) run in a single
session transaction and roll back as a unit.
"""

import logging
from datetime import date
from typing import Dict, List, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from prepdesk.orm.weekly_plan import WeeklyPlan, WeeklyPlanItem
from prepdesk.errors import NotFoundError, ConflictError, BadRequestError, ErrorCode, validate_range
from prepdesk.services.plan_validator import (
    PlanCatalog,
    load_plan_catalog,
    require_valid_items,
    check_item,
    MIN_DAY,
    MAX_DAY,
)

logger = logging.getLogger(__name__)

RECENT_PLAN_LIMIT = 10

ITEM_PATCH_FIELDS = ("day_of_week", "subject_id", "topic_id", "duration", "question_count", "notes")


async def _reload_plan(plan_id: int, db: AsyncSession) -> WeeklyPlan:
    result = await db.execute(
        select(WeeklyPlan)
        .where(WeeklyPlan.id == plan_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_owned_plan(plan_id: int, user_id: int, db: AsyncSession) -> WeeklyPlan:
    result = await db.execute(
        select(WeeklyPlan).where(
            and_(
                WeeklyPlan.id == plan_id,
                WeeklyPlan.user_id == user_id
            )
        )
    )
    plan = result.scalar_one_or_none()
    if plan is None:
        raise NotFoundError("Weekly plan", plan_id, code=ErrorCode.PLAN_NOT_FOUND)
    return plan


def _find_item(plan: WeeklyPlan, item_id: int) -> WeeklyPlanItem:
    for item in plan.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Plan item", item_id, code=ErrorCode.ITEM_NOT_FOUND)


def _build_items(items: List[Dict[str, Any]]) -> List[WeeklyPlanItem]:
    """ORM rows for validated items; sort_order is the position in the list."""
    return [
        WeeklyPlanItem(
            day_of_week=item["day_of_week"],
            subject_id=item["subject_id"],
            topic_id=item.get("topic_id"),
            duration=item.get("duration"),
            question_count=item.get("question_count"),
            notes=item.get("notes"),
            completed=False,
            sort_order=index,
        )
        for index, item in enumerate(items)
    ]


async def list_plans(
    user_id: int,
    db: AsyncSession,
    current: bool = False,
    start_date: Optional[date] = None,
    today: Optional[date] = None
):
    """
    List plans for a user.

    Args:
        current: Return only the plan covering `today` (or None)
        start_date: Return plans starting exactly on this date

    Returns:
        WeeklyPlan or None when `current`, otherwise a list
    """
    if current:
        today = today or date.today()
        result = await db.execute(
            select(WeeklyPlan).where(
                and_(
                    WeeklyPlan.user_id == user_id,
                    WeeklyPlan.start_date <= today,
                    WeeklyPlan.end_date >= today
                )
            ).order_by(WeeklyPlan.start_date.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    stmt = select(WeeklyPlan).where(WeeklyPlan.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(WeeklyPlan.start_date == start_date)
    stmt = stmt.order_by(WeeklyPlan.start_date.desc(), WeeklyPlan.id.desc()).limit(RECENT_PLAN_LIMIT)

    result = await db.execute(stmt)
    return result.scalars().all()


async def find_overlapping_plan(
    user_id: int,
    db: AsyncSession,
    start_date: date,
    end_date: date
) -> Optional[WeeklyPlan]:
    result = await db.execute(
        select(WeeklyPlan).where(
            and_(
                WeeklyPlan.user_id == user_id,
                WeeklyPlan.start_date <= end_date,
                WeeklyPlan.end_date >= start_date
            )
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def ensure_week_is_free(user_id: int, db: AsyncSession, start_date: date, end_date: date):
    existing = await find_overlapping_plan(user_id, db, start_date, end_date)
    if existing is not None:
        raise ConflictError(
            "A plan already exists for this week. Delete it first.",
            details={"plan_id": existing.id}
        )


def check_date_range(start_date: date, end_date: date):
    if end_date < start_date:
        raise BadRequestError(
            "endDate must not be before startDate",
            code=ErrorCode.INVALID_INPUT,
            details={"field": "endDate"}
        )


async def create_plan(
    user_id: int,
    db: AsyncSession,
    title: str,
    start_date: date,
    end_date: date,
    items: List[Dict[str, Any]],
    notes: Optional[str] = None,
    catalog: Optional[PlanCatalog] = None
) -> WeeklyPlan:
    """Validate items against the catalog, then persist plan and items together."""
    check_date_range(start_date, end_date)
    catalog = catalog or await load_plan_catalog(db)
    valid_items = require_valid_items(items, catalog)

    plan = WeeklyPlan(
        user_id=user_id,
        title=title,
        start_date=start_date,
        end_date=end_date,
        notes=notes,
    )
    plan.items = _build_items(valid_items)

    try:
        db.add(plan)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Created weekly plan: id={plan.id}, user={user_id}, items={len(valid_items)}")
    return await _reload_plan(plan.id, db)


async def replace_plan(
    plan_id: int,
    user_id: int,
    db: AsyncSession,
    title: Optional[str],
    notes: Optional[str],
    items: List[Dict[str, Any]]
) -> WeeklyPlan:
    """Swap the whole item set. Afterwards exactly `items` exist for the plan."""
    plan = await get_owned_plan(plan_id, user_id, db)
    valid_items = require_valid_items(items, await load_plan_catalog(db))

    try:
        if title is not None:
            plan.title = title
        plan.notes = notes
        plan.items.clear()
        await db.flush()
        plan.items.extend(_build_items(valid_items))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Replaced weekly plan items: id={plan_id}, items={len(valid_items)}")
    return await _reload_plan(plan_id, db)


async def delete_plan(plan_id: int, user_id: int, db: AsyncSession):
    plan = await get_owned_plan(plan_id, user_id, db)
    await db.delete(plan)
    await db.commit()
    logger.info(f"Deleted weekly plan: id={plan_id}, user={user_id}")


async def update_item(
    plan_id: int,
    item_id: int,
    user_id: int,
    db: AsyncSession,
    changes: Dict[str, Any]
) -> WeeklyPlanItem:
    """Patch an item. Only keys present in `changes` are touched."""
    plan = await get_owned_plan(plan_id, user_id, db)
    item = _find_item(plan, item_id)

    changes = {k: v for k, v in changes.items() if k in ITEM_PATCH_FIELDS}
    merged = {field: getattr(item, field) for field in ITEM_PATCH_FIELDS}
    merged.update(changes)

    violations = check_item(0, merged, await load_plan_catalog(db))
    if violations:
        raise BadRequestError(
            "Plan item failed validation",
            code=ErrorCode.VALIDATION_ERROR,
            details={"violations": [v.to_dict() for v in violations]}
        )

    for field, value in changes.items():
        setattr(item, field, value)
    await db.commit()

    plan = await _reload_plan(plan_id, db)
    return _find_item(plan, item_id)


async def delete_item(plan_id: int, item_id: int, user_id: int, db: AsyncSession):
    plan = await get_owned_plan(plan_id, user_id, db)
    item = _find_item(plan, item_id)
    plan.items.remove(item)
    await db.commit()


async def reorder_item(
    plan_id: int,
    item_id: int,
    user_id: int,
    db: AsyncSession,
    day_of_week: int,
    sort_order: int
) -> WeeklyPlan:
    """
    Move an item to another day and position.

    Only the day and sort order are checked; day load and prerequisite
    ordering are not re-validated after a manual move.
    """
    validate_range(day_of_week, "dayOfWeek", MIN_DAY, MAX_DAY)
    if sort_order < 0:
        raise BadRequestError(
            "sortOrder must be zero or greater",
            code=ErrorCode.OUT_OF_RANGE,
            details={"field": "sortOrder", "value": sort_order}
        )

    plan = await get_owned_plan(plan_id, user_id, db)
    item = _find_item(plan, item_id)
    item.day_of_week = day_of_week
    item.sort_order = sort_order
    await db.commit()

    logger.info(f"Reordered plan item: plan={plan_id}, item={item_id}, day={day_of_week}, order={sort_order}")
    return await _reload_plan(plan_id, db)


async def set_item_completed(
    plan_id: int,
    item_id: int,
    user_id: int,
    db: AsyncSession,
    completed: bool
) -> WeeklyPlanItem:
    plan = await get_owned_plan(plan_id, user_id, db)
    item = _find_item(plan, item_id)
    item.completed = completed
    await db.commit()
    return item
