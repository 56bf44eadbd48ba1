"""
prepdesk/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from prepdesk.routes import catalog, strategy, ai_plan, weekly_plans
from prepdesk.routes import profile, knowledge, study_logs, exams, spaced_repetition

router = APIRouter()

# Reference data
router.include_router(catalog.router)

# Planning
router.include_router(strategy.router)
router.include_router(ai_plan.router)
router.include_router(weekly_plans.router)

# Study records
router.include_router(profile.router)
router.include_router(knowledge.router)
router.include_router(study_logs.router)
router.include_router(exams.router)
router.include_router(spaced_repetition.router)
