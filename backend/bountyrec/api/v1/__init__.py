"""API v1 router aggregation."""

from fastapi import APIRouter

from bountyrec.api.v1.recommendations import router as recommendations_router
from bountyrec.api.v1.interactions import router as interactions_router
from bountyrec.api.v1.profile import router as profile_router
from bountyrec.api.v1.behavior import router as behavior_router

router = APIRouter(prefix="/api/v1")

router.include_router(recommendations_router)
router.include_router(interactions_router)
router.include_router(profile_router)
router.include_router(behavior_router)
