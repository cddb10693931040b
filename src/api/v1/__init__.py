"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.audiences import router as audiences_router
from api.v1.routes.events import router as events_router
from api.v1.routes.profiles import identify_router
from api.v1.routes.profiles import router as profiles_router

router = APIRouter()
router.include_router(identify_router)
router.include_router(events_router)
router.include_router(profiles_router)
router.include_router(audiences_router)
