"""
Top-level API router that aggregates all sub-routers.
"""

from fastapi import APIRouter

from app.api.uv_curve import router as uv_curve_router

router = APIRouter()
router.include_router(uv_curve_router)
