"""
API routes split by concern.

Each sub-module defines its own APIRouter which is composed
into the top-level router exposed by this package.
"""
from fastapi import APIRouter

from .health import router as health_router
from .origin import router as origin_router
from .orders import router as orders_router
from .report import router as report_router
from .settings import router as settings_router

router = APIRouter(tags=["api"])

router.include_router(health_router)
router.include_router(origin_router)
router.include_router(orders_router)
router.include_router(report_router)
router.include_router(settings_router)
