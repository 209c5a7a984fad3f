"""EHS Enforcement Engine - API Routers"""
from .dashboard import router as dashboard_router
from .notices import router as notices_router
from .admin import router as admin_router
from .scheduler import router as scheduler_router

__all__ = [
    "dashboard_router",
    "notices_router",
    "admin_router",
    "scheduler_router",
]
