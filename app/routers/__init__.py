"""
Feed API Routers.
"""

from app.routers.notifications import router as notifications_router

__all__ = ["notifications_router"]
