"""
Feed pipelines.

Business logic orchestration functions.
"""

from app.pipelines.notifications import build_notification_feed

__all__ = ["build_notification_feed"]
