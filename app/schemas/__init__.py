"""
API response schemas.
"""

from app.schemas.notifications import (
    NotificationActorItem,
    NotificationItem,
    NotificationFeedResponse,
    UnreadCountResponse,
    MarkAsReadResponse,
    format_notification,
    format_feed,
)

__all__ = [
    "NotificationActorItem",
    "NotificationItem",
    "NotificationFeedResponse",
    "UnreadCountResponse",
    "MarkAsReadResponse",
    "format_notification",
    "format_feed",
]
