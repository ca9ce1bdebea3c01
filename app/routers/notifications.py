"""
Notification feed API endpoints.

Grouped like/comment notifications for the authenticated user's content,
with read-state management.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import success_response
from common.utils.exceptions import ServiceUnavailableException

from app.dependencies import require_auth, get_feed_registry
from app.schemas.notifications import (
    MarkAsReadResponse,
    UnreadCountResponse,
    format_feed,
)
from app.services.notifications.types import FeedState


router = APIRouter(prefix="/notifications", tags=["Notifications"])


# =============================================================================
# Notification Endpoints
# =============================================================================

@router.get("")
async def get_notifications(
    user: Annotated[dict, Depends(require_auth)],
):
    """
    Fetch the grouped notification feed for the current user.

    Returns:
        Notifications (newest first), unread count and feed state
    """
    controller = await get_feed_registry().get(user["user_id"])
    snapshot = await controller.fetch()

    if snapshot.state == FeedState.ERROR:
        raise ServiceUnavailableException(
            message=snapshot.error or "Notifications unavailable",
            code="NOTIFICATIONS_UNAVAILABLE",
        )

    return success_response(format_feed(snapshot).model_dump())


@router.get("/count")
async def get_unread_count(
    user: Annotated[dict, Depends(require_auth)],
):
    """
    Get the unread count from the last loaded feed.

    Loads the feed first if nothing has been fetched yet.
    """
    controller = await get_feed_registry().get(user["user_id"])
    if controller.state == FeedState.IDLE:
        await controller.fetch()

    return success_response(UnreadCountResponse(unread=controller.unread_count).model_dump())


@router.post("/read-all")
async def mark_all_as_read(
    user: Annotated[dict, Depends(require_auth)],
):
    """
    Mark every loaded notification as read.

    Returns:
        Whether the read marks were persisted
    """
    controller = await get_feed_registry().get(user["user_id"])
    count = len(controller.notifications)
    persisted = await controller.mark_all_as_read()

    return success_response(MarkAsReadResponse(
        message=f"Marked {count} notifications as read",
        persisted=persisted,
        unreadCount=controller.unread_count,
    ).model_dump())


@router.post("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    user: Annotated[dict, Depends(require_auth)],
):
    """
    Mark a notification group as read.

    Args:
        notification_id: Group ID, e.g. "comment-group-<contentId>"
    """
    controller = await get_feed_registry().get(user["user_id"])
    persisted = await controller.mark_as_read(notification_id)

    return success_response(MarkAsReadResponse(
        message="Notification marked as read",
        persisted=persisted,
        unreadCount=controller.unread_count,
    ).model_dump())
