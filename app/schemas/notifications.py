"""
Pydantic models for the notification feed responses.
"""

from typing import Optional, List
from pydantic import BaseModel, Field

from app.services.notifications.types import Actor, FeedSnapshot, NotificationGroup


# =============================================================================
# Response Schemas
# =============================================================================

class NotificationActorItem(BaseModel):
    """Actor who interacted with the subject user's content."""
    id: str
    name: str
    username: str
    avatar: str
    isVerified: bool = False
    isBlueVerified: bool = False


class NotificationItem(BaseModel):
    """Single grouped notification in responses."""
    id: str
    type: str
    title: str
    message: str
    contentId: str
    contentType: str
    contentSnippet: Optional[str] = None
    videoTitle: Optional[str] = None
    contentImage: Optional[str] = None
    senderId: str
    senderName: str
    username: str
    avatar: str
    isVerified: bool = False
    isBlueVerified: bool = False
    time: str
    createdAt: str
    read: bool
    memberCount: int
    members: List[NotificationActorItem] = Field(default_factory=list)


class NotificationFeedResponse(BaseModel):
    """GET /notifications response."""
    notifications: List[NotificationItem]
    unreadCount: int
    state: str
    loading: bool
    refreshing: bool
    error: Optional[str] = None


class UnreadCountResponse(BaseModel):
    """GET /notifications/count response."""
    unread: int


class MarkAsReadResponse(BaseModel):
    """POST /notifications/:id/read and /read-all response."""
    message: str
    persisted: bool
    unreadCount: int


# =============================================================================
# Formatting
# =============================================================================

def format_actor(actor: Actor) -> NotificationActorItem:
    return NotificationActorItem(
        id=actor.id,
        name=actor.name,
        username=actor.username,
        avatar=actor.avatar,
        isVerified=actor.is_verified,
        isBlueVerified=actor.is_blue_verified,
    )


def format_notification(group: NotificationGroup) -> NotificationItem:
    """Convert a NotificationGroup into its API shape."""
    actor = group.latest_actor
    return NotificationItem(
        id=group.id,
        type=group.type,
        title=group.title,
        message=group.message,
        contentId=group.content_id,
        contentType=group.content_type,
        contentSnippet=group.content_snippet,
        videoTitle=group.video_title,
        contentImage=group.content_image,
        senderId=actor.id,
        senderName=actor.name,
        username=actor.username,
        avatar=actor.avatar,
        isVerified=actor.is_verified,
        isBlueVerified=actor.is_blue_verified,
        time=group.time,
        createdAt=group.created_at.isoformat(),
        read=group.read,
        memberCount=group.member_count,
        members=[format_actor(member.actor) for member in group.members],
    )


def format_feed(snapshot: FeedSnapshot) -> NotificationFeedResponse:
    return NotificationFeedResponse(
        notifications=[format_notification(g) for g in snapshot.notifications],
        unreadCount=snapshot.unread_count,
        state=snapshot.state.value,
        loading=snapshot.loading,
        refreshing=snapshot.refreshing,
        error=snapshot.error,
    )
