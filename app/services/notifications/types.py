"""
Type definitions for the notification feed.

Contains dataclasses shared by the fetcher, aggregator, reconciler and
feed controller. API response shapes live in app/schemas/notifications.py.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


CONTENT_TYPES = ("post", "video")
INTERACTION_KINDS = ("like", "comment")

# Keys of the raw repository result, one per (content type x kind)
RAW_COLLECTIONS = {
    ("post", "like"): "postLikes",
    ("post", "comment"): "postComments",
    ("video", "like"): "videoLikes",
    ("video", "comment"): "videoComments",
}


@dataclass
class Actor:
    """The user who performed an interaction."""
    id: str
    name: str  # Full display name, "Unknown User" when missing
    first_name: str  # Short name used in messages, "Someone" when missing
    username: str
    avatar: str  # Resolved URL or placeholder
    is_verified: bool = False
    is_blue_verified: bool = False


@dataclass
class InteractionRecord:
    """A single like or comment on a content item."""
    id: str  # Interaction key
    content_id: str
    content_type: str  # "post" | "video"
    kind: str  # "like" | "comment"
    actor: Actor
    created_at: datetime
    text: Optional[str] = None  # Comments only


@dataclass
class ContentItem:
    """A post or video owned by the subject user."""
    id: str
    content_type: str
    title: Optional[str] = None
    snippet: Optional[str] = None
    thumbnail: Optional[str] = None
    likes: List[InteractionRecord] = field(default_factory=list)
    comments: List[InteractionRecord] = field(default_factory=list)

    def interactions(self, kind: str) -> List[InteractionRecord]:
        return self.likes if kind == "like" else self.comments


@dataclass
class NotificationGroup:
    """All interactions of one kind on one content item."""
    id: str  # "{kind}-group-{content_id}"
    type: str  # Interaction kind
    title: str
    message: str
    content_id: str
    content_type: str
    latest_actor: Actor
    created_at: datetime  # Latest member's created_at
    members: List[InteractionRecord]  # Newest first
    time: str = ""  # Relative display string, e.g. "5 minutes ago"
    content_snippet: Optional[str] = None
    video_title: Optional[str] = None
    content_image: Optional[str] = None
    read: bool = False

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass
class RawInteractionData:
    """
    Raw repository result for one subject user.

    `collections` maps RAW_COLLECTIONS names to lists of content item
    dicts. A failed query yields empty collections with `failed` set.
    """
    collections: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "RawInteractionData":
        return cls(collections={}, failed=True, error=error)

    @property
    def is_empty(self) -> bool:
        return not any(self.collections.get(name) for name in RAW_COLLECTIONS.values())


class FeedState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class FeedResult:
    """Output of one Fetcher -> Aggregator -> Reconciler run."""
    groups: List[NotificationGroup]
    unread_count: int
    failed: bool = False
    error: Optional[str] = None


@dataclass
class FeedSnapshot:
    """Read-only view of the feed controller's state."""
    subject_user_id: Optional[str]
    state: FeedState
    notifications: List[NotificationGroup]
    unread_count: int
    loading: bool
    refreshing: bool
    error: Optional[str]
