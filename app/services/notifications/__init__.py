"""
Notification feed services.

Aggregates likes and comments on a subject user's content into grouped
notifications and tracks their read state. The stateful controller lives
in app.services.notifications.feed_controller (it depends on the feed
pipeline, which depends on these services).
"""

from app.services.notifications.aggregator import NotificationAggregator
from app.services.notifications.identity import SubjectUserIdentity, SUBJECT_USER_CHANGED
from app.services.notifications.interaction_fetcher import InteractionFetcher
from app.services.notifications.read_state_store import ReadStateStore

__all__ = [
    "NotificationAggregator",
    "SubjectUserIdentity",
    "SUBJECT_USER_CHANGED",
    "InteractionFetcher",
    "ReadStateStore",
]
