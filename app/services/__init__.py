"""
Feed services.

All service classes organized by feature.
"""

from app.services.notifications import (
    NotificationAggregator,
    InteractionFetcher,
    ReadStateStore,
    SubjectUserIdentity,
)

__all__ = [
    "NotificationAggregator",
    "InteractionFetcher",
    "ReadStateStore",
    "SubjectUserIdentity",
]
