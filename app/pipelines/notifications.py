"""
Notification feed pipeline functions.

Orchestrates one feed computation: fetch raw interactions, aggregate
them into groups, and reconcile read state.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from app.services.notifications.aggregator import NotificationAggregator
from app.services.notifications.interaction_fetcher import InteractionFetcher
from app.services.notifications.read_state_store import ReadStateStore
from app.services.notifications.reconciler import merge_read_state, count_unread
from app.services.notifications.types import FeedResult, NotificationGroup

logger = logging.getLogger(__name__)


async def build_notification_feed(
    fetcher: InteractionFetcher,
    aggregator: NotificationAggregator,
    read_state_store: ReadStateStore,
    subject_user_id: str,
    previous: Optional[Iterable[NotificationGroup]] = None,
    now: Optional[datetime] = None,
) -> FeedResult:
    """
    Compute the notification feed for a subject user.

    1. Fetch raw interactions (fails soft)
    2. Aggregate into groups (all unread)
    3. Load the read-state snapshot
    4. Merge read state from the snapshot and the previous list, sort
    """
    # 1. Fetch
    raw = await fetcher.fetch(subject_user_id, now=now)
    if raw.failed:
        return FeedResult(groups=[], unread_count=0, failed=True, error=raw.error)

    # 2. Aggregate
    groups = aggregator.aggregate(raw, now=now)

    # 3. Read-state snapshot
    read_ids = await read_state_store.snapshot(subject_user_id)

    # 4. Reconcile
    merged = merge_read_state(groups, read_ids, previous)
    unread = count_unread(merged)

    logger.info(
        f"Built notification feed for user {subject_user_id}: "
        f"{len(merged)} groups, {unread} unread"
    )
    return FeedResult(groups=merged, unread_count=unread)
