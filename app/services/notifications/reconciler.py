"""
Read-state reconciliation.

Pure functions that combine freshly aggregated groups with known read
marks. Inputs are never mutated; every call returns new group objects
sorted newest first.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Set

from app.services.notifications.types import NotificationGroup


def sort_groups(groups: Iterable[NotificationGroup]) -> List[NotificationGroup]:
    """Newest first by representative timestamp, ties by group ID."""
    return sorted(groups, key=lambda g: (g.created_at, g.id), reverse=True)


def reconcile(groups: Iterable[NotificationGroup], read_ids: Set[str]) -> List[NotificationGroup]:
    """Set each group's read flag from the read-state snapshot."""
    return sort_groups(replace(g, read=g.id in read_ids) for g in groups)


def merge_read_state(
    fresh: Iterable[NotificationGroup],
    read_ids: Set[str],
    previous: Optional[Iterable[NotificationGroup]] = None,
) -> List[NotificationGroup]:
    """
    Reconcile a refresh against every source of read state.

    A group is read if the persisted snapshot, the previously displayed
    list (same group ID), or the fresh group itself says so. This keeps a
    dismissal made between fetches from being lost when its persistence
    is still pending or failed.
    """
    previously_read = {g.id for g in previous or [] if g.read}
    return sort_groups(
        replace(g, read=g.read or g.id in read_ids or g.id in previously_read)
        for g in fresh
    )


def count_unread(groups: Iterable[NotificationGroup]) -> int:
    return sum(1 for g in groups if not g.read)
