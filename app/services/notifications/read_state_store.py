"""
Read-state store for notification groups.

Persists which notification groups a subject user has acknowledged as a
single JSON map in the local store:

    {"<subjectUserId>_<groupId>": true, ...}

Marks are monotonic: once a group is read it never reverts through this
store, so concurrent writers only ever union their sets. Marks are not
pruned on logout; every user who signed in on the same backing store
keeps their marks.

Each instance keeps an in-memory mirror of the marks it has seen or
written for the users it serves. When the local store fails, the mirror
keeps serving read state for the rest of the session. A mark whose write
failed is not retried on its own; it is carried along by the next
successful write from the same instance, and lost if none happens before
the user is forgotten or the process stops.
"""

import json
import logging
from typing import Dict, Iterable, Set

from common.storage import LocalStore
from common.utils.exceptions import StorageUnavailableException

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "readNotifications"


class ReadStateStore:
    """Per-session read marks backed by a LocalStore."""

    def __init__(self, local_store: LocalStore, storage_key: str = DEFAULT_STORAGE_KEY):
        """
        Initialize ReadStateStore.

        Args:
            local_store: Persistent key-value backend
            storage_key: Key holding the serialized read map
        """
        self._local_store = local_store
        self._storage_key = storage_key
        self._memory: Dict[str, bool] = {}

    @staticmethod
    def make_key(subject_user_id: str, group_id: str) -> str:
        return f"{subject_user_id}_{group_id}"

    async def _load(self) -> Dict[str, bool]:
        """
        Read the persisted map.

        Raises:
            StorageUnavailableException: If the local store fails
        """
        raw = await self._local_store.get(self._storage_key)
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable read-state map under {self._storage_key}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Read-state map under {self._storage_key} is not an object")
            return {}

        return {str(key): True for key, value in data.items() if value is True}

    async def snapshot(self, subject_user_id: str) -> Set[str]:
        """
        Get the IDs of all groups the subject user has read.

        Never raises; on storage failure only the in-memory marks are used.
        """
        try:
            persisted = await self._load()
        except StorageUnavailableException as e:
            logger.warning(f"Read state unavailable, using in-memory marks: {e}")
            persisted = {}

        prefix = f"{subject_user_id}_"
        self._memory.update({key: True for key in persisted if key.startswith(prefix)})

        return {
            key[len(prefix):]
            for key, value in self._memory.items()
            if value and key.startswith(prefix)
        }

    async def is_read(self, subject_user_id: str, group_id: str) -> bool:
        return group_id in await self.snapshot(subject_user_id)

    async def set(self, subject_user_id: str, group_id: str) -> bool:
        """Mark one group read. Returns True if the mark was persisted."""
        return await self.set_many(subject_user_id, [group_id])

    async def set_many(self, subject_user_id: str, group_ids: Iterable[str]) -> bool:
        """
        Mark several groups read.

        The in-memory mirror is updated before any I/O. The persisted map is
        re-read and unioned with every mark this instance knows about, then
        written back.

        Returns:
            True if persisted, False if the local store failed (the marks
            stay in memory and go out with the next successful write)
        """
        keys = [self.make_key(subject_user_id, group_id) for group_id in group_ids]
        if not keys:
            return True

        for key in keys:
            self._memory[key] = True

        try:
            persisted = await self._load()
            merged = {**persisted, **self._memory}
            await self._local_store.set(self._storage_key, json.dumps(merged, sort_keys=True))
        except StorageUnavailableException as e:
            logger.warning(
                f"Failed to persist {len(keys)} read mark(s) for user {subject_user_id}: {e}"
            )
            return False

        logger.info(f"Persisted {len(keys)} read mark(s) for user {subject_user_id}")
        return True

    def forget(self, subject_user_id: str) -> None:
        """
        Drop one user's marks from the in-memory mirror.

        Persisted marks are untouched. Marks whose write failed are lost.
        """
        prefix = f"{subject_user_id}_"
        self._memory = {
            key: value for key, value in self._memory.items() if not key.startswith(prefix)
        }

    def dispose(self) -> None:
        """Drop the in-memory mirror at the end of a session."""
        self._memory.clear()
