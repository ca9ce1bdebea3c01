"""
Subject-user identity lookup.

The auth layer caches the signed-in user in the local store as JSON
(`{"_id": "...", ...}`). The feed reads it to know whose notifications
to show when no user is passed explicitly.
"""

import json
import logging
from typing import Optional

from common.storage import LocalStore
from common.utils.exceptions import StorageUnavailableException

logger = logging.getLogger(__name__)

# Event emitted on the session event bus when the signed-in user changes.
SUBJECT_USER_CHANGED = "subjectUserChanged"


class SubjectUserIdentity:
    """Reads the current subject user ID from the local store."""

    def __init__(self, local_store: LocalStore, storage_key: str = "sanity_user"):
        self._local_store = local_store
        self._storage_key = storage_key

    async def current_user_id(self) -> Optional[str]:
        try:
            raw = await self._local_store.get(self._storage_key)
        except StorageUnavailableException as e:
            logger.warning(f"Could not read cached user: {e}")
            return None

        if not raw:
            return None

        try:
            user = json.loads(raw)
        except ValueError:
            logger.warning(f"Cached user under {self._storage_key} is not valid JSON")
            return None

        if not isinstance(user, dict) or not user.get("_id"):
            return None
        return str(user["_id"])
