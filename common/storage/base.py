"""
Abstract persistent local store interface.

A minimal string key-value contract used for small pieces of state that
must survive restarts (read marks, the cached auth user). Swapping the
backend (in-memory for tests, MongoDB in deployments) does not change
application code.

Example:
    from common.storage import LocalStore, MemoryLocalStore, MongoLocalStore

    def get_local_store(settings, db) -> LocalStore:
        if settings.LOCAL_STORE_BACKEND == "memory":
            return MemoryLocalStore()
        return MongoLocalStore(db)
"""

from abc import ABC, abstractmethod
from typing import Optional


class LocalStore(ABC):
    """
    Abstract string key-value store.

    Implementations raise StorageUnavailableException when the backing
    medium cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any existing one.

        Args:
            key: Storage key
            value: Serialized value
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Delete a value. Removing a missing key is a no-op.

        Args:
            key: Storage key
        """
        pass
