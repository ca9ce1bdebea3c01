"""In-memory LocalStore backend."""

from typing import Dict, Optional

from common.storage.base import LocalStore


class MemoryLocalStore(LocalStore):
    """Dictionary-backed store. Values last as long as the instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)
