"""
MongoDB-backed LocalStore.

Each key is one document in the `localstore` collection:
    {"_id": key, "value": "<string>", "updatedAt": datetime}
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from common.storage.base import LocalStore
from common.utils.exceptions import StorageUnavailableException

logger = logging.getLogger(__name__)


class MongoLocalStore(LocalStore):
    """Persists string values in a MongoDB collection."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "localstore"):
        """
        Initialize MongoLocalStore.

        Args:
            db: MongoDB database connection
            collection_name: Collection holding the key-value documents
        """
        self._db = db
        self._collection = db[collection_name]

    async def get(self, key: str) -> Optional[str]:
        try:
            doc = await self._collection.find_one({"_id": key})
        except PyMongoError as e:
            logger.error(f"Failed to read local store key {key}: {e}")
            raise StorageUnavailableException(details={"key": key}) from e

        if not doc:
            return None
        return doc.get("value")

    async def set(self, key: str, value: str) -> None:
        try:
            await self._collection.update_one(
                {"_id": key},
                {
                    "$set": {
                        "value": value,
                        "updatedAt": datetime.now(timezone.utc),
                    }
                },
                upsert=True,
            )
        except PyMongoError as e:
            logger.error(f"Failed to write local store key {key}: {e}")
            raise StorageUnavailableException(details={"key": key}) from e

        logger.debug(f"Local store key written: {key}")

    async def remove(self, key: str) -> None:
        try:
            await self._collection.delete_one({"_id": key})
        except PyMongoError as e:
            logger.error(f"Failed to remove local store key {key}: {e}")
            raise StorageUnavailableException(details={"key": key}) from e
