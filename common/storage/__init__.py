"""
Storage module - Pluggable persistent key-value stores.

- LocalStore: abstract get/set/remove contract
- MemoryLocalStore: process-local dictionary (tests, ephemeral sessions)
- MongoLocalStore: MongoDB collection via Motor
"""

from common.storage.base import LocalStore
from common.storage.memory import MemoryLocalStore
from common.storage.mongodb import MongoLocalStore

__all__ = ["LocalStore", "MemoryLocalStore", "MongoLocalStore"]
