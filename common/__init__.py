"""
Common library for reusable infrastructure components.

This package provides generic modules that can be used across multiple
projects:

- database: Async MongoDB connection with Motor
- storage: Pluggable persistent key-value stores (memory, MongoDB)
- content: Sanity content repository client and image URL resolution
- events: In-process event emitter
- utils: Standard responses, exceptions
- config: Base settings class
"""

from common.database import MongoDB
from common.storage import LocalStore, MemoryLocalStore, MongoLocalStore
from common.content import SanityClient, SanityImageUrlResolver
from common.events import EventEmitter
from common.utils import (
    success_response,
    error_response,
    APIException,
    UnauthorizedException,
    NotFoundException,
    ServiceUnavailableException,
    ContentRepositoryException,
    StorageUnavailableException,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Storage
    "LocalStore",
    "MemoryLocalStore",
    "MongoLocalStore",
    # Content
    "SanityClient",
    "SanityImageUrlResolver",
    # Events
    "EventEmitter",
    # Utils
    "success_response",
    "error_response",
    "APIException",
    "UnauthorizedException",
    "NotFoundException",
    "ServiceUnavailableException",
    "ContentRepositoryException",
    "StorageUnavailableException",
    # Config
    "BaseAppSettings",
]
