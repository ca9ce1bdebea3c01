"""
FastAPI dependencies for the notification feed application.

Provides dependency injection for the feed services.
"""

import logging
from typing import Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.content import SanityClient, SanityImageUrlResolver
from common.events import EventEmitter
from common.storage import LocalStore, MemoryLocalStore, MongoLocalStore
from common.utils.exceptions import UnauthorizedException

from app.config import Settings
from app.services.notifications.aggregator import NotificationAggregator
from app.services.notifications.feed_controller import (
    FeedControllerRegistry,
    NotificationFeedController,
)
from app.services.notifications.identity import SubjectUserIdentity
from app.services.notifications.interaction_fetcher import InteractionFetcher
from app.services.notifications.read_state_store import ReadStateStore

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

_local_store: Optional[LocalStore] = None
_sanity_client: Optional[SanityClient] = None
_interaction_fetcher: Optional[InteractionFetcher] = None
_aggregator: Optional[NotificationAggregator] = None
_read_state_store: Optional[ReadStateStore] = None
_identity: Optional[SubjectUserIdentity] = None
_events: Optional[EventEmitter] = None
_feed_registry: Optional[FeedControllerRegistry] = None


# ─────────────────────────────────────────────────────────────────
# Initialization
# ─────────────────────────────────────────────────────────────────

def create_local_store(settings: Settings, db: Optional[AsyncIOMotorDatabase] = None) -> LocalStore:
    """Pick the local store backend from settings."""
    if settings.LOCAL_STORE_BACKEND == "memory" or db is None:
        if settings.LOCAL_STORE_BACKEND != "memory":
            logger.warning("No database available; read marks will not survive a restart")
        return MemoryLocalStore()
    return MongoLocalStore(db, collection_name=settings.LOCAL_STORE_COLLECTION)


def init_notification_services(
    settings: Settings,
    db: Optional[AsyncIOMotorDatabase] = None,
    local_store: Optional[LocalStore] = None,
    sanity_client: Optional[SanityClient] = None,
) -> None:
    """
    Initialize notification feed services.

    Args:
        settings: Application settings
        db: MongoDB database for the local store (optional)
        local_store: Explicit local store (overrides settings)
        sanity_client: Explicit content repository client (overrides settings)
    """
    global _local_store, _sanity_client, _interaction_fetcher, _aggregator
    global _read_state_store, _identity, _events, _feed_registry

    _local_store = local_store or create_local_store(settings, db)

    _sanity_client = sanity_client or SanityClient(
        project_id=settings.SANITY_PROJECT_ID,
        dataset=settings.SANITY_DATASET,
        api_version=settings.SANITY_API_VERSION,
        token=settings.SANITY_API_TOKEN,
        use_cdn=settings.SANITY_USE_CDN,
        timeout=settings.SANITY_TIMEOUT_SECONDS,
    )

    image_resolver = SanityImageUrlResolver(
        project_id=settings.SANITY_PROJECT_ID,
        dataset=settings.SANITY_DATASET,
        placeholder_url=settings.DEFAULT_AVATAR_URL,
    )

    _interaction_fetcher = InteractionFetcher(
        client=_sanity_client,
        lookback_days=settings.NOTIFICATION_LOOKBACK_DAYS,
    )
    _aggregator = NotificationAggregator(
        image_resolver=image_resolver,
        lookback_days=settings.NOTIFICATION_LOOKBACK_DAYS,
        snippet_length=settings.NOTIFICATION_SNIPPET_LENGTH,
    )
    _read_state_store = ReadStateStore(
        _local_store,
        storage_key=settings.READ_STATE_STORAGE_KEY,
    )
    _identity = SubjectUserIdentity(
        _local_store,
        storage_key=settings.SUBJECT_USER_STORAGE_KEY,
    )
    _events = EventEmitter()

    fetch_timeout = settings.NOTIFICATION_FETCH_TIMEOUT_SECONDS

    def _create_controller(subject_user_id: str) -> NotificationFeedController:
        return NotificationFeedController(
            fetcher=_interaction_fetcher,
            aggregator=_aggregator,
            read_state_store=_read_state_store,
            subject_user_id=subject_user_id,
            fetch_timeout=fetch_timeout,
            poll=False,
        )

    _feed_registry = FeedControllerRegistry(
        _create_controller,
        max_size=settings.NOTIFICATION_MAX_CACHED_FEEDS,
        on_evict=_read_state_store.forget,
    )
    logger.info("Notification services initialized")


async def shutdown_notification_services() -> None:
    """Close every controller and drop the session read-state mirror."""
    global _feed_registry

    if _feed_registry is not None:
        await _feed_registry.close_all()
    if _read_state_store is not None:
        _read_state_store.dispose()
    if _events is not None:
        _events.remove_all_listeners()


def create_session_controller(
    settings: Settings,
    subject_user_id: Optional[str] = None,
) -> NotificationFeedController:
    """
    Build a polling controller for a long-lived client session.

    Subscribes to the shared event bus, so emitting SUBJECT_USER_CHANGED
    switches the feed.
    """
    return NotificationFeedController(
        fetcher=get_interaction_fetcher(),
        aggregator=get_aggregator(),
        read_state_store=get_read_state_store(),
        events=get_events(),
        identity=get_identity(),
        subject_user_id=subject_user_id,
        refresh_interval=settings.NOTIFICATION_REFRESH_INTERVAL_SECONDS,
        fetch_timeout=settings.NOTIFICATION_FETCH_TIMEOUT_SECONDS,
        poll=True,
    )


# ─────────────────────────────────────────────────────────────────
# Getters
# ─────────────────────────────────────────────────────────────────

def get_interaction_fetcher() -> InteractionFetcher:
    """Get interaction fetcher instance."""
    if _interaction_fetcher is None:
        raise RuntimeError("Notification services not initialized.")
    return _interaction_fetcher


def get_aggregator() -> NotificationAggregator:
    """Get notification aggregator instance."""
    if _aggregator is None:
        raise RuntimeError("Notification services not initialized.")
    return _aggregator


def get_read_state_store() -> ReadStateStore:
    """Get read-state store instance."""
    if _read_state_store is None:
        raise RuntimeError("Notification services not initialized.")
    return _read_state_store


def get_identity() -> SubjectUserIdentity:
    """Get subject-user identity lookup."""
    if _identity is None:
        raise RuntimeError("Notification services not initialized.")
    return _identity


def get_events() -> EventEmitter:
    """Get session event bus."""
    if _events is None:
        raise RuntimeError("Notification services not initialized.")
    return _events


def get_feed_registry() -> FeedControllerRegistry:
    """Get feed controller registry."""
    if _feed_registry is None:
        raise RuntimeError("Notification services not initialized.")
    return _feed_registry


# ─────────────────────────────────────────────────────────────────
# Auth
# ─────────────────────────────────────────────────────────────────

async def require_auth(request: Request) -> dict:
    """
    Dependency that requires an authenticated user.

    Upstream auth middleware stores the verified user on
    request.state.user as {"user_id": ..., ...}.
    """
    user = getattr(request.state, "user", None)
    if not user or not user.get("user_id"):
        raise UnauthorizedException(
            message="Authentication required",
            code="AUTH_REQUIRED",
        )
    return user
