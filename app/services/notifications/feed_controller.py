"""
Notification feed controller.

Stateful facade over the feed pipeline for one subject user at a time.
Handles loading/refreshing state, optimistic mark-read updates, periodic
polling, and subject-user changes.

State machine:
    idle -> loading -> ready | error
    ready/error may additionally be `refreshing` while a fetch runs over
    already-displayed data.

Every optimistic change is applied to in-memory state before the
matching persistence call is awaited. No public operation raises.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Callable, List, Optional

from common.events import EventEmitter, Subscription
from app.pipelines.notifications import build_notification_feed
from app.services.notifications.aggregator import NotificationAggregator
from app.services.notifications.identity import SubjectUserIdentity, SUBJECT_USER_CHANGED
from app.services.notifications.interaction_fetcher import InteractionFetcher
from app.services.notifications.read_state_store import ReadStateStore
from app.services.notifications.reconciler import merge_read_state, count_unread
from app.services.notifications.types import (
    FeedResult,
    FeedSnapshot,
    FeedState,
    NotificationGroup,
)

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to load notifications. Please try again later."

FeedListener = Callable[[FeedSnapshot], None]


class NotificationFeedController:
    """
    Owns the in-memory notification list for the active subject user.

    Lifecycle: construct, `await start()`, use, `await close()`. After
    close the controller ignores all operations and never mutates state.
    """

    def __init__(
        self,
        fetcher: InteractionFetcher,
        aggregator: NotificationAggregator,
        read_state_store: ReadStateStore,
        events: Optional[EventEmitter] = None,
        identity: Optional[SubjectUserIdentity] = None,
        subject_user_id: Optional[str] = None,
        refresh_interval: float = 300.0,
        fetch_timeout: Optional[float] = 15.0,
        poll: bool = True,
    ):
        """
        Initialize NotificationFeedController.

        Args:
            fetcher: Raw interaction fetcher
            aggregator: Groups interactions into notifications
            read_state_store: Session read-state store
            events: Event bus carrying subject-user changes
            identity: Fallback lookup of the signed-in user
            subject_user_id: Initial subject user
            refresh_interval: Seconds between periodic refreshes
            fetch_timeout: Seconds before a fetch is abandoned (None = no limit)
            poll: Run periodic refresh while a subject user is active
        """
        self._fetcher = fetcher
        self._aggregator = aggregator
        self._read_state_store = read_state_store
        self._events = events
        self._identity = identity
        self._refresh_interval = refresh_interval
        self._fetch_timeout = fetch_timeout
        self._poll = poll

        self._subject_user_id = subject_user_id
        self._state = FeedState.IDLE
        self._notifications: List[NotificationGroup] = []
        self._unread_count = 0
        self._refreshing = False
        self._error: Optional[str] = None

        self._alive = True
        self._generation = 0
        self._fetch_seq = 0
        self._latest_fetch: Optional[asyncio.Future] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._subscription: Optional[Subscription] = None
        self._listeners: List[FeedListener] = []

    # ─────────────────────────────────────────────────────────────
    # Read-only state
    # ─────────────────────────────────────────────────────────────

    @property
    def subject_user_id(self) -> Optional[str]:
        return self._subject_user_id

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def notifications(self) -> List[NotificationGroup]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def loading(self) -> bool:
        return self._state == FeedState.LOADING

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            subject_user_id=self._subject_user_id,
            state=self._state,
            notifications=list(self._notifications),
            unread_count=self._unread_count,
            loading=self.loading,
            refreshing=self._refreshing,
            error=self._error,
        )

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """
        Observe state changes.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Feed listener failed: {e}")

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def start(self) -> FeedSnapshot:
        """
        Subscribe to identity changes, load the first page, start polling.

        Uses the identity lookup when no subject user was given.
        """
        if not self._alive:
            return self.snapshot()

        if self._events is not None and self._subscription is None:
            self._subscription = self._events.add_listener(
                SUBJECT_USER_CHANGED, self.set_subject_user
            )

        if self._subject_user_id is None and self._identity is not None:
            self._subject_user_id = await self._identity.current_user_id()

        if not self._subject_user_id:
            return await self.fetch()

        snapshot = await self.fetch()
        self._start_polling(fetch_first=False)
        return snapshot

    async def close(self) -> None:
        """Stop polling, unsubscribe, and freeze state."""
        self._alive = False
        self._listeners.clear()

        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None

        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.debug(f"Feed controller closed for user {self._subject_user_id}")

    def set_subject_user(self, subject_user_id: Optional[str]) -> None:
        """
        Switch the subject user.

        Clears the displayed notifications synchronously, so nothing from
        the previous user can show while the next fetch is pending. Any
        fetch already in flight is discarded when it resolves.
        """
        if not self._alive or subject_user_id == self._subject_user_id:
            return

        logger.info(f"Subject user changed: {self._subject_user_id} -> {subject_user_id}")

        self._generation += 1
        self._subject_user_id = subject_user_id
        self._notifications = []
        self._unread_count = 0
        self._error = None
        self._refreshing = False
        self._state = FeedState.IDLE
        self._notify()

        self._stop_polling()
        if subject_user_id:
            self._start_polling(fetch_first=True)

    # ─────────────────────────────────────────────────────────────
    # Polling
    # ─────────────────────────────────────────────────────────────

    def _start_polling(self, fetch_first: bool) -> None:
        if not self._poll or not self._alive or self.is_polling:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; periodic refresh not started")
            return

        self._poll_task = loop.create_task(self._poll_loop(fetch_first))

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _poll_loop(self, fetch_first: bool) -> None:
        if fetch_first:
            await self.fetch()

        while self._alive and self._subject_user_id:
            await asyncio.sleep(self._refresh_interval)
            if not self._alive:
                break
            await self.fetch()

    # ─────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────

    async def fetch(self) -> FeedSnapshot:
        """
        Load or refresh notifications.

        Never raises. On failure the state becomes `error` and whatever was
        displayed before stays displayed. When a newer fetch starts before
        this one resolves, this call waits for the newer one and returns
        its outcome.
        """
        if not self._alive:
            return self.snapshot()

        subject_user_id = self._subject_user_id
        generation = self._generation

        if not subject_user_id:
            self._notifications = []
            self._unread_count = 0
            self._error = None
            self._refreshing = False
            self._state = FeedState.READY
            self._notify()
            return self.snapshot()

        self._fetch_seq += 1
        seq = self._fetch_seq
        completion = asyncio.get_running_loop().create_future()
        self._latest_fetch = completion

        if self._notifications:
            self._refreshing = True
        else:
            self._state = FeedState.LOADING
        self._notify()

        snapshot = None
        try:
            snapshot = await self._apply_fetch(subject_user_id, generation, seq)
            return snapshot
        finally:
            # Older fetches waiting on this one must always be released.
            if not completion.done():
                completion.set_result(snapshot or self.snapshot())

    async def _apply_fetch(self, subject_user_id: str, generation: int, seq: int) -> FeedSnapshot:
        result = await self._run_pipeline(subject_user_id)

        if not self._alive or generation != self._generation:
            logger.debug(f"Discarding feed result for previous user {subject_user_id}")
            return self.snapshot()

        if seq != self._fetch_seq:
            logger.debug("Feed result superseded by a newer fetch; waiting for it")
            return await asyncio.shield(self._latest_fetch)

        self._refreshing = False

        if result.failed:
            logger.warning(f"Notification fetch failed for user {subject_user_id}: {result.error}")
            self._error = FETCH_ERROR_MESSAGE
            self._state = FeedState.ERROR
            self._notify()
            return self.snapshot()

        # Re-merge against what is displayed now: marks made while the
        # fetch was in flight must survive.
        groups = merge_read_state(result.groups, set(), previous=self._notifications)

        self._notifications = groups
        self._unread_count = count_unread(groups)
        self._error = None
        self._state = FeedState.READY
        self._notify()
        return self.snapshot()

    async def _run_pipeline(self, subject_user_id: str) -> FeedResult:
        pipeline = build_notification_feed(
            fetcher=self._fetcher,
            aggregator=self._aggregator,
            read_state_store=self._read_state_store,
            subject_user_id=subject_user_id,
            previous=list(self._notifications),
        )

        try:
            if self._fetch_timeout:
                return await asyncio.wait_for(pipeline, timeout=self._fetch_timeout)
            return await pipeline
        except asyncio.TimeoutError:
            logger.warning(
                f"Notification fetch timed out after {self._fetch_timeout}s for user {subject_user_id}"
            )
            return FeedResult(groups=[], unread_count=0, failed=True, error="Fetch timed out")
        except Exception as e:
            logger.error(f"Unexpected error building feed for user {subject_user_id}: {e}")
            return FeedResult(groups=[], unread_count=0, failed=True, error=str(e))

    async def mark_as_read(self, group_id: str) -> bool:
        """
        Mark one notification group read.

        The in-memory flag and unread count change immediately; the read
        mark is persisted afterwards, even when the group isn't loaded.

        Returns:
            True if the mark was persisted
        """
        if not self._alive or not self._subject_user_id:
            return False

        subject_user_id = self._subject_user_id
        changed = False
        updated = []
        for group in self._notifications:
            if group.id == group_id and not group.read:
                updated.append(replace(group, read=True))
                changed = True
            else:
                updated.append(group)

        if changed:
            self._notifications = updated
            self._unread_count = max(0, self._unread_count - 1)
            self._notify()

        try:
            return await self._read_state_store.set(subject_user_id, group_id)
        except Exception as e:
            logger.error(f"Error marking notification {group_id} as read: {e}")
            return False

    async def mark_all_as_read(self) -> bool:
        """
        Mark every currently loaded group read.

        Groups delivered by a fetch that completes later are not affected.

        Returns:
            True if the marks were persisted
        """
        if not self._alive or not self._subject_user_id:
            return False

        subject_user_id = self._subject_user_id
        group_ids = [group.id for group in self._notifications]

        self._notifications = [replace(group, read=True) for group in self._notifications]
        self._unread_count = 0
        self._notify()

        if not group_ids:
            return True

        try:
            return await self._read_state_store.set_many(subject_user_id, group_ids)
        except Exception as e:
            logger.error(f"Error marking all notifications as read: {e}")
            return False


class FeedControllerRegistry:
    """
    Bounded set of feed controllers, one per subject user, for
    request/response callers.

    Controllers created here don't poll; each request pulls. When more
    than `max_size` users are cached, the least recently used controller
    is closed and dropped; read state lives in the Read-State Store, so a
    returning user simply gets a fresh controller.
    """

    def __init__(
        self,
        factory: Callable[[str], NotificationFeedController],
        max_size: int = 1000,
        on_evict: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize FeedControllerRegistry.

        Args:
            factory: Builds a controller for a subject user
            max_size: Most controllers kept at once
            on_evict: Called with the subject user ID after eviction
        """
        self._factory = factory
        self._max_size = max(1, max_size)
        self._on_evict = on_evict
        self._controllers: "OrderedDict[str, NotificationFeedController]" = OrderedDict()

    async def get(self, subject_user_id: str) -> NotificationFeedController:
        controller = self._controllers.get(subject_user_id)
        if controller is not None:
            self._controllers.move_to_end(subject_user_id)
            return controller

        controller = self._factory(subject_user_id)
        self._controllers[subject_user_id] = controller

        while len(self._controllers) > self._max_size:
            evicted_user_id, evicted = self._controllers.popitem(last=False)
            await self._evict(evicted_user_id, evicted)

        return controller

    async def _evict(self, subject_user_id: str, controller: NotificationFeedController) -> None:
        logger.debug(f"Evicting feed controller for user {subject_user_id}")
        await controller.close()
        if self._on_evict is not None:
            self._on_evict(subject_user_id)

    def __contains__(self, subject_user_id: str) -> bool:
        return subject_user_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)

    async def close_all(self) -> None:
        controllers = list(self._controllers.items())
        self._controllers.clear()
        for subject_user_id, controller in controllers:
            await self._evict(subject_user_id, controller)
