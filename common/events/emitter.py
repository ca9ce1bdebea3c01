"""
Simple in-process event emitter.

Used as the broadcast channel for session-level events such as
"subject user changed". Listeners may be plain functions or coroutine
functions; coroutine listeners are scheduled on the running loop
and tracked until they finish.

Example:
    from common.events import EventEmitter

    events = EventEmitter()
    subscription = events.add_listener("subjectUserChanged", on_user_changed)
    events.emit("subjectUserChanged", "user-123")
    subscription.remove()
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Subscription:
    """Handle returned by add_listener."""

    def __init__(self, emitter: "EventEmitter", event_name: str, listener: Listener):
        self._emitter = emitter
        self._event_name = event_name
        self._listener = listener

    def remove(self) -> None:
        self._emitter.remove_listener(self._event_name, self._listener)


class EventEmitter:
    """Maps event names to listener lists."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._pending: Set[asyncio.Future] = set()

    def add_listener(self, event_name: str, listener: Listener) -> Subscription:
        """
        Register a listener.

        Args:
            event_name: Event to listen for
            listener: Callback invoked with the emitted arguments

        Returns:
            Subscription whose remove() unregisters the listener
        """
        self._listeners.setdefault(event_name, []).append(listener)
        return Subscription(self, event_name, listener)

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        self._listeners[event_name] = [l for l in listeners if l is not listener]

    def remove_all_listeners(self, event_name: Optional[str] = None) -> None:
        if event_name:
            self._listeners.pop(event_name, None)
        else:
            self._listeners = {}

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    def emit(self, event_name: str, *args: Any) -> None:
        """
        Call every listener for an event, synchronously and in order.

        A failing listener is logged and does not stop the others.
        """
        for listener in list(self._listeners.get(event_name, [])):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._schedule(event_name, result)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    @property
    def pending_count(self) -> int:
        """Number of coroutine listeners still running."""
        return len(self._pending)

    def _schedule(self, event_name: str, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(finished: asyncio.Future) -> None:
            self._pending.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.error(f"Error in event listener for {event_name}: {error}")

        task.add_done_callback(_done)
