"""
In-process event bus for session lifecycle fan-out.

The session manager publishes; the profile service, the emergency report
engine and the UI shell subscribe. Nothing here knows who listens.
"""

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List, Optional, Type

from baraya.core.tasks import BackgroundTasks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEstablished:
    """A session became authenticated (sign-in or restore)."""
    user_id: str
    role: str


@dataclass(frozen=True)
class SessionCleared:
    """User-scoped state must be dropped. reason: sign_out | expired_token | invalid_token | unauthorized | user_changed"""
    reason: str


@dataclass(frozen=True)
class SessionExpired:
    """The server rejected the token; the UI should toast and go back to login."""
    message: str
    redirect_to: str


Handler = Callable[[Any], Any]


class EventBus:
    """
    Synchronous publish/subscribe keyed by event class.

    Handlers run in subscription order. The coroutine returned by an
    async handler is spawned as a background task. Handler errors are
    logged and do not reach the publisher.
    """

    def __init__(self, tasks: Optional[BackgroundTasks] = None):
        self._tasks = tasks or BackgroundTasks()
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event class.

        Returns:
            A callable that removes the subscription
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[event_type].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def emit(self, event: Any) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                result = handler(event)
            except Exception as e:
                logger.error(f"Handler {handler!r} failed for {type(event).__name__}: {e}", exc_info=True)
                continue
            if inspect.iscoroutine(result):
                self._tasks.spawn(result, name=f"{type(event).__name__}:{getattr(handler, '__name__', 'handler')}")
