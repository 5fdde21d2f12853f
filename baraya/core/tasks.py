"""
Background task plumbing.

All state lives on the event loop thread. Blocking work (HTTP via
requests, file I/O) is pushed to the default executor with run_blocking();
fire-and-forget side effects are spawned on a BackgroundTasks instance.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Coroutine, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable in the loop's default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


class BackgroundTasks:
    """
    Owner of fire-and-forget tasks.

    Holds a strong reference to every spawned task until it finishes and
    logs failures, since nobody awaits these tasks directly.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> Optional[asyncio.Task]:
        """
        Schedule a coroutine on the running loop.

        Outside a running loop the coroutine is run to completion inline.

        Args:
            coro: Coroutine to run
            name: Task name used in logs

        Returns:
            The scheduled task, or None when it ran inline
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, running {name or coro!r} inline")
            try:
                asyncio.run(coro)
            except Exception as e:
                logger.error(f"Background task {name} failed: {e}", exc_info=True)
            return None

        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every spawned task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
