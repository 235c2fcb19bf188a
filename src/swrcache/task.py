"""FetchTask - one shared fetch that many callers can join."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar, cast

from swrcache.types import FetchFn

T = TypeVar("T")

logger = logging.getLogger(__name__)


class TaskState(enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FetchTask(Generic[T]):
    """A running fetch shared by every caller that asks for the same key.

    Settlement is broadcast to the listeners registered with
    ``add_done_callback`` before any ``join()`` caller resumes, so joiners
    always observe what the listeners wrote.

    Usage:
        task = FetchTask.spawn("clients", fetch_clients)
        task.add_done_callback(lambda t: print(t.state))
        await task.join()  # never raises the fetch's exception
    """

    __slots__ = ("_callbacks", "_exception", "_result", "_state", "_task", "key")

    def __init__(self, key: str) -> None:
        self.key = key
        self._state = TaskState.PENDING
        self._result: T | None = None
        self._exception: Exception | None = None
        self._callbacks: list[Callable[[FetchTask[T]], None]] = []
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def spawn(cls, key: str, fetch_fn: FetchFn[T]) -> FetchTask[T]:
        """Schedule ``fetch_fn`` on the running loop."""
        handle: FetchTask[T] = cls(key)
        handle._task = asyncio.ensure_future(handle._run(fetch_fn))
        handle._task.add_done_callback(handle._on_task_done)
        return handle

    async def _run(self, fetch_fn: FetchFn[T]) -> None:
        try:
            value = fetch_fn()
            if inspect.isawaitable(value):
                value = await value
        except asyncio.CancelledError:
            self._settle(TaskState.CANCELLED)
            raise
        except Exception as e:
            self._exception = e
            self._settle(TaskState.FAILED)
            return
        self._result = cast(T, value)
        self._settle(TaskState.SUCCEEDED)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        # Cancelled before the coroutine got to run
        if self._state is TaskState.PENDING and task.cancelled():
            self._settle(TaskState.CANCELLED)

    def _settle(self, state: TaskState) -> None:
        self._state = state
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._call(callback)

    def _call(self, callback: Callable[[FetchTask[T]], None]) -> None:
        try:
            callback(self)
        except Exception:
            logger.exception("Settlement listener for %s raised", self.key)

    @property
    def state(self) -> TaskState:
        return self._state

    def done(self) -> bool:
        return self._state is not TaskState.PENDING

    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    def result(self) -> T | None:
        """Value the fetch produced, or None if it has not succeeded."""
        return self._result

    def exception(self) -> Exception | None:
        return self._exception

    def add_done_callback(self, callback: Callable[[FetchTask[T]], None]) -> None:
        """Run ``callback(task)`` on settlement (immediately if already settled)."""
        if self.done():
            self._call(callback)
        else:
            self._callbacks.append(callback)

    def cancel(self) -> bool:
        if self.done() or self._task is None:
            return False
        return self._task.cancel()

    async def join(self) -> None:
        """Wait for settlement.

        Cancelling the joining caller does not cancel the shared fetch.
        """
        if self.done() or self._task is None:
            return
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    def __await__(self) -> Any:
        return self.join().__await__()

    def __repr__(self) -> str:
        return f"FetchTask({self.key!r}, {self._state.value})"
