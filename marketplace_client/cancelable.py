"""Cancelable Task - An awaitable unit of work with cooperative cancellation.

A CancelableTask runs an executor coroutine on the current event loop and
settles exactly once: fulfilled, rejected, or cancelled. cancel() settles the
task immediately with CancelError and fires the handlers registered on its
CancellationToken, which is how the transport aborts an in-flight call.

Usage:
    task = CancelableTask(executor)
    ...
    task.cancel()
    await task  # raises CancelError
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generator, Generic, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelError(Exception):
    """Raised when a request is aborted before or during flight."""

    @property
    def is_cancelled(self) -> bool:
        return True


class TaskState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cancellation flag plus the abort hooks registered against it."""

    def __init__(self) -> None:
        self._cancelled = False
        self._handlers: list[Callable[[], Any]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, handler: Callable[[], Any]) -> None:
        """Register an abort hook. Ignored once the token is cancelled."""
        if self._cancelled:
            return
        self._handlers.append(handler)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        handlers, self._handlers = self._handlers, []
        for handler in handlers:
            try:
                handler()
            except Exception:
                logger.warning("Cancellation handler raised", exc_info=True)


class CancelableTask(Generic[T]):
    """Awaitable result of an executor, settled once.

    Must be created while an event loop is running; the executor starts
    right away as an asyncio task. Cancelling the awaiting side through
    asyncio (wait_for, an outer task, a TaskGroup) counts as cancel() and
    aborts the in-flight call the same way.
    """

    def __init__(self, executor: Callable[[CancellationToken], Awaitable[T]]) -> None:
        loop = asyncio.get_running_loop()
        self._token = CancellationToken()
        self._state = TaskState.PENDING
        self._future: asyncio.Future[T] = loop.create_future()
        self._future.add_done_callback(self._on_future_done)
        self._task = loop.create_task(self._run(executor))

    async def _run(self, executor: Callable[[CancellationToken], Awaitable[T]]) -> None:
        try:
            result = await executor(self._token)
        except Exception as exc:
            self._reject(exc)
        else:
            self._resolve(result)

    def _settleable(self) -> bool:
        return self._state is TaskState.PENDING and not self._future.done()

    def _on_future_done(self, future: asyncio.Future[T]) -> None:
        # The future was cancelled by whoever awaited it
        if future.cancelled() and self._state is TaskState.PENDING:
            self._state = TaskState.CANCELLED
            self._token.cancel()

    def _resolve(self, value: T) -> None:
        if not self._settleable():
            return
        self._state = TaskState.FULFILLED
        self._future.set_result(value)

    def _reject(self, error: BaseException) -> None:
        if not self._settleable():
            return
        self._state = TaskState.REJECTED
        self._future.set_exception(error)

    def cancel(self) -> None:
        """Abort the task. No-op once it has settled."""
        if not self._settleable():
            return
        self._state = TaskState.CANCELLED
        self._token.cancel()
        self._future.set_exception(CancelError("Request aborted"))

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def is_cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    def done(self) -> bool:
        return self._state is not TaskState.PENDING

    async def join(self) -> None:
        """Wait for the executor itself to return; it can outlive cancel()."""
        await self._task

    def __await__(self) -> Generator[Any, None, T]:
        return self._future.__await__()

    def __repr__(self) -> str:
        return f"CancelableTask(state={self._state.value})"
