"""Fail-fast task group used for every concurrent fan-out."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


class FailFastGroup:
    """Join a set of tasks and surface only the first failure.

    Unlike :class:`asyncio.TaskGroup`, a failing task does not cancel its
    siblings: :meth:`wait` always lets every task run to completion and then
    raises the exception that happened first.  Side effects of the siblings
    (topics or subscriptions they created) are kept, not rolled back.

    Cancelling :meth:`wait` cancels every task still running.
    """

    def __init__(self) -> None:
        self._tasks: list[asyncio.Task[Any]] = []
        self._first_error: BaseException | None = None

    def spawn(
        self, coro: Coroutine[Any, Any, T], *, name: str | None = None
    ) -> asyncio.Task[T]:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._on_done)
        self._tasks.append(task)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._first_error is None:
            self._first_error = exc

    @property
    def first_error(self) -> BaseException | None:
        return self._first_error

    def __len__(self) -> int:
        return len(self._tasks)

    async def wait(self) -> None:
        """Wait for every spawned task, then raise the first error, if any."""
        if not self._tasks:
            return
        await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._first_error is not None:
            raise self._first_error
