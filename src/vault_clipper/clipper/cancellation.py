"""Per-task cancellation tokens and the registry that owns them."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from vault_clipper.clipper.errors import TaskCancelled

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation signal for one running task.

    The pipeline polls it at step boundaries; external calls awaited through
    ``guard`` run as their own asyncio task and are cancelled the moment the
    token fires, so an in-flight HTTP request does not outlive the clip.
    """

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        self._event = asyncio.Event()
        self._inflight: set[asyncio.Future[object]] = set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Signal cancellation; returns False when already signalled."""

        if self._event.is_set():
            return False
        self._event.set()
        for inflight in list(self._inflight):
            inflight.cancel()
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TaskCancelled(self.task_id)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await an external call that is aborted when the token fires."""

        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise TaskCancelled(self.task_id)
        inflight = asyncio.ensure_future(awaitable)
        self._inflight.add(inflight)
        try:
            return await inflight
        except asyncio.CancelledError:
            if self._event.is_set() and inflight.cancelled():
                raise TaskCancelled(self.task_id) from None
            raise
        finally:
            self._inflight.discard(inflight)


class CancellationRegistry:
    """In-memory map of running task ids to their tokens.

    Lost on process restart; running tasks are not resumable.
    """

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def register(self, task_id: str) -> CancellationToken:
        if task_id in self._tokens:
            raise ValueError(f"Task {task_id} already has a cancellation token.")
        token = CancellationToken(task_id)
        self._tokens[task_id] = token
        return token

    def get(self, task_id: str) -> CancellationToken | None:
        return self._tokens.get(task_id)

    def pop(self, task_id: str) -> CancellationToken | None:
        return self._tokens.pop(task_id, None)

    def discard(self, task_id: str) -> None:
        self._tokens.pop(task_id, None)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)
