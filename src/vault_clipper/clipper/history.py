"""Persisted, capped task history with a single serialized writer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Container
from dataclasses import replace
from datetime import timedelta

from vault_clipper.clipper.broadcast import ProgressBroadcaster
from vault_clipper.clipper.models import (
    DEFAULT_MAX_TASKS,
    ClipTask,
    TaskHistory,
    TaskResult,
    TaskStatus,
    TaskStep,
)
from vault_clipper.storage.common import utc_now
from vault_clipper.storage.kv import KeyValueStore, Record

logger = logging.getLogger(__name__)

HISTORY_KEY = "taskHistory"
INTERRUPTED_ERROR = "Interrupted before completion (the clipper was restarted)."

TaskMutation = Callable[[ClipTask], None]
HistoryChange = Callable[[TaskHistory], list[ClipTask]]


class TaskStore:
    """Single source of truth for observer-visible task state.

    Every mutation rewrites the whole history record through
    ``KeyValueStore.update``, which is atomic across processes sharing the
    store. Within one process mutations are also serialized on a lock so
    observers see updates in the order they were written.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        broadcaster: ProgressBroadcaster | None = None,
        max_tasks: int = DEFAULT_MAX_TASKS,
    ) -> None:
        if max_tasks <= 0:
            raise ValueError("max_tasks must be a positive integer.")
        self.kv = kv
        self.broadcaster = broadcaster or ProgressBroadcaster()
        self.max_tasks = max_tasks
        self._lock = asyncio.Lock()

    async def load(self) -> TaskHistory:
        return self._decode(await self.kv.get(HISTORY_KEY))

    async def list_tasks(self) -> list[ClipTask]:
        return (await self.load()).tasks

    async def get(self, task_id: str) -> ClipTask | None:
        history = await self.load()
        index = history.find(task_id)
        return history.tasks[index] if index is not None else None

    async def insert(self, task: ClipTask) -> ClipTask:
        """Add a new task at the front, evicting the oldest beyond capacity."""

        evicted: list[ClipTask] = []

        def _change(history: TaskHistory) -> list[ClipTask]:
            if history.find(task.id) is not None:
                raise ValueError(f"Task {task.id} already exists in history.")
            history.tasks.insert(0, replace(task))
            evicted[:] = history.tasks[self.max_tasks :]
            del history.tasks[self.max_tasks :]
            return [history.tasks[0]]

        (snapshot,) = await self._modify(_change)
        if evicted:
            logger.debug("Evicted %d task(s) from history: %s", len(evicted), [t.id for t in evicted])
        return snapshot

    async def update(
        self,
        task_id: str,
        mutate: TaskMutation,
        *,
        expect_status: TaskStatus | None = TaskStatus.RUNNING,
    ) -> ClipTask | None:
        """Replace one task in place; no-op unless its status still matches.

        Returns the updated snapshot, or None when the task is gone (evicted)
        or its status no longer equals ``expect_status``.
        """

        def _change(history: TaskHistory) -> list[ClipTask]:
            index = history.find(task_id)
            if index is None:
                return []
            task = history.tasks[index]
            if expect_status is not None and task.status is not expect_status:
                return []
            mutate(task)
            return [task]

        changed = await self._modify(_change)
        return changed[0] if changed else None

    async def set_step(self, task_id: str, step: TaskStep) -> ClipTask | None:
        def _mutate(task: ClipTask) -> None:
            task.step = step

        return await self.update(task_id, _mutate)

    async def complete(self, task_id: str, result: TaskResult) -> ClipTask | None:
        def _mutate(task: ClipTask) -> None:
            task.status = TaskStatus.SUCCESS
            task.step = TaskStep.DONE
            task.completed_at = utc_now()
            task.result = result

        return await self.update(task_id, _mutate)

    async def fail(self, task_id: str, error: str) -> ClipTask | None:
        def _mutate(task: ClipTask) -> None:
            task.status = TaskStatus.ERROR
            task.completed_at = utc_now()
            task.error = error

        return await self.update(task_id, _mutate)

    async def cancel(self, task_id: str) -> ClipTask | None:
        def _mutate(task: ClipTask) -> None:
            task.status = TaskStatus.CANCELLED
            task.completed_at = utc_now()

        return await self.update(task_id, _mutate)

    async def recover_interrupted(
        self,
        *,
        active_task_ids: Container[str],
        stale_after: timedelta = timedelta(0),
    ) -> list[str]:
        """Finalize tasks left ``running`` by a previous process.

        Only tasks started at least ``stale_after`` ago are touched, so a clip
        still running in another process sharing the database survives.
        """

        def _change(history: TaskHistory) -> list[ClipTask]:
            now = utc_now()
            recovered: list[ClipTask] = []
            for task in history.tasks:
                if (
                    task.status is TaskStatus.RUNNING
                    and task.id not in active_task_ids
                    and now - task.created_at >= stale_after
                ):
                    task.status = TaskStatus.ERROR
                    task.completed_at = now
                    task.error = INTERRUPTED_ERROR
                    recovered.append(task)
            return recovered

        recovered = await self._modify(_change)
        for task in recovered:
            logger.warning("Recovered interrupted task %s", task.id)
        return [task.id for task in recovered]

    async def _modify(self, change: HistoryChange) -> list[ClipTask]:
        """Apply ``change`` atomically and broadcast the tasks it touched.

        ``change`` returns the tasks it modified; an empty list skips the write.
        """

        changed: list[ClipTask] = []

        def _apply(record: Record | None) -> Record | None:
            history = self._decode(record)
            changed[:] = change(history)
            return history.to_dict() if changed else None

        async with self._lock:
            await self.kv.update(HISTORY_KEY, _apply)
            snapshots = [replace(task) for task in changed]
            for snapshot in snapshots:
                self.broadcaster.publish(replace(snapshot))
        return snapshots

    def _decode(self, record: Record | None) -> TaskHistory:
        history = TaskHistory.from_dict(record, max_tasks=self.max_tasks)
        history.max_tasks = self.max_tasks
        return history
