"""Best-effort fan-out of task updates to observers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from vault_clipper.clipper.models import ClipTask

logger = logging.getLogger(__name__)

TaskObserver = Callable[[ClipTask], None]


class ProgressBroadcaster:
    """Publishes ``taskUpdated`` events; absent or failing observers are not errors."""

    def __init__(self) -> None:
        self._observers: list[TaskObserver] = []

    def subscribe(self, observer: TaskObserver) -> Callable[[], None]:
        """Register an observer and return its unsubscribe callable."""

        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def subscribe_queue(self) -> tuple[asyncio.Queue[ClipTask], Callable[[], None]]:
        """Channel flavour: every update is put on an unbounded queue."""

        queue: asyncio.Queue[ClipTask] = asyncio.Queue()
        return queue, self.subscribe(queue.put_nowait)

    def publish(self, task: ClipTask) -> None:
        for observer in list(self._observers):
            try:
                observer(task)
            except Exception:  # noqa: BLE001
                logger.warning("Task observer failed for %s", task.id, exc_info=True)

    @property
    def observer_count(self) -> int:
        return len(self._observers)
