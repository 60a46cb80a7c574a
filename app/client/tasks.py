from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

_DEFERRED_TASK_EXCEPTIONS = (OSError, RuntimeError, ValueError)


@dataclass
class DeferredTask:
    key: Hashable
    delay: float
    func: Callable[[], None]
    timer: Optional[Any] = None


class DeferredTaskRegistry:
    """Cancellable one-shot tasks keyed by an identifier.

    At most one task is outstanding per key. A task leaves the registry
    either when it fires or when it is cancelled, whichever happens first,
    so it can never run twice or run after cancellation.
    """

    def __init__(self, *, timer_factory: Callable[..., Any] = threading.Timer):
        self._timer_factory = timer_factory
        self._tasks: dict[Hashable, DeferredTask] = {}
        self._lock = threading.Lock()

    def schedule(self, key: Hashable, delay: float, func: Callable[[], None]) -> bool:
        with self._lock:
            if key in self._tasks:
                return False
            task = DeferredTask(key=key, delay=max(0.0, float(delay)), func=func)
            task.timer = self._timer_factory(task.delay, self._fire, args=(task,))
            task.timer.daemon = True
            self._tasks[key] = task
        task.timer.start()
        return True

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            task = self._tasks.pop(key, None)
        if task is None:
            return False
        task.timer.cancel()
        return True

    def cancel_all(self) -> int:
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.timer.cancel()
        if tasks:
            logger.info("Cancelled %d pending task(s).", len(tasks))
        return len(tasks)

    def is_pending(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._tasks

    def pending_keys(self) -> list[Hashable]:
        with self._lock:
            return list(self._tasks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _fire(self, task: DeferredTask) -> None:
        with self._lock:
            if self._tasks.get(task.key) is not task:
                return
            del self._tasks[task.key]
        try:
            task.func()
        except _DEFERRED_TASK_EXCEPTIONS:
            logger.exception("Deferred task failed: %s", task.key)


__all__ = ["DeferredTask", "DeferredTaskRegistry"]
