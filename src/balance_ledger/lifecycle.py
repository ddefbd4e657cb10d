"""
Shutdown sequencing for the process entry point.

The queue is an explicit object owned by whoever starts the process (the
FastAPI lifespan), not a module-level registry.
"""

import json
import logging
import threading
import time
from typing import Callable

logger = logging.getLogger("balance_ledger.lifecycle")

ShutdownTask = Callable[[], None]


class ShutdownError(Exception):
    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        super().__init__("; ".join(str(error) for error in self.errors))


class ShutdownQueue:
    """
    LIFO cleanup queue.

    Tasks run once, in reverse order of registration. Task failures are
    collected and raised together as ShutdownError after the drain. Calling
    shutdown again is a no-op.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks: list[ShutdownTask] = []
        self._closed = False

    def add(self, task: ShutdownTask | None) -> None:
        if task is None:
            return
        with self._lock:
            if self._closed:
                return
            self._tasks.append(task)

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, timeout: float | None = None) -> None:
        with self._lock:
            self._closed = True
            tasks, self._tasks = self._tasks, []

        deadline = None if timeout is None else time.monotonic() + timeout
        errors: list[BaseException] = []
        for index in range(len(tasks) - 1, -1, -1):
            if deadline is not None and time.monotonic() >= deadline:
                errors.append(
                    TimeoutError(f"shutdown timed out with {index + 1} task(s) pending")
                )
                break
            task = tasks[index]
            try:
                task()
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    json.dumps(
                        {
                            "event": "shutdown_task_failed",
                            "task": getattr(task, "__qualname__", repr(task)),
                            "error": str(exc),
                        }
                    )
                )
                errors.append(exc)

        if errors:
            raise ShutdownError(errors)
