from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .logging_utils import log_event

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


class TaskScheduler:
    """Runs detached work after the HTTP response has been sent.

    Each scheduled task is bounded by ``timeout_seconds``. The host calls
    ``drain()`` on shutdown so the process stays up until pending work
    settles; whatever is still running after the grace period is cancelled.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float,
        logger: logging.Logger = logger,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._timeout_seconds = timeout_seconds
        self._logger = logger
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, task_id: str, factory: TaskFactory) -> asyncio.Task[Any]:
        if self._closed:
            raise RuntimeError("scheduler is shutting down")
        if task_id in self._tasks:
            raise ValueError(f"task {task_id} is already scheduled")
        task = asyncio.create_task(self._run(task_id, factory), name=f"relay-{task_id}")
        self._tasks[task_id] = task
        task.add_done_callback(lambda _task: self._tasks.pop(task_id, None))
        log_event(
            self._logger,
            logging.INFO,
            "relay.deferred.scheduled",
            task_id=task_id,
            timeout_seconds=self._timeout_seconds,
        )
        return task

    async def _run(self, task_id: str, factory: TaskFactory) -> Any:
        try:
            return await asyncio.wait_for(factory(), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            log_event(
                self._logger,
                logging.ERROR,
                "relay.deferred.timeout",
                task_id=task_id,
                timeout_seconds=self._timeout_seconds,
            )
        except asyncio.CancelledError:
            log_event(self._logger, logging.WARNING, "relay.deferred.cancelled", task_id=task_id)
            raise
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "relay.deferred.crashed",
                exc=exc,
                task_id=task_id,
            )
        return None

    async def drain(self, grace_seconds: Optional[float] = None) -> int:
        """Wait for pending tasks; cancel stragglers. Returns the number cancelled."""
        self._closed = True
        pending = list(self._tasks.values())
        if not pending:
            return 0
        log_event(
            self._logger,
            logging.INFO,
            "relay.scheduler.drain",
            pending=len(pending),
            grace_seconds=grace_seconds,
        )
        _done, still_running = await asyncio.wait(pending, timeout=grace_seconds)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
        return len(still_running)
