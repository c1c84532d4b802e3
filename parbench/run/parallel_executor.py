"""Thread-based join-all executor for concurrent worker invocations."""

from __future__ import annotations

import logging
import threading
import time
import traceback
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Name of the task running in the current worker thread.
# Used by debug.py to tag output with the task it belongs to.
_task_context = threading.local()


def get_current_task_name() -> str | None:
    """
    Get the current task name from thread-local storage.

    Returns:
        The current task name if running within a ParallelExecutor task,
        None otherwise (sequential execution or not within a task).
    """
    return getattr(_task_context, "name", None)


@dataclass
class TaskOutcome:
    """Settled state of one task: either a value or the exception it raised."""

    name: str
    value: Any = None
    error: BaseException | None = None
    traceback: str | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


class _TaskFailed(Exception):
    """Carries a task's exception together with its formatted traceback."""

    def __init__(self, error: Exception, formatted: str):
        super().__init__(str(error))
        self.error = error
        self.formatted = formatted


class ParallelExecutor:
    """Runs tasks concurrently and waits for every one of them to settle.

    A failing task never cancels its siblings; each task's exception is
    captured into its ``TaskOutcome`` and handed back to the caller.
    """

    def __init__(self, max_workers: int = 2):
        self.max_workers = max_workers

        self.status: dict[str, str] = {}
        self.start_times: dict[str, float] = {}
        self.finish_times: dict[str, float] = {}

        self._state_lock = threading.Lock()

    def execute_parallel(
        self,
        tasks: dict[str, Callable[[], Any]],
        phase_name: str,
    ) -> dict[str, TaskOutcome]:
        """Execute tasks in parallel and return one outcome per task, in task order."""
        if not tasks:
            return {}

        self._reset_state(tasks)

        outcomes: dict[str, TaskOutcome] = {}
        future_to_name = {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks))) as pool:
            for name, task in tasks.items():
                future = pool.submit(self._wrap_task, name, task)
                future_to_name[future] = name

            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    value = future.result()
                except _TaskFailed as failed:
                    outcomes[name] = self._settle(
                        name, error=failed.error, formatted=failed.formatted
                    )
                    self.update_status(name, f"Failed: {failed.error}"[:200])
                else:
                    outcomes[name] = self._settle(name, value=value)
                    self.update_status(name, "Completed")

        self._log_summary(phase_name)

        return {name: outcomes[name] for name in tasks}

    def _wrap_task(self, name: str, task: Callable[[], Any]) -> Any:
        """Run a single task with its name stored in thread-local state."""
        _task_context.name = name

        with self._state_lock:
            self.start_times[name] = time.time()
        self.update_status(name, "Running")

        try:
            return task()
        except Exception as exc:
            raise _TaskFailed(exc, traceback.format_exc().strip()) from exc
        finally:
            _task_context.name = None

    def _settle(
        self,
        name: str,
        value: Any = None,
        error: BaseException | None = None,
        formatted: str | None = None,
    ) -> TaskOutcome:
        with self._state_lock:
            finish = time.time()
            self.finish_times[name] = finish
            elapsed = finish - self.start_times.get(name, finish)
        return TaskOutcome(
            name=name, value=value, error=error, traceback=formatted, elapsed_s=elapsed
        )

    def update_status(self, name: str, status: str) -> None:
        """Update task status and record it."""
        with self._state_lock:
            self.status[name] = status
        logger.debug("[%s] [status] %s", name, status)

    # Internal helpers -------------------------------------------------

    def _reset_state(self, tasks: dict[str, Callable[[], Any]]) -> None:
        current = time.time()
        self.status = dict.fromkeys(tasks, "Pending")
        self.start_times = dict.fromkeys(tasks, current)
        self.finish_times = {}

    def _log_summary(self, phase_name: str) -> None:
        for name in sorted(self.status.keys()):
            finish = self.finish_times.get(name, time.time())
            elapsed = finish - self.start_times.get(name, finish)
            logger.info(
                "%s: %s - %s (%.1fs)", phase_name, name, self.status[name], elapsed
            )
