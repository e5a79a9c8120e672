"""A worker that executes queued tasks of one type."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from fang.core import CronPattern, RetentionMode, SleepParams, Task
from fang.errors import FangError, QueueError, fang_error_from
from fang.queue import Queueable
from fang.runnable import COMMON_TYPE, runnable_from_metadata

log = logging.getLogger(__name__)


class Worker:
    """Executes tasks of a single ``task_type`` and sleeps when there are none."""

    def __init__(
        self,
        queue: Queueable,
        task_type: str = COMMON_TYPE,
        sleep_params: Optional[SleepParams] = None,
        retention_mode: RetentionMode = RetentionMode.REMOVE_ALL,
    ) -> None:
        self.queue = queue
        self.task_type = task_type
        self.sleep_params = sleep_params if sleep_params is not None else SleepParams()
        self.retention_mode = retention_mode

    def run(self, task: Task) -> None:
        """Execute one task, then retry, finalise or fail it in the queue.

        Queue failures are raised as :class:`FangError`.
        """
        runnable = runnable_from_metadata(task.metadata)
        error: Optional[FangError]
        try:
            runnable.run(self.queue)
        except Exception as exc:
            error = fang_error_from(exc)
        else:
            error = None

        try:
            if error is None:
                self._finalize_task(task, None)
            elif task.retries < runnable.max_retries():
                backoff_seconds = runnable.backoff(task.retries)
                self.queue.schedule_retry(task, backoff_seconds, error.description)
            else:
                self._finalize_task(task, error)
        except QueueError as exc:
            raise fang_error_from(exc) from exc

    def run_tasks(self, stop_event: Optional[threading.Event] = None) -> None:
        """Fetch and execute tasks until ``stop_event`` is set (forever without one)."""
        while stop_event is None or not stop_event.is_set():
            try:
                task = self.queue.fetch_and_touch_task(self.task_type)
            except QueueError as exc:
                log.error("Failed to fetch a task %r", exc)
                self._sleep(stop_event)
                continue
            if task is None:
                self._sleep(stop_event)
                continue
            self._process(task)

    def run_tasks_until_none(self) -> int:
        """Execute due tasks until none is left; return how many ran."""
        count = 0
        while True:
            try:
                task = self.queue.fetch_and_touch_task(self.task_type)
            except QueueError as exc:
                log.error("Failed to fetch a task %r", exc)
                self._sleep(None)
                continue
            if task is None:
                return count
            self._process(task)
            count += 1

    def maybe_reset_sleep_period(self) -> None:
        """Set the sleep period back to its minimum."""
        self.sleep_params.maybe_reset_sleep_period()

    def _process(self, task: Task) -> None:
        actual_task = runnable_from_metadata(task.metadata)
        self.maybe_reset_sleep_period()
        self.run(task)
        if isinstance(actual_task.cron(), CronPattern):
            try:
                self.queue.schedule_task(actual_task)
            except QueueError as exc:
                raise fang_error_from(exc) from exc

    def _sleep(self, stop_event: Optional[threading.Event]) -> None:
        self.sleep_params.maybe_increase_sleep_period()
        seconds = self.sleep_params.sleep_period.total_seconds()
        if stop_event is not None:
            stop_event.wait(seconds)
        else:
            time.sleep(seconds)

    def _finalize_task(self, task: Task, error: Optional[FangError]) -> None:
        if self.retention_mode is RetentionMode.KEEP_ALL:
            if error is None:
                from fang.core import FangTaskState

                self.queue.update_task_state(task, FangTaskState.FINISHED)
            else:
                self.queue.fail_task(task, error.description)
        elif self.retention_mode is RetentionMode.REMOVE_ALL:
            self.queue.remove_task(task.id)
        elif error is None:
            self.queue.remove_task(task.id)
        else:
            self.queue.fail_task(task, error.description)