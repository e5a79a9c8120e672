"""A pool of worker threads that restart when they stop unexpectedly."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from fang.core import RetentionMode, SleepParams
from fang.queue import Queueable
from fang.runnable import COMMON_TYPE
from fang.worker import Worker

log = logging.getLogger(__name__)


@dataclass
class WorkerParams:
    """Optional overrides for the workers of a pool."""

    retention_mode: Optional[RetentionMode] = None
    sleep_params: Optional[SleepParams] = None
    task_type: Optional[str] = None


class WorkerPool:
    """Runs ``number_of_workers`` workers of one task type in threads."""

    def __init__(
        self,
        queue: Queueable,
        number_of_workers: int,
        sleep_params: Optional[SleepParams] = None,
        retention_mode: RetentionMode = RetentionMode.REMOVE_ALL,
        task_type: str = COMMON_TYPE,
    ) -> None:
        self.queue = queue
        self.number_of_workers = number_of_workers
        self.sleep_params = sleep_params if sleep_params is not None else SleepParams()
        self.retention_mode = retention_mode
        self.task_type = task_type
        self.stop_event = threading.Event()
        self.worker_threads: list[WorkerThread] = []

    def __enter__(self) -> "WorkerPool":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        """Start the configured number of worker threads."""
        self.stop_event.clear()
        for idx in range(1, self.number_of_workers + 1):
            worker_thread = WorkerThread(f"worker_{self.task_type}{idx}", self, 0)
            worker_thread.spawn()
            self.worker_threads.append(worker_thread)

    def stop(self) -> None:
        """Ask every worker to stop and wait for their threads to end."""
        self.stop_event.set()
        for worker_thread in self.worker_threads:
            if worker_thread.thread is not None:
                worker_thread.thread.join()


class WorkerThread:
    """One thread of a pool; its worker is restarted whenever it stops."""

    def __init__(self, name: str, worker_pool: WorkerPool, restarts: int = 0) -> None:
        self.name = name
        self.worker_pool = worker_pool
        self.restarts = restarts
        self.thread: Optional[threading.Thread] = None

    def spawn(self) -> threading.Thread:
        """Start the thread that runs the worker."""
        log.info(
            "starting a worker thread %s, number of restarts %d", self.name, self.restarts
        )
        thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        thread.start()
        self.thread = thread
        return thread

    def _run(self) -> None:
        pool = self.worker_pool
        while not pool.stop_event.is_set():
            worker = Worker(
                pool.queue,
                pool.task_type,
                dataclasses.replace(pool.sleep_params),
                pool.retention_mode,
            )
            try:
                worker.run_tasks(pool.stop_event)
            except Exception as exc:
                log.error("Error executing tasks in worker '%s': %r", self.name, exc)
            if pool.stop_event.is_set():
                break
            self.restarts += 1
            log.error(
                "Worker %s stopped. Restarting. The number of restarts %d",
                self.name,
                self.restarts,
            )