"""A persistent task queue stored in SQLite."""

from __future__ import annotations

import hashlib
import json
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

from fang.core import CronPattern, FangTaskState, ScheduleOnce, Task
from fang.cron import Schedule
from fang.errors import (
    DatabaseError,
    NoTimestampsError,
    PoolError,
    QueueError,
    TaskNotSchedulableError,
    TaskNotUniqError,
)
from fang.runnable import Runnable
from fang.schema import COLUMNS, TABLE, create_schema, encode_datetime, row_to_task

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM {TABLE}"
_PENDING_STATES = (FangTaskState.NEW.value, FangTaskState.RETRIED.value)


def calculate_hash(json_text: str) -> str:
    """Hex SHA-256 digest of a JSON text."""
    return hashlib.sha256(json_text.encode("utf-8")).hexdigest()


def _metadata_json(metadata: dict[str, Any]) -> str:
    return json.dumps(metadata, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Queueable(ABC):
    """Operations every synchronous queue offers to workers and tasks."""

    @abstractmethod
    def fetch_and_touch_task(self, task_type: str) -> Optional[Task]:
        """Take one due task of ``task_type`` and mark it in progress."""

    @abstractmethod
    def insert_task(self, task: Runnable) -> Task:
        """Enqueue a task to be executed as soon as possible."""

    @abstractmethod
    def remove_all_tasks(self) -> int:
        """Remove every task; return how many were removed."""

    @abstractmethod
    def remove_all_scheduled_tasks(self) -> int:
        """Remove every task scheduled in the future."""

    @abstractmethod
    def remove_tasks_of_type(self, task_type: str) -> int:
        """Remove every task of the given type."""

    @abstractmethod
    def remove_task(self, task_id: uuid.UUID) -> int:
        """Remove a task by its id."""

    @abstractmethod
    def remove_task_by_metadata(self, task: Runnable) -> int:
        """Remove the uniq task with the same metadata as ``task``."""

    @abstractmethod
    def find_task_by_id(self, task_id: uuid.UUID) -> Optional[Task]:
        """The task with this id, or None."""

    @abstractmethod
    def update_task_state(self, task: Task, state: FangTaskState) -> Task:
        """Set the state of a task."""

    @abstractmethod
    def fail_task(self, task: Task, error: str) -> Task:
        """Mark a task failed with an error message."""

    @abstractmethod
    def schedule_task(self, task: Runnable) -> Task:
        """Enqueue a task at the moment its ``cron()`` gives."""

    @abstractmethod
    def schedule_retry(self, task: Task, backoff_seconds: int, error: str) -> Task:
        """Mark a task for another attempt after ``backoff_seconds``."""


class Queue(Queueable):
    """A queue kept in an SQLite database file (or ``":memory:"``).

    One connection is shared by all threads of the process and guarded by a
    lock; every operation runs in its own immediate transaction.
    """

    def __init__(self, database: str = ":memory:") -> None:
        self.database = str(database)
        self._lock = threading.RLock()
        try:
            self._connection: Optional[sqlite3.Connection] = sqlite3.connect(
                self.database, check_same_thread=False, isolation_level=None
            )
            self._connection.row_factory = sqlite3.Row
            create_schema(self._connection)
        except sqlite3.Error as exc:
            raise PoolError(f"could not open database {self.database!r}: {exc}") from exc

    def __enter__(self) -> "Queue":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection; later operations raise PoolError."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Hold the connection inside a transaction for the duration of the block."""
        with self._lock:
            connection = self._connection
            if connection is None:
                raise PoolError("the queue is closed")
            try:
                connection.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise PoolError(f"could not start a transaction: {exc}") from exc
            try:
                yield connection
            except sqlite3.Error as exc:
                connection.execute("ROLLBACK")
                raise DatabaseError(str(exc)) from exc
            except BaseException:
                connection.execute("ROLLBACK")
                raise
            else:
                try:
                    connection.execute("COMMIT")
                except sqlite3.Error as exc:
                    raise DatabaseError(str(exc)) from exc

    # -- queries ------------------------------------------------------------

    @staticmethod
    def _find_by_id(connection: sqlite3.Connection, task_id: uuid.UUID) -> Optional[Task]:
        row = connection.execute(f"{_SELECT} WHERE id = ?", (task_id.bytes,)).fetchone()
        return row_to_task(row) if row is not None else None

    @classmethod
    def _updated(cls, connection: sqlite3.Connection, cursor: sqlite3.Cursor, task_id: uuid.UUID) -> Task:
        if cursor.rowcount != 1:
            raise DatabaseError(f"task {task_id} not found")
        task = cls._find_by_id(connection, task_id)
        if task is None:
            raise DatabaseError(f"task {task_id} not found")
        return task

    @classmethod
    def _insert(
        cls, connection: sqlite3.Connection, runnable: Runnable, scheduled_at: datetime
    ) -> Task:
        metadata = runnable.to_metadata()
        uniq_hash = None
        if runnable.uniq():
            uniq_hash = calculate_hash(_metadata_json(metadata))
            row = connection.execute(
                f"{_SELECT} WHERE uniq_hash = ? AND state IN (?, ?) LIMIT 1",
                (uniq_hash, *_PENDING_STATES),
            ).fetchone()
            if row is not None:
                return row_to_task(row)
        task_id = uuid.uuid4()
        now = encode_datetime(_now())
        connection.execute(
            f"INSERT INTO {TABLE} (id, metadata, error_message, state, task_type, uniq_hash,"
            " retries, scheduled_at, created_at, updated_at)"
            " VALUES (?, ?, NULL, ?, ?, ?, 0, ?, ?, ?)",
            (
                task_id.bytes,
                _metadata_json(metadata),
                FangTaskState.NEW.value,
                runnable.task_type(),
                uniq_hash,
                encode_datetime(scheduled_at),
                now,
                now,
            ),
        )
        task = cls._find_by_id(connection, task_id)
        if task is None:
            raise DatabaseError(f"inserted task {task_id} not found")
        return task

    # -- Queueable ------------------------------------------------------------

    def fetch_and_touch_task(self, task_type: str) -> Optional[Task]:
        with self.get_connection() as connection:
            row = connection.execute(
                f"{_SELECT} WHERE scheduled_at <= ? AND state IN (?, ?) AND task_type = ?"
                " ORDER BY scheduled_at ASC, created_at ASC, rowid ASC LIMIT 1",
                (encode_datetime(_now()), *_PENDING_STATES, task_type),
            ).fetchone()
            if row is None:
                return None
            task = row_to_task(row)
            cursor = connection.execute(
                f"UPDATE {TABLE} SET state = ?, updated_at = ? WHERE id = ?",
                (FangTaskState.IN_PROGRESS.value, encode_datetime(_now()), task.id.bytes),
            )
            return self._updated(connection, cursor, task.id)

    def insert_task(self, task: Runnable) -> Task:
        with self.get_connection() as connection:
            return self._insert(connection, task, _now())

    def schedule_task(self, task: Runnable) -> Task:
        scheduled = task.cron()
        if scheduled is None:
            raise TaskNotSchedulableError()
        if isinstance(scheduled, CronPattern):
            scheduled_at = Schedule(scheduled.pattern).next_after(_now())
            if scheduled_at is None:
                raise NoTimestampsError()
        elif isinstance(scheduled, ScheduleOnce):
            scheduled_at = scheduled.at
        else:
            raise QueueError(f"unsupported schedule {scheduled!r}")
        with self.get_connection() as connection:
            return self._insert(connection, task, scheduled_at)

    def remove_all_tasks(self) -> int:
        with self.get_connection() as connection:
            return connection.execute(f"DELETE FROM {TABLE}").rowcount

    def remove_all_scheduled_tasks(self) -> int:
        with self.get_connection() as connection:
            return connection.execute(
                f"DELETE FROM {TABLE} WHERE scheduled_at > ?", (encode_datetime(_now()),)
            ).rowcount

    def remove_tasks_of_type(self, task_type: str) -> int:
        with self.get_connection() as connection:
            return connection.execute(
                f"DELETE FROM {TABLE} WHERE task_type = ?", (task_type,)
            ).rowcount

    def remove_task(self, task_id: uuid.UUID) -> int:
        with self.get_connection() as connection:
            return connection.execute(
                f"DELETE FROM {TABLE} WHERE id = ?", (task_id.bytes,)
            ).rowcount

    def remove_task_by_metadata(self, task: Runnable) -> int:
        if not task.uniq():
            raise TaskNotUniqError()
        uniq_hash = calculate_hash(_metadata_json(task.to_metadata()))
        with self.get_connection() as connection:
            return connection.execute(
                f"DELETE FROM {TABLE} WHERE uniq_hash = ?", (uniq_hash,)
            ).rowcount

    def find_task_by_id(self, task_id: uuid.UUID) -> Optional[Task]:
        with self.get_connection() as connection:
            return self._find_by_id(connection, task_id)

    def update_task_state(self, task: Task, state: FangTaskState) -> Task:
        with self.get_connection() as connection:
            cursor = connection.execute(
                f"UPDATE {TABLE} SET state = ?, updated_at = ? WHERE id = ?",
                (FangTaskState(state).value, encode_datetime(_now()), task.id.bytes),
            )
            return self._updated(connection, cursor, task.id)

    def fail_task(self, task: Task, error: str) -> Task:
        with self.get_connection() as connection:
            cursor = connection.execute(
                f"UPDATE {TABLE} SET state = ?, error_message = ?, updated_at = ? WHERE id = ?",
                (FangTaskState.FAILED.value, error, encode_datetime(_now()), task.id.bytes),
            )
            return self._updated(connection, cursor, task.id)

    def schedule_retry(self, task: Task, backoff_seconds: int, error: str) -> Task:
        now = _now()
        scheduled_at = now + timedelta(seconds=backoff_seconds)
        with self.get_connection() as connection:
            cursor = connection.execute(
                f"UPDATE {TABLE} SET state = ?, error_message = ?, retries = ?,"
                " scheduled_at = ?, updated_at = ? WHERE id = ?",
                (
                    FangTaskState.RETRIED.value,
                    error,
                    task.retries + 1,
                    encode_datetime(scheduled_at),
                    encode_datetime(now),
                    task.id.bytes,
                ),
            )
            return self._updated(connection, cursor, task.id)