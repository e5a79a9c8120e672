"""The ``fang_tasks`` table in SQLite and conversion of its rows."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from fang.core import FangTaskState, Task

TABLE = "fang_tasks"

COLUMNS = (
    "id",
    "metadata",
    "error_message",
    "state",
    "task_type",
    "uniq_hash",
    "retries",
    "scheduled_at",
    "created_at",
    "updated_at",
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

_STATES = ", ".join(f"'{state.value}'" for state in FangTaskState)

_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        id BLOB PRIMARY KEY NOT NULL,
        metadata TEXT NOT NULL,
        error_message TEXT,
        state TEXT NOT NULL DEFAULT 'new' CHECK (state IN ({_STATES})),
        task_type TEXT NOT NULL DEFAULT 'common',
        uniq_hash TEXT,
        retries INTEGER NOT NULL DEFAULT 0,
        scheduled_at INTEGER NOT NULL,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )
    """,
    f"CREATE INDEX IF NOT EXISTS fang_tasks_state_index ON {TABLE} (state)",
    f"CREATE INDEX IF NOT EXISTS fang_tasks_type_index ON {TABLE} (task_type)",
    f"CREATE INDEX IF NOT EXISTS fang_tasks_scheduled_at_index ON {TABLE} (scheduled_at)",
    f"CREATE INDEX IF NOT EXISTS fang_tasks_uniq_hash ON {TABLE} (uniq_hash)",
)


def create_schema(connection: sqlite3.Connection) -> None:
    """Create the tasks table and its indexes if they do not exist yet."""
    with connection:
        for statement in _STATEMENTS:
            connection.execute(statement)


def encode_datetime(moment: datetime) -> int:
    """Microseconds since the Unix epoch; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // _MICROSECOND


def decode_datetime(value: int) -> datetime:
    """The UTC datetime stored as microseconds since the Unix epoch."""
    return _EPOCH + timedelta(microseconds=int(value))


def row_to_task(row: Mapping[str, Any]) -> Task:
    """Build a :class:`Task` from a row of the tasks table."""
    raw_id = row["id"]
    task_id = raw_id if isinstance(raw_id, uuid.UUID) else uuid.UUID(bytes=bytes(raw_id))
    metadata = row["metadata"]
    if isinstance(metadata, (str, bytes)):
        metadata = json.loads(metadata)
    return Task(
        id=task_id,
        metadata=metadata,
        error_message=row["error_message"],
        state=FangTaskState(row["state"]),
        task_type=row["task_type"],
        uniq_hash=row["uniq_hash"],
        retries=int(row["retries"]),
        scheduled_at=decode_datetime(row["scheduled_at"]),
        created_at=decode_datetime(row["created_at"]),
        updated_at=decode_datetime(row["updated_at"]),
    )