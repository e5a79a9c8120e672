"""Core value types: schedules, retention modes, sleep parameters and tasks."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Union


@dataclass(frozen=True)
class CronPattern:
    """A cron pattern for a periodic task, e.g. ``CronPattern("0/20 * * * * * *")``."""

    pattern: str


@dataclass(frozen=True)
class ScheduleOnce:
    """A single moment at which a task runs once."""

    at: datetime


Scheduled = Union[CronPattern, ScheduleOnce]


class RetentionMode(enum.Enum):
    """What happens to tasks in the database after they ran."""

    KEEP_ALL = "keep_all"
    REMOVE_ALL = "remove_all"
    REMOVE_FINISHED = "remove_finished"


@dataclass
class SleepParams:
    """How long idle workers sleep between polls."""

    sleep_period: timedelta = field(default_factory=lambda: timedelta(seconds=5))
    max_sleep_period: timedelta = field(default_factory=lambda: timedelta(seconds=15))
    min_sleep_period: timedelta = field(default_factory=lambda: timedelta(seconds=5))
    sleep_step: timedelta = field(default_factory=lambda: timedelta(seconds=5))

    def maybe_reset_sleep_period(self) -> None:
        """Set the sleep period back to its minimum."""
        if self.sleep_period != self.min_sleep_period:
            self.sleep_period = self.min_sleep_period

    def maybe_increase_sleep_period(self) -> None:
        """Grow the sleep period by one step unless the maximum is reached."""
        if self.sleep_period < self.max_sleep_period:
            self.sleep_period += self.sleep_step


class FangTaskState(str, enum.Enum):
    """Possible states of a task."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    FINISHED = "finished"
    RETRIED = "retried"


@dataclass(frozen=True)
class Task:
    """A task row as stored in the queue."""

    id: uuid.UUID
    metadata: dict[str, Any]
    error_message: Optional[str]
    state: FangTaskState
    task_type: str
    uniq_hash: Optional[str]
    retries: int
    scheduled_at: datetime
    created_at: datetime
    updated_at: datetime