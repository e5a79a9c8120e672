"""Errors raised by tasks, the queue and cron schedules."""

from __future__ import annotations

import sqlite3


class FangError(Exception):
    """An error that happened while a task was executed."""

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description

    def __str__(self) -> str:
        return self.description


class QueueError(Exception):
    """Base class for every error reported by a queue."""


class DatabaseError(QueueError):
    """The database rejected or failed an operation."""


class PoolError(QueueError):
    """No database connection could be obtained."""


class TaskNotUniqError(QueueError):
    """The operation needs a task whose ``uniq()`` returns true."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Can not perform this operation if task is not uniq, "
            "please check its definition in its Runnable class"
        )


class CronError(QueueError):
    """Base class for problems with cron schedules."""


class CronParseError(CronError):
    """A cron expression could not be parsed."""


class TaskNotSchedulableError(CronError):
    """The task does not define a schedule."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "You have to implement method `cron()` in your Runnable")


class NoTimestampsError(CronError):
    """The cron pattern matches no future moment."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No timestamps match with this cron pattern")


def fang_error_from(error: BaseException) -> FangError:
    """Turn any error into a :class:`FangError` describing it."""
    if isinstance(error, FangError):
        return error
    if isinstance(error, sqlite3.Error):
        error = DatabaseError(str(error))
    return FangError(repr(error))