import sqlite3

import pytest

from fang.errors import (
    CronError,
    CronParseError,
    DatabaseError,
    FangError,
    NoTimestampsError,
    PoolError,
    QueueError,
    TaskNotSchedulableError,
    TaskNotUniqError,
    fang_error_from,
)


def test_fang_error_keeps_description():
    error = FangError("the number is 10")
    assert error.description == "the number is 10"
    assert str(error) == "the number is 10"


def test_fang_error_from_returns_same_fang_error():
    error = FangError("boom")
    assert fang_error_from(error) is error


def test_fang_error_from_io_error_mentions_message():
    result = fang_error_from(OSError("disk gone"))
    assert isinstance(result, FangError)
    assert "disk gone" in result.description
    assert "OSError" in result.description


def test_fang_error_from_queue_error_names_the_kind():
    result = fang_error_from(TaskNotUniqError())
    assert "TaskNotUniqError" in result.description


def test_fang_error_from_database_error_is_wrapped():
    result = fang_error_from(sqlite3.OperationalError("no such table"))
    assert "DatabaseError" in result.description
    assert "no such table" in result.description


def test_default_messages_follow_the_source():
    assert str(NoTimestampsError()) == "No timestamps match with this cron pattern"
    assert str(TaskNotUniqError()).startswith(
        "Can not perform this operation if task is not uniq"
    )
    assert "cron()" in str(TaskNotSchedulableError())


@pytest.mark.parametrize(
    "kind",
    [CronParseError, TaskNotSchedulableError, NoTimestampsError],
)
def test_cron_errors_are_queue_errors(kind):
    error = kind("x")
    assert isinstance(error, CronError)
    assert isinstance(error, QueueError)
    result = fang_error_from(error)
    assert isinstance(result, FangError)
    assert kind.__name__ in result.description


@pytest.mark.parametrize("kind", [DatabaseError, PoolError, TaskNotUniqError])
def test_queue_error_family(kind):
    error = kind("problem")
    assert isinstance(error, QueueError)
    result = fang_error_from(error)
    assert isinstance(result, FangError)
    assert kind.__name__ in result.description