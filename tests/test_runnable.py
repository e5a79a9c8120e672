from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from fang.core import CronPattern, ScheduleOnce
from fang.errors import FangError
from fang.runnable import (
    COMMON_TYPE,
    RETRIES_NUMBER,
    Runnable,
    runnable_from_metadata,
)


@dataclass
class PepeTask(Runnable):
    number: int

    def run(self, queue):
        return None

    def uniq(self):
        return True


@dataclass
class AyratTask(Runnable):
    number: int

    def run(self, queue):
        return None

    def uniq(self):
        return True

    def task_type(self):
        return "weirdo"


@dataclass
class ScheduledPepeTask(Runnable):
    number: int
    datetime: str

    def run(self, queue):
        return None

    def task_type(self):
        return "scheduled"

    def cron(self):
        return ScheduleOnce(datetime.fromisoformat(self.datetime))


@dataclass
class FailedTask(Runnable):
    number: int

    def run(self, queue):
        raise FangError(f"the number is {self.number}")

    def max_retries(self):
        return 0


class PlainTask(Runnable):
    def __init__(self, name, count):
        self.name = name
        self.count = count
        self._cache = {}

    def run(self, queue):
        return None

    def cron(self):
        return CronPattern("0/1 * * * * * *")


def test_defaults():
    task = PepeTask(10)
    plain = PlainTask("x", 1)
    assert Runnable.task_type(plain) == COMMON_TYPE
    assert Runnable.uniq(plain) is False
    assert Runnable.max_retries(plain) == RETRIES_NUMBER
    assert Runnable.cron(task) is None


def test_default_backoff_is_exponential():
    task = PepeTask(10)
    assert Runnable.backoff(task, 0) == 1
    assert Runnable.backoff(task, 10) == 1024
    assert Runnable.backoff(task, 5) == 2 * Runnable.backoff(task, 4)


def test_overridden_methods_are_used():
    assert AyratTask(10).task_type() == "weirdo"
    assert FailedTask(10).max_retries() == 0
    assert PlainTask("x", 1).cron() == CronPattern("0/1 * * * * * *")


def test_metadata_carries_type_and_fields():
    metadata = Runnable.to_metadata(PepeTask(10))
    assert metadata == {"type": "PepeTask", "number": 10}


def test_plain_class_metadata_skips_private_attributes():
    metadata = Runnable.to_metadata(PlainTask("report", 3))
    assert metadata == {"type": "PlainTask", "name": "report", "count": 3}


def test_schedule_once_from_rebuilt_task():
    stamp = "2022-08-01T00:00:07+00:00"
    rebuilt = runnable_from_metadata(ScheduledPepeTask(10, stamp).to_metadata())
    assert rebuilt.cron() == ScheduleOnce(datetime(2022, 8, 1, 0, 0, 7, tzinfo=timezone.utc))


def test_run_failure_raises_fang_error():
    rebuilt = runnable_from_metadata({"type": "FailedTask", "number": 10})
    with pytest.raises(FangError) as info:
        rebuilt.run(None)
    assert info.value.description == "the number is 10"


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        runnable_from_metadata({"type": "NoSuchTask", "number": 1})


def test_missing_type_is_rejected():
    with pytest.raises(ValueError):
        runnable_from_metadata({"number": 1})


def test_mismatched_fields_are_rejected():
    with pytest.raises(ValueError):
        runnable_from_metadata({"type": "PepeTask", "colour": "red"})


def test_field_named_type_is_rejected():
    @dataclass
    class TypedTask(Runnable):
        type: str

        def run(self, queue):
            return None

    with pytest.raises(ValueError):
        Runnable.to_metadata(TypedTask("x"))


def test_abstract_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Runnable()