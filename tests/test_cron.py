from datetime import datetime, timezone
from itertools import islice

import pytest

from fang.cron import Schedule
from fang.errors import CronError, CronParseError

UTC = timezone.utc


def test_every_twenty_seconds():
    schedule = Schedule("0/20 * * * * * *")
    after = datetime(2022, 1, 1, 0, 0, 5, tzinfo=UTC)
    assert schedule.next_after(after) == datetime(2022, 1, 1, 0, 0, 20, tzinfo=UTC)


def test_hourly_shortcut():
    schedule = Schedule("@hourly")
    after = datetime(2022, 5, 4, 10, 30, tzinfo=UTC)
    assert schedule.next_after(after) == datetime(2022, 5, 4, 11, 0, tzinfo=UTC)


def test_sunday_is_day_one_and_named_sun():
    after = datetime(2022, 12, 30, 12, 0, tzinfo=UTC)
    by_name = Schedule("0 0 0 * * Sun *").next_after(after)
    by_number = Schedule("0 0 0 * * 1 *").next_after(after)
    assert by_name == datetime(2023, 1, 1, tzinfo=UTC)
    assert by_number == by_name


def test_upcoming_is_strictly_increasing_and_matches():
    schedule = Schedule("0/20 * * * Aug-Sep * 2022/1")
    after = datetime(2022, 7, 31, 23, 59, 0, tzinfo=UTC)
    moments = list(islice(schedule.upcoming(after), 50))
    assert len(moments) == 50
    assert all(moment > after for moment in moments)
    assert all(a < b for a, b in zip(moments, moments[1:]))
    assert all(schedule.includes(moment) for moment in moments)
    assert all(moment.month in (8, 9) for moment in moments)


def test_includes_checks_every_field():
    schedule = Schedule("0/20 * * * Aug-Sep * 2022/1")
    assert schedule.includes(datetime(2022, 8, 1, 0, 0, 20, tzinfo=UTC))
    assert not schedule.includes(datetime(2022, 8, 1, 0, 0, 21, tzinfo=UTC))
    assert not schedule.includes(datetime(2022, 7, 1, 0, 0, 20, tzinfo=UTC))
    assert not schedule.includes(datetime(2021, 8, 1, 0, 0, 20, tzinfo=UTC))


def test_every_second_advances_past_microseconds():
    schedule = Schedule("* * * * * *")
    after = datetime(2022, 3, 1, 8, 0, 0, 500000, tzinfo=UTC)
    result = schedule.next_after(after)
    assert result > after
    assert result.microsecond == 0
    assert (result - after).total_seconds() < 1


def test_naive_datetime_is_treated_as_utc():
    schedule = Schedule("0 * * * * *")
    naive = datetime(2022, 3, 1, 8, 0, 30)
    assert schedule.next_after(naive) == schedule.next_after(naive.replace(tzinfo=UTC))
    assert schedule.next_after(naive).tzinfo == UTC


def test_result_respects_month_lengths():
    schedule = Schedule("0 0 0 31 * *")
    after = datetime(2022, 1, 31, 12, tzinfo=UTC)
    result = schedule.next_after(after)
    assert result.day == 31
    assert result.month != 2
    assert schedule.includes(result)


def test_pattern_entirely_in_the_past_has_no_timestamps():
    schedule = Schedule("0 0 0 1 1 * 1999")
    assert schedule.next_after(datetime(2022, 1, 1, tzinfo=UTC)) is None


@pytest.mark.parametrize(
    "expression",
    [
        "* * * * *",
        "* * * * * * * *",
        "60 * * * * *",
        "* * 24 * * *",
        "* * * 0 * *",
        "* * * * Foo *",
        "* * * * * 8",
        "*/0 * * * * *",
        "5-1 * * * * *",
        "1,,2 * * * * *",
        "a * * * * *",
    ],
)
def test_invalid_expressions_are_rejected(expression):
    with pytest.raises(CronParseError):
        Schedule(expression)


def test_parse_error_is_a_cron_error():
    with pytest.raises(CronError):
        Schedule("not a cron")