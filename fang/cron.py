"""Cron schedules with seconds and an optional year field."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional

from fang.errors import CronParseError

_MONTH_NAMES = {
    name.lower(): number
    for number in range(1, 13)
    for name in (calendar.month_abbr[number], calendar.month_name[number])
}

_DAY_NAMES = {
    name: number
    for number, names in enumerate(
        [
            ("sun", "sunday"),
            ("mon", "monday"),
            ("tue", "tuesday"),
            ("wed", "wednesday"),
            ("thu", "thursday"),
            ("fri", "friday"),
            ("sat", "saturday"),
        ],
        start=1,
    )
    for name in names
}

_FIELDS = (
    ("seconds", 0, 59, None),
    ("minutes", 0, 59, None),
    ("hours", 0, 23, None),
    ("days of month", 1, 31, None),
    ("months", 1, 12, _MONTH_NAMES),
    ("days of week", 1, 7, _DAY_NAMES),
    ("years", 1970, 2100, None),
)

_SHORTCUTS = {
    "@yearly": "0 0 0 1 1 * *",
    "@annually": "0 0 0 1 1 * *",
    "@monthly": "0 0 0 1 * * *",
    "@weekly": "0 0 0 * * 1 *",
    "@daily": "0 0 0 * * * *",
    "@midnight": "0 0 0 * * * *",
    "@hourly": "0 0 * * * * *",
}


def _parse_value(token: str, low: int, high: int, names: Optional[dict[str, int]]) -> int:
    text = token.strip().lower()
    if names and text in names:
        value = names[text]
    elif text.isdigit():
        value = int(text)
    else:
        raise CronParseError(f"invalid value {token!r}")
    if not low <= value <= high:
        raise CronParseError(f"value {value} out of range {low}-{high}")
    return value


def _parse_field(
    text: str, label: str, low: int, high: int, names: Optional[dict[str, int]]
) -> tuple[int, ...]:
    values: set[int] = set()
    for item in text.split(","):
        if not item:
            raise CronParseError(f"empty item in {label} field {text!r}")
        base, has_step, step_text = item.partition("/")
        if has_step:
            if not step_text.isdigit() or int(step_text) == 0:
                raise CronParseError(f"invalid step {step_text!r} in {label} field")
            step = int(step_text)
        else:
            step = 1
        if base in ("*", "?"):
            start, end = low, high
        elif "-" in base:
            first, last = base.split("-", 1)
            start = _parse_value(first, low, high, names)
            end = _parse_value(last, low, high, names)
            if start > end:
                raise CronParseError(f"descending range {base!r} in {label} field")
        else:
            start = _parse_value(base, low, high, names)
            end = high if has_step else start
        values.update(range(start, end + 1, step))
    return tuple(sorted(values))


def _cron_weekday(day: date) -> int:
    """Weekday numbered from Sunday = 1 to Saturday = 7."""
    return day.isoweekday() % 7 + 1


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Schedule:
    """A parsed cron expression: ``sec min hour day-of-month month day-of-week [year]``.

    All times are interpreted in UTC; naive datetimes are taken to be UTC.
    """

    def __init__(self, expression: str) -> None:
        self.expression = expression
        text = _SHORTCUTS.get(expression.strip().lower(), expression)
        parts = text.split()
        if len(parts) == 6:
            parts.append("*")
        if len(parts) != 7:
            raise CronParseError(
                f"expected 6 or 7 fields in cron expression, got {len(parts)}: {expression!r}"
            )
        (
            self.seconds,
            self.minutes,
            self.hours,
            self.days_of_month,
            self.months,
            self.days_of_week,
            self.years,
        ) = (
            _parse_field(part, label, low, high, names)
            for part, (label, low, high, names) in zip(parts, _FIELDS)
        )

    def __repr__(self) -> str:
        return f"Schedule({self.expression!r})"

    def includes(self, moment: datetime) -> bool:
        """Whether the schedule fires at this moment (to the second)."""
        moment = _as_utc(moment)
        return (
            moment.year in self.years
            and moment.month in self.months
            and moment.day in self.days_of_month
            and _cron_weekday(moment.date()) in self.days_of_week
            and moment.hour in self.hours
            and moment.minute in self.minutes
            and moment.second in self.seconds
        )

    def upcoming(self, after: datetime) -> Iterator[datetime]:
        """Yield every matching moment strictly after ``after``, in order."""
        start = _as_utc(after).replace(microsecond=0) + timedelta(seconds=1)
        for year in self.years:
            if year < start.year:
                continue
            year_start = year == start.year
            for month in self.months:
                if year_start and month < start.month:
                    continue
                month_start = year_start and month == start.month
                days_in_month = calendar.monthrange(year, month)[1]
                for day in self.days_of_month:
                    if day > days_in_month:
                        break
                    if month_start and day < start.day:
                        continue
                    if _cron_weekday(date(year, month, day)) not in self.days_of_week:
                        continue
                    day_start = month_start and day == start.day
                    for hour in self.hours:
                        if day_start and hour < start.hour:
                            continue
                        hour_start = day_start and hour == start.hour
                        for minute in self.minutes:
                            if hour_start and minute < start.minute:
                                continue
                            minute_start = hour_start and minute == start.minute
                            for second in self.seconds:
                                if minute_start and second < start.second:
                                    continue
                                yield datetime(
                                    year, month, day, hour, minute, second, tzinfo=timezone.utc
                                )

    def next_after(self, after: datetime) -> Optional[datetime]:
        """The first matching moment after ``after``, or None if there is none."""
        return next(self.upcoming(after), None)