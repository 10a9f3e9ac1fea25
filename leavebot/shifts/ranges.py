"""Splitting leave spans into working-day ranges and counting working days.

Leave spans are inclusive (``start_date`` … ``end_date``). The ranges
produced here use an exclusive end, the convention calendar views expect:
a single working day ``d`` is ``DateRange(start=d, end=d + 1 day)``.

A reversed span is not an exception here: the public functions return a
``DateRangeError`` and leave it to the caller to report.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict

from leavebot.shifts.patterns import ShiftPatternConfig
from leavebot.shifts.resolver import is_working_day

ONE_DAY = timedelta(days=1)


class DateSpan(Protocol):
    """Anything with inclusive ``start_date`` / ``end_date`` (ORM row or schema)."""

    start_date: date
    end_date: date


class DateRange(BaseModel):
    """Half-open range ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    @classmethod
    def from_inclusive(cls, start_date: date, end_date: date) -> "DateRange":
        return cls(start=start_date, end=end_date + ONE_DAY)

    def to_inclusive(self) -> tuple[date, date]:
        return self.start, self.end - ONE_DAY


class WorkingDaysSummary(BaseModel):
    count: int
    calendar_days: int
    dates: list[date]


class DateRangeError(BaseModel):
    """Result for a span whose start falls after its end; no day was walked."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date


def check_span(start_date: date, end_date: date) -> Optional[DateRangeError]:
    if start_date > end_date:
        return DateRangeError(start_date=start_date, end_date=end_date)
    return None


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """Every calendar day of the inclusive span, ascending; empty when reversed."""
    current = start_date
    while current <= end_date:
        yield current
        current += ONE_DAY


def split_into_working_ranges(
    leave: DateSpan,
    pattern: Optional[ShiftPatternConfig],
) -> Union[list[DateRange], DateRangeError]:
    """Partition a leave into maximal runs of consecutive working days.

    Without a pattern the whole span is returned as one unfiltered range.
    A span with no working day yields an empty list.
    """
    start_date, end_date = leave.start_date, leave.end_date
    error = check_span(start_date, end_date)
    if error is not None:
        return error

    if pattern is None:
        return [DateRange.from_inclusive(start_date, end_date)]

    ranges: list[DateRange] = []
    range_start: Optional[date] = None

    for day in iter_days(start_date, end_date):
        if is_working_day(day, pattern):
            if range_start is None:
                range_start = day
        elif range_start is not None:
            ranges.append(DateRange(start=range_start, end=day))
            range_start = None

    if range_start is not None:
        ranges.append(DateRange(start=range_start, end=end_date + ONE_DAY))

    return ranges


def working_dates(
    start_date: date,
    end_date: date,
    pattern: Optional[ShiftPatternConfig],
) -> Union[list[date], DateRangeError]:
    """Working days of the inclusive span, ascending."""
    error = check_span(start_date, end_date)
    if error is not None:
        return error
    return [day for day in iter_days(start_date, end_date) if is_working_day(day, pattern)]


def count_working_days(
    start_date: date,
    end_date: date,
    pattern: Optional[ShiftPatternConfig],
) -> Union[int, DateRangeError]:
    """Number of working days in the inclusive span."""
    error = check_span(start_date, end_date)
    if error is not None:
        return error
    return sum(1 for day in iter_days(start_date, end_date) if is_working_day(day, pattern))


def summarize_working_days(
    start_date: date,
    end_date: date,
    pattern: Optional[ShiftPatternConfig],
) -> Union[WorkingDaysSummary, DateRangeError]:
    dates = working_dates(start_date, end_date, pattern)
    if isinstance(dates, DateRangeError):
        return dates
    return WorkingDaysSummary(
        count=len(dates),
        calendar_days=(end_date - start_date).days + 1,
        dates=dates,
    )
