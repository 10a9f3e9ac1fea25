"""Working-day resolution for a single calendar date."""

from __future__ import annotations

from datetime import date
from typing import Optional

from leavebot.common.constants import WORKING_DAY
from leavebot.shifts.patterns import (
    CustomPattern,
    RegularPattern,
    RotationPattern,
    ShiftPatternConfig,
)


def day_offset(target: date, reference: date) -> int:
    """Whole days from ``reference`` to ``target``; negative before the anchor.

    Uses proleptic ordinals, so no timezone or DST can shift the result.
    """
    return target.toordinal() - reference.toordinal()


def cycle_position(offset: int, cycle_length: int) -> int:
    """Slot of ``offset`` within a cycle, always in ``[0, cycle_length)``."""
    # Python's % is floored: -1 % 4 == 3
    return offset % cycle_length


def is_working_day(day: date, pattern: Optional[ShiftPatternConfig]) -> bool:
    """Return True if ``day`` is a scheduled working day under ``pattern``.

    A missing pattern, or a rotation/custom pattern without a
    ``reference_date``, counts every day as working.
    """
    if not isinstance(day, date):
        raise TypeError(f"Expected a date, got {type(day).__name__}")

    if pattern is None:
        return True

    if isinstance(pattern, RegularPattern):
        return day.weekday() in pattern.working_weekdays

    if isinstance(pattern, RotationPattern):
        if pattern.reference_date is None:
            return True
        position = cycle_position(
            day_offset(day, pattern.reference_date), pattern.cycle_length,
        )
        return position < pattern.work_days

    if isinstance(pattern, CustomPattern):
        if pattern.reference_date is None:
            return True
        position = cycle_position(
            day_offset(day, pattern.reference_date), pattern.cycle_length,
        )
        return pattern.pattern[position] == WORKING_DAY

    raise TypeError(f"Unknown shift pattern type: {type(pattern).__name__}")
