"""Shift patterns — working-day resolution and leave range splitting."""

from leavebot.shifts.patterns import (
    CustomPattern,
    RegularPattern,
    RotationPattern,
    ShiftPatternConfig,
    ShiftTime,
    parse_shift_pattern,
    parse_shift_time,
    require_valid_pattern,
)
from leavebot.shifts.ranges import (
    DateRange,
    DateRangeError,
    WorkingDaysSummary,
    check_span,
    count_working_days,
    split_into_working_ranges,
    summarize_working_days,
    working_dates,
)
from leavebot.shifts.resolver import cycle_position, day_offset, is_working_day

__all__ = [
    "CustomPattern",
    "RegularPattern",
    "RotationPattern",
    "ShiftPatternConfig",
    "ShiftTime",
    "parse_shift_pattern",
    "parse_shift_time",
    "require_valid_pattern",
    "DateRange",
    "DateRangeError",
    "WorkingDaysSummary",
    "check_span",
    "count_working_days",
    "split_into_working_ranges",
    "summarize_working_days",
    "working_dates",
    "cycle_position",
    "day_offset",
    "is_working_day",
]
