"""Shift pattern configuration — per-person work schedules and team defaults.

A pattern is one of three tagged variants, discriminated by ``kind``:

  - ``regular``  : fixed working weekdays, Monday–Friday by default
  - ``rotation`` : ``work_days`` on, ``off_days`` off, repeating from
                   ``reference_date``
  - ``custom``   : an explicit cycle of ``W`` (work) / ``O`` (off) characters,
                   repeating from ``reference_date``

Patterns arrive already structured (dicts from the settings store or request
bodies); nothing here parses free-form strings such as ``"2-2"``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from leavebot.common.constants import (
    DEFAULT_WORKING_WEEKDAYS,
    MAX_CYCLE_DAYS,
    MIN_CYCLE_DAYS,
    OFF_DAY,
    WORKING_DAY,
    ShiftKind,
    ShiftTimeType,
)
from leavebot.common.exceptions import InvalidPatternConfig

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# Pattern variants
# ═════════════════════════════════════════════════════════════════════


class RegularPattern(BaseModel):
    """Fixed weekly schedule, Monday–Friday unless ``working_weekdays`` says
    otherwise. ``reference_date`` is ignored."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["regular"] = "regular"
    working_weekdays: tuple[int, ...] = Field(
        DEFAULT_WORKING_WEEKDAYS,
        min_length=1,
        description="date.weekday() numbers, Monday == 0",
    )
    reference_date: Optional[date] = None

    @field_validator("working_weekdays")
    @classmethod
    def valid_weekdays(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        out_of_range = sorted(d for d in set(v) if not 0 <= d <= 6)
        if out_of_range:
            raise ValueError(f"Weekdays must be 0 (Monday) to 6 (Sunday); got {out_of_range}.")
        return tuple(sorted(set(v)))


class RotationPattern(BaseModel):
    """``work_days`` on / ``off_days`` off cycle anchored at ``reference_date``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rotation"] = "rotation"
    work_days: int = Field(..., ge=MIN_CYCLE_DAYS, le=MAX_CYCLE_DAYS)
    off_days: int = Field(..., ge=MIN_CYCLE_DAYS, le=MAX_CYCLE_DAYS)
    reference_date: Optional[date] = None

    @property
    def cycle_length(self) -> int:
        return self.work_days + self.off_days


class CustomPattern(BaseModel):
    """Explicit ``W``/``O`` cycle anchored at ``reference_date``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["custom"] = "custom"
    pattern: str = Field(..., min_length=1, description='e.g. "WWWOO"')
    reference_date: Optional[date] = None

    @field_validator("pattern")
    @classmethod
    def only_work_and_off(cls, v: str) -> str:
        v = v.upper()
        invalid = sorted(set(v) - {WORKING_DAY, OFF_DAY})
        if invalid:
            raise ValueError(
                f"Custom pattern may only contain '{WORKING_DAY}' and '{OFF_DAY}'; "
                f"found {', '.join(repr(c) for c in invalid)}."
            )
        return v

    @property
    def cycle_length(self) -> int:
        return len(self.pattern)


ShiftPatternConfig = Annotated[
    Union[RegularPattern, RotationPattern, CustomPattern],
    Field(discriminator="kind"),
]

_pattern_adapter: TypeAdapter[ShiftPatternConfig] = TypeAdapter(ShiftPatternConfig)


# ═════════════════════════════════════════════════════════════════════
# Shift time (the person's shift group)
# ═════════════════════════════════════════════════════════════════════


class ShiftTime(BaseModel):
    """Day / night / custom shift. ``type`` is the group used by per-shift limits."""

    model_config = ConfigDict(frozen=True)

    type: ShiftTimeType = ShiftTimeType.day
    custom_start: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    custom_end: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")


DEFAULT_SHIFT_TIME = ShiftTime()


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


def parse_shift_pattern(data: Optional[dict[str, Any]]) -> Optional[ShiftPatternConfig]:
    """Build a pattern from stored settings.

    Returns ``None`` (pattern unavailable) when nothing is stored or the
    stored value no longer validates; callers then fall back to treating
    every day as working.
    """
    if not data:
        return None
    try:
        return _pattern_adapter.validate_python(data)
    except ValidationError as exc:
        logger.warning(
            "Stored shift pattern is invalid, treating as unavailable: %s",
            exc.errors(include_url=False),
        )
        return None


def parse_shift_time(data: Optional[dict[str, Any]]) -> ShiftTime:
    if not data:
        return DEFAULT_SHIFT_TIME
    try:
        return ShiftTime.model_validate(data)
    except ValidationError:
        logger.warning("Stored shift time is invalid, using day shift")
        return DEFAULT_SHIFT_TIME


def require_valid_pattern(pattern: ShiftPatternConfig) -> ShiftPatternConfig:
    """Check a pattern at save time.

    Shape and bounds are enforced by the models; this adds the rule that
    cyclic patterns must be anchored. Evaluation tolerates a missing anchor
    (every day counts as working), so it has to be caught here.
    """
    if pattern.kind != ShiftKind.regular and pattern.reference_date is None:
        raise InvalidPatternConfig(
            f"A {pattern.kind} shift pattern requires a reference_date."
        )
    return pattern
