"""Team leave policy Pydantic v2 schemas.

``TeamLeavePolicy`` is stored as JSON on the team row and handed, already
validated, to the capacity checker, the balance calculator and the
working-day calculation of members without a pattern of their own.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leavebot.common.constants import (
    DEFAULT_ANNUAL_LEAVE_DAYS,
    DEFAULT_CARRY_OVER_DAYS,
    DEFAULT_MAX_CONSECUTIVE_DAYS,
    DEFAULT_MAX_PER_SHIFT,
    DEFAULT_MAX_PER_TEAM,
    DEFAULT_MIN_ADVANCE_NOTICE_DAYS,
)
from leavebot.shifts.patterns import RegularPattern, ShiftPatternConfig, ShiftTime


# ═════════════════════════════════════════════════════════════════════
# Policy
# ═════════════════════════════════════════════════════════════════════


class ConcurrentLeavePolicy(BaseModel):
    """Ceiling on how many people may be on approved leave on the same day."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    max_per_team: int = Field(DEFAULT_MAX_PER_TEAM, ge=1, le=100)
    max_per_shift: int = Field(DEFAULT_MAX_PER_SHIFT, ge=1, le=50)
    check_by_shift: bool = False

    @property
    def limit(self) -> int:
        return self.max_per_shift if self.check_by_shift else self.max_per_team


class TeamLeavePolicy(BaseModel):
    """Per-team leave allocation, limits and default schedule.

    ``shift_pattern`` and ``shift_time`` apply to members who have none of
    their own.
    """

    model_config = ConfigDict(frozen=True)

    annual_leave_days: int = Field(DEFAULT_ANNUAL_LEAVE_DAYS, ge=0, le=365)
    carry_over_days: int = Field(DEFAULT_CARRY_OVER_DAYS, ge=0, le=30)
    allow_negative_balance: bool = False
    max_consecutive_days: int = Field(DEFAULT_MAX_CONSECUTIVE_DAYS, ge=1, le=90)
    min_advance_notice_days: int = Field(DEFAULT_MIN_ADVANCE_NOTICE_DAYS, ge=0, le=90)
    concurrent_leave: ConcurrentLeavePolicy = Field(default_factory=ConcurrentLeavePolicy)
    shift_pattern: ShiftPatternConfig = Field(default_factory=RegularPattern)
    shift_time: ShiftTime = Field(default_factory=ShiftTime)


# ═════════════════════════════════════════════════════════════════════
# Requests / responses
# ═════════════════════════════════════════════════════════════════════


class ConcurrentLeaveUpdate(BaseModel):
    enabled: Optional[bool] = None
    max_per_team: Optional[int] = Field(None, ge=1, le=100)
    max_per_shift: Optional[int] = Field(None, ge=1, le=50)
    check_by_shift: Optional[bool] = None


class TeamSettingsUpdate(BaseModel):
    """Partial update — only fields that are sent are changed."""

    annual_leave_days: Optional[int] = Field(None, ge=0, le=365)
    carry_over_days: Optional[int] = Field(None, ge=0, le=30)
    allow_negative_balance: Optional[bool] = None
    max_consecutive_days: Optional[int] = Field(None, ge=1, le=90)
    min_advance_notice_days: Optional[int] = Field(None, ge=0, le=90)
    concurrent_leave: Optional[ConcurrentLeaveUpdate] = None
    shift_pattern: Optional[ShiftPatternConfig] = None
    shift_time: Optional[ShiftTime] = None


class TeamSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: uuid.UUID
    team_name: str
    settings: TeamLeavePolicy
    updated_at: Optional[datetime] = None
