"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from leavebot.common.constants import REVIEW_STATUSES, LeaveStatus
from leavebot.shifts.patterns import ShiftTime


# ═════════════════════════════════════════════════════════════════════
# Working-day preview
# ═════════════════════════════════════════════════════════════════════


class WorkingDaysRequest(BaseModel):
    """Preview a span for ``user_id`` (defaults to the caller)."""

    start_date: date
    end_date: date
    user_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "WorkingDaysRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ConcurrentInfo(BaseModel):
    enabled: bool
    count: int
    limit: int


class WorkingDaysOut(BaseModel):
    count: int
    calendar_days: int
    dates: list[date]
    shift_pattern: Optional[str] = Field(None, description="Pattern kind, if configured")
    shift_time: ShiftTime
    warning: Optional[str] = None
    concurrent_info: Optional[ConcurrentInfo] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Apply for leave. Both dates are inclusive."""

    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class LeaveReviewRequest(BaseModel):
    """Approve or reject a pending leave.

    ``override_password`` is the approver's own password, re-entered to
    approve past the concurrent-leave limit.
    """

    status: LeaveStatus
    override_password: Optional[str] = Field(None, max_length=256)

    @field_validator("status")
    @classmethod
    def reviewable_status(cls, v: LeaveStatus) -> LeaveStatus:
        if v not in REVIEW_STATUSES:
            raise ValueError("status must be approved or rejected")
        return v


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    working_days_count: int
    calendar_days_count: int
    shift_pattern_kind: Optional[str] = None
    shift_time: Optional[str] = None
    overridden: bool = False
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Calendar
# ═════════════════════════════════════════════════════════════════════


class CalendarEventOut(BaseModel):
    """One working-day range of a leave. ``end`` is exclusive."""

    id: str
    leave_id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    start: date
    end: date
    status: LeaveStatus
