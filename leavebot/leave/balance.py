"""Leave balance snapshot for one user and one year."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Iterable, Protocol, Union

from pydantic import BaseModel

from leavebot.common.constants import LeaveStatus
from leavebot.shifts.ranges import DateRangeError, check_span
from leavebot.teams.schemas import TeamLeavePolicy


class CountedLeave(Protocol):
    owner_id: uuid.UUID
    start_date: date
    end_date: date
    status: LeaveStatus
    working_days_count: int


class LeaveBalanceSnapshot(BaseModel):
    user_id: uuid.UUID
    year: int
    total: int
    used: int
    pending: int
    available: int


def compute_balance(
    user_id: uuid.UUID,
    team_policy: TeamLeavePolicy,
    leaves_for_user: Iterable[CountedLeave],
    as_of_year: int,
    *,
    carry_over: int = 0,
    pending_reduces_available: bool = False,
) -> Union[LeaveBalanceSnapshot, DateRangeError]:
    """Sum the user's cached working-day counts against the team allocation.

    Leaves are assigned to the year their start date falls in. ``carry_over``
    is whatever the carry-over policy already granted for ``as_of_year``.
    Pending days are informational unless ``pending_reduces_available``.
    A leave with a reversed span makes the whole result a ``DateRangeError``.
    """
    used = 0
    pending = 0
    for leave in leaves_for_user:
        error = check_span(leave.start_date, leave.end_date)
        if error is not None:
            return error
        if leave.owner_id != user_id or leave.start_date.year != as_of_year:
            continue
        if leave.status == LeaveStatus.approved:
            used += leave.working_days_count
        elif leave.status == LeaveStatus.pending:
            pending += leave.working_days_count

    total = team_policy.annual_leave_days + carry_over
    available = total - used
    if pending_reduces_available:
        available -= pending
    if not team_policy.allow_negative_balance:
        available = max(available, 0)

    return LeaveBalanceSnapshot(
        user_id=user_id,
        year=as_of_year,
        total=total,
        used=used,
        pending=pending,
        available=available,
    )
