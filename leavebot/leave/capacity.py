"""Concurrent-leave capacity check.

Decides whether admitting a leave would put more people of the same team
(optionally the same shift group) on approved leave on any single day than
the team policy allows. Pure: the caller supplies the candidate, the
approved leaves it already loaded, and the policy.

The decision is only as good as the snapshot it was computed from; the
caller must evaluate it and persist the approval in one transaction (see
``LeaveService.review_leave``).
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import date
from typing import Iterable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict

from leavebot.common.constants import LeaveStatus
from leavebot.shifts.ranges import DateRangeError, check_span, iter_days
from leavebot.teams.schemas import ConcurrentLeavePolicy, TeamLeavePolicy

logger = logging.getLogger(__name__)


class LeaveOccupancy(Protocol):
    """The leave fields capacity accounting reads."""

    id: Optional[uuid.UUID]
    team_id: Optional[uuid.UUID]
    start_date: date
    end_date: date
    status: LeaveStatus
    shift_time: Optional[str]


class ProposedLeave(BaseModel):
    """A span not saved yet, checked against the team (working-day preview)."""

    model_config = ConfigDict(frozen=True)

    id: Optional[uuid.UUID] = None
    team_id: Optional[uuid.UUID]
    start_date: date
    end_date: date
    status: LeaveStatus = LeaveStatus.pending
    shift_time: Optional[str] = None


class CapacityDecision(BaseModel):
    """``ok`` or the peak count of *other* people already on leave and the limit.

    Counts only; no leave ids or names.
    """

    ok: bool
    conflicting_count: int = 0
    limit: Optional[int] = None
    peak_date: Optional[date] = None


ADMITTED = CapacityDecision(ok=True)


def _counts_against(
    other: LeaveOccupancy,
    candidate: LeaveOccupancy,
    policy: ConcurrentLeavePolicy,
) -> bool:
    if other.status != LeaveStatus.approved:
        return False
    if candidate.id is not None and other.id == candidate.id:
        return False
    if other.team_id != candidate.team_id:
        return False
    if policy.check_by_shift and other.shift_time != candidate.shift_time:
        return False
    # Overlaps the candidate's inclusive span
    return other.start_date <= candidate.end_date and other.end_date >= candidate.start_date


def peak_occupancy(
    candidate: LeaveOccupancy,
    others: Iterable[LeaveOccupancy],
) -> tuple[int, Optional[date]]:
    """Highest number of ``others`` on leave on any day of the candidate's span.

    Returns ``(count, first day reaching it)``; ``(0, None)`` when nothing overlaps.
    """
    per_day: Counter[date] = Counter()
    for other in others:
        lo = max(other.start_date, candidate.start_date)
        hi = min(other.end_date, candidate.end_date)
        if lo > hi:
            continue
        for day in iter_days(lo, hi):
            per_day[day] += 1

    if not per_day:
        return 0, None
    peak = max(per_day.values())
    peak_day = min(day for day, count in per_day.items() if count == peak)
    return peak, peak_day


def count_concurrent(
    candidate: LeaveOccupancy,
    existing_approved_leaves: Iterable[LeaveOccupancy],
    policy: ConcurrentLeavePolicy,
) -> Union[tuple[int, Optional[date]], DateRangeError]:
    """Peak number of other people already on leave during the candidate's span."""
    error = check_span(candidate.start_date, candidate.end_date)
    if error is not None:
        return error
    relevant = [
        other for other in existing_approved_leaves
        if _counts_against(other, candidate, policy)
    ]
    return peak_occupancy(candidate, relevant)


def check_capacity(
    candidate: LeaveOccupancy,
    existing_approved_leaves: Iterable[LeaveOccupancy],
    policy: TeamLeavePolicy | ConcurrentLeavePolicy,
) -> Union[CapacityDecision, DateRangeError]:
    """Would approving ``candidate`` exceed the concurrent-leave limit?

    Only approved leaves of the same team (and the same shift group when
    ``check_by_shift`` is set) count; the candidate itself never does.
    A reversed candidate span yields ``DateRangeError``.
    """
    error = check_span(candidate.start_date, candidate.end_date)
    if error is not None:
        return error

    concurrent = (
        policy.concurrent_leave if isinstance(policy, TeamLeavePolicy) else policy
    )
    if not concurrent.enabled:
        return ADMITTED

    relevant = [
        other for other in existing_approved_leaves
        if _counts_against(other, candidate, concurrent)
    ]
    peak, peak_day = peak_occupancy(candidate, relevant)
    limit = concurrent.limit

    if peak + 1 > limit:
        logger.info(
            "Concurrent leave limit reached for team %s: %d already on leave "
            "on %s, limit %d (by_shift=%s)",
            candidate.team_id, peak, peak_day, limit, concurrent.check_by_shift,
        )
        return CapacityDecision(
            ok=False, conflicting_count=peak, limit=limit, peak_date=peak_day,
        )
    return ADMITTED


def capacity_warning(count: int, limit: int) -> Optional[str]:
    """User-facing, non-identifying message for a given occupancy."""
    if count >= limit:
        return (
            f"{count}/{limit} team members already on leave during this period. "
            "Limit reached."
        )
    if count == limit - 1:
        return (
            f"{count}/{limit} team members on leave. "
            "Adding this request will reach the limit."
        )
    return None
