"""Enums and constants for LeaveBot — matching the stored string values."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    leader = "leader"
    user = "user"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# Statuses a reviewer may move a pending leave to
REVIEW_STATUSES = (LeaveStatus.approved, LeaveStatus.rejected)


# ── Shifts ──────────────────────────────────────────────────────────

class ShiftKind(str, enum.Enum):
    regular = "regular"
    rotation = "rotation"
    custom = "custom"


class ShiftTimeType(str, enum.Enum):
    day = "day"
    night = "night"
    custom = "custom"


WORKING_DAY = "W"
OFF_DAY = "O"

# date.weekday(): Monday == 0 … Sunday == 6
DEFAULT_WORKING_WEEKDAYS = (0, 1, 2, 3, 4)

MIN_CYCLE_DAYS = 1
MAX_CYCLE_DAYS = 30


# ── Team policy defaults ────────────────────────────────────────────

DEFAULT_ANNUAL_LEAVE_DAYS = 21
DEFAULT_CARRY_OVER_DAYS = 5
DEFAULT_MAX_CONSECUTIVE_DAYS = 14
DEFAULT_MIN_ADVANCE_NOTICE_DAYS = 7
DEFAULT_MAX_PER_TEAM = 5
DEFAULT_MAX_PER_SHIFT = 3
