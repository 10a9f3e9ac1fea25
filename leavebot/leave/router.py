"""Leave router — working-day preview, apply, review, delete, balances, calendar.

All endpoints require authentication. Review rights are checked against the
leave's team inside the service.
"""


import uuid
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.auth.dependencies import get_current_user, require_role
from leavebot.common.constants import UserRole
from leavebot.common.rate_limit import limiter
from leavebot.config import settings
from leavebot.database import get_db
from leavebot.leave.balance import LeaveBalanceSnapshot
from leavebot.leave.schemas import (
    CalendarEventOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveReviewRequest,
    WorkingDaysOut,
    WorkingDaysRequest,
)
from leavebot.leave.service import LeaveService
from leavebot.users.models import User

router = APIRouter(prefix="", tags=["leaves"])


# ── POST /calculate ─────────────────────────────────────────────────

@router.post("/calculate", response_model=WorkingDaysOut)
async def calculate_working_days(
    body: WorkingDaysRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Preview working days and team occupancy for a span."""
    return await LeaveService.calculate_working_days(db, user, body)


# ── GET /calendar ───────────────────────────────────────────────────

@router.get("/calendar", response_model=list[CalendarEventOut])
async def leave_calendar(
    team_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Working-day ranges of visible leaves, for calendar views."""
    return await LeaveService.get_calendar_events(
        db, user, team_id=team_id, from_date=from_date, to_date=to_date,
    )


# ── GET /balance/{user_id} ──────────────────────────────────────────

@router.get("/balance/{user_id}", response_model=LeaveBalanceSnapshot)
async def get_balance(
    user_id: uuid.UUID,
    year: Optional[int] = Query(None, description="Leave year; defaults to current year"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target_year = year or datetime.now(timezone.utc).year
    return await LeaveService.get_balance(db, user_id, target_year, user)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def apply_leave(
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Validates working days, notice, overlap and balance."""
    return await LeaveService.apply_leave(db, user, body)


# ── PUT /{leave_id} ─────────────────────────────────────────────────

@router.put("/{leave_id}", response_model=LeaveRequestOut)
@limiter.limit(settings.REVIEW_RATE_LIMIT)
async def review_leave(
    request: Request,
    leave_id: uuid.UUID,
    body: LeaveReviewRequest,
    user: User = Depends(require_role(UserRole.admin, UserRole.leader)),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending leave; ``override_password`` forces past the limit."""
    return await LeaveService.review_leave(
        db, leave_id, user, body.status, override_password=body.override_password,
    )


# ── DELETE /{leave_id} ──────────────────────────────────────────────

@router.delete("/{leave_id}", status_code=204)
async def delete_leave(
    leave_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.delete_leave(db, leave_id, user)
