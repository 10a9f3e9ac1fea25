"""Leave service layer — working-day preview, application, approvals, balances.

Business logic:
  - Working days come from the owner's shift pattern (or the team default),
    computed once when the leave is created and cached on the row
  - Approval re-checks the team's concurrent-leave limit while the team row
    is locked; an approver may override the limit by re-entering their password
  - Balances are derived from the cached working-day counts
  - Calendar events are the working-day ranges of each leave
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence, TypeVar, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavebot.auth.service import make_credential_verifier
from leavebot.common.audit import create_audit_entry
from leavebot.common.constants import LeaveStatus, UserRole
from leavebot.common.exceptions import (
    ConcurrentLimitException,
    ForbiddenException,
    InvalidDateRange,
    InvalidOverrideCredentialException,
    NotFoundException,
    ValidationException,
)
from leavebot.config import settings
from leavebot.leave.balance import LeaveBalanceSnapshot, compute_balance
from leavebot.leave.capacity import (
    ProposedLeave,
    capacity_warning,
    check_capacity,
    count_concurrent,
)
from leavebot.leave.models import LeaveRequest
from leavebot.leave.override import authorize_override
from leavebot.leave.schemas import (
    CalendarEventOut,
    ConcurrentInfo,
    LeaveRequestCreate,
    LeaveRequestOut,
    WorkingDaysOut,
    WorkingDaysRequest,
)
from leavebot.shifts.patterns import (
    ShiftPatternConfig,
    ShiftTime,
    parse_shift_pattern,
    parse_shift_time,
)
from leavebot.shifts.ranges import (
    DateRangeError,
    split_into_working_ranges,
    summarize_working_days,
)
from leavebot.teams.schemas import TeamLeavePolicy
from leavebot.teams.service import TeamService
from leavebot.users.models import User
from leavebot.users.service import UserService

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)

T = TypeVar("T")


def _unwrap(result: Union[T, DateRangeError]) -> T:
    """Engine result, or 422 when it reports a reversed span."""
    if isinstance(result, DateRangeError):
        raise InvalidDateRange(result.start_date, result.end_date)
    return result


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _get_leave(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(select(LeaveRequest).where(LeaveRequest.id == leave_id))
        leave = result.scalars().first()
        if leave is None:
            raise NotFoundException("LeaveRequest", str(leave_id))
        return leave

    @staticmethod
    async def _approved_team_leaves(
        db: AsyncSession,
        team_id: uuid.UUID,
        start_date: date,
        end_date: date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Sequence[LeaveRequest]:
        """Approved leaves of ``team_id`` overlapping the inclusive span."""
        query = select(LeaveRequest).where(
            LeaveRequest.team_id == team_id,
            LeaveRequest.status == LeaveStatus.approved,
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_id is not None:
            query = query.where(LeaveRequest.id != exclude_id)
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def _leaves_in_year(
        db: AsyncSession,
        owner_id: uuid.UUID,
        year: int,
    ) -> Sequence[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.owner_id == owner_id,
                LeaveRequest.start_date >= date(year, 1, 1),
                LeaveRequest.start_date <= date(year, 12, 31),
            )
        )
        return result.scalars().all()

    @staticmethod
    def _carry_over(user: User, cap: int) -> int:
        """Carry-over granted to ``user``, capped by the team policy."""
        return max(0, min(user.carry_over_days or 0, cap))

    @staticmethod
    def _effective_shift(
        user: User,
        policy: TeamLeavePolicy,
    ) -> tuple[ShiftPatternConfig, ShiftTime]:
        """The person's own pattern and shift time, else the team defaults."""
        pattern = parse_shift_pattern(user.shift_pattern) or policy.shift_pattern
        shift_time = parse_shift_time(user.shift_time) if user.shift_time else policy.shift_time
        return pattern, shift_time

    # ─────────────────────────────────────────────────────────────────
    # Working-day preview
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def calculate_working_days(
        db: AsyncSession,
        requester: User,
        data: WorkingDaysRequest,
    ) -> WorkingDaysOut:
        """Count working days of a span under the person's pattern.

        When the team limits concurrent leave, also reports how many
        teammates are already on approved leave during the span.
        """
        user = requester
        if data.user_id is not None and data.user_id != requester.id:
            user = await UserService.get_user(db, data.user_id)
            if not UserService.can_access(requester, user):
                raise ForbiddenException("You cannot preview leave for this user.")

        policy = await TeamService.get_policy(db, user.team_id)
        pattern, shift_time = LeaveService._effective_shift(user, policy)
        summary = _unwrap(summarize_working_days(data.start_date, data.end_date, pattern))

        warning = None
        concurrent_info = None
        concurrent = policy.concurrent_leave
        if concurrent.enabled and user.team_id is not None:
            candidate = ProposedLeave(
                team_id=user.team_id,
                start_date=data.start_date,
                end_date=data.end_date,
                shift_time=shift_time.type.value,
            )
            existing = await LeaveService._approved_team_leaves(
                db, user.team_id, data.start_date, data.end_date,
            )
            count, _ = _unwrap(count_concurrent(candidate, existing, concurrent))
            warning = capacity_warning(count, concurrent.limit)
            concurrent_info = ConcurrentInfo(
                enabled=True, count=count, limit=concurrent.limit,
            )

        return WorkingDaysOut(
            count=summary.count,
            calendar_days=summary.calendar_days,
            dates=summary.dates,
            shift_pattern=pattern.kind,
            shift_time=shift_time,
            warning=warning,
            concurrent_info=concurrent_info,
        )

    # ─────────────────────────────────────────────────────────────────
    # Apply
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        user: User,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Apply for leave with full validation:
        - At least one working day under the user's pattern
        - Max consecutive working days
        - Advance notice (regular users only)
        - No overlapping pending/approved leaves
        - Sufficient balance unless the team allows negative balances
        """
        today = datetime.now(timezone.utc).date()
        policy = await TeamService.get_policy(db, user.team_id)
        pattern, shift_time = LeaveService._effective_shift(user, policy)

        # ── Advance notice check ────────────────────────────────────
        if user.role == UserRole.user and policy.min_advance_notice_days > 0:
            days_ahead = (data.start_date - today).days
            if days_ahead < policy.min_advance_notice_days:
                raise ValidationException(
                    {"start_date": [
                        f"Leave requires at least {policy.min_advance_notice_days} "
                        "days advance notice."
                    ]}
                )

        # ── Working days ────────────────────────────────────────────
        summary = _unwrap(summarize_working_days(data.start_date, data.end_date, pattern))
        if summary.count == 0:
            raise ValidationException(
                {"dates": ["No working days found in the selected range."]}
            )

        if summary.count > policy.max_consecutive_days:
            raise ValidationException(
                {"dates": [
                    f"Leave allows a maximum of {policy.max_consecutive_days} "
                    "consecutive working days."
                ]}
            )

        # ── Check overlapping leaves ────────────────────────────────
        overlap_result = await db.execute(
            select(LeaveRequest.id).where(
                LeaveRequest.owner_id == user.id,
                LeaveRequest.status.in_(_ACTIVE_STATUSES),
                LeaveRequest.start_date <= data.end_date,
                LeaveRequest.end_date >= data.start_date,
            )
        )
        if overlap_result.first() is not None:
            raise ValidationException(
                {"dates": [
                    "You already have a pending or approved leave request "
                    "overlapping with these dates."
                ]}
            )

        # ── Check sufficient balance ────────────────────────────────
        if not policy.allow_negative_balance:
            year = data.start_date.year
            snapshot = _unwrap(compute_balance(
                user.id,
                policy,
                await LeaveService._leaves_in_year(db, user.id, year),
                year,
                carry_over=LeaveService._carry_over(user, policy.carry_over_days),
                pending_reduces_available=True,
            ))
            if summary.count > snapshot.available:
                raise ValidationException(
                    {"balance": [
                        f"Insufficient leave balance. Available: {snapshot.available}, "
                        f"Requested: {summary.count}."
                    ]}
                )

        # ── Create ──────────────────────────────────────────────────
        leave = LeaveRequest(
            owner_id=user.id,
            team_id=user.team_id,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
            status=LeaveStatus.pending,
            working_days_count=summary.count,
            calendar_days_count=summary.calendar_days,
            shift_pattern_kind=pattern.kind,
            shift_time=shift_time.type.value,
        )
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=user.id,
            new_values={
                "start_date": data.start_date.isoformat(),
                "end_date": data.end_date.isoformat(),
                "working_days_count": summary.count,
            },
        )
        logger.info(
            "Leave %s created by user %s: %s..%s, %d working days",
            leave.id, user.id, data.start_date, data.end_date, summary.count,
        )

        await db.refresh(leave)
        return LeaveRequestOut.model_validate(leave)

    # ─────────────────────────────────────────────────────────────────
    # Review
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def review_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        approver: User,
        status: LeaveStatus,
        override_password: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Approve or reject a pending leave.

        The team row is locked before the approved leaves are read, so the
        capacity check and the status change commit together. When the limit
        is reached the approval fails with 409 unless ``override_password``
        verifies against the approver's own password.
        """
        leave = await LeaveService._get_leave(db, leave_id)

        if leave.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": [f"Leave request is already {leave.status.value}."]}
            )

        team = None
        if leave.team_id is not None:
            team = await TeamService.get_team(db, leave.team_id, for_update=True)

        if not TeamService.can_manage(approver, leave.team_id, team):
            raise ForbiddenException("Only admins and the team leader can review this leave.")
        if leave.owner_id == approver.id and approver.role != UserRole.admin:
            raise ForbiddenException("You cannot review your own leave request.")

        overridden = False
        if status == LeaveStatus.approved and team is not None:
            policy = TeamService.policy_of(team)
            existing = await LeaveService._approved_team_leaves(
                db, team.id, leave.start_date, leave.end_date, exclude_id=leave.id,
            )
            decision = _unwrap(check_capacity(leave, existing, policy))
            if not decision.ok:
                warning = capacity_warning(decision.conflicting_count, decision.limit)
                if override_password is None:
                    raise ConcurrentLimitException(
                        decision.conflicting_count, decision.limit, warning,
                    )
                override = await authorize_override(
                    approver.id, override_password, make_credential_verifier(db),
                )
                if not override.authorized:
                    raise InvalidOverrideCredentialException()
                overridden = True

        leave.status = status
        leave.reviewed_by = approver.id
        leave.reviewed_at = datetime.now(timezone.utc)
        leave.overridden = overridden
        await db.flush()

        if overridden:
            action = "override_approve"
        elif status == LeaveStatus.approved:
            action = "approve"
        else:
            action = "reject"

        await create_audit_entry(
            db,
            action=action,
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=approver.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": status.value, "overridden": overridden},
        )
        logger.info("Leave %s %s by %s", leave.id, action, approver.id)

        await db.refresh(leave)
        return LeaveRequestOut.model_validate(leave)

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def delete_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        actor: User,
    ) -> None:
        """Admins and team leaders delete any leave of their scope; owners
        only their own pending ones."""
        leave = await LeaveService._get_leave(db, leave_id)

        if not TeamService.can_manage(actor, leave.team_id):
            if leave.owner_id != actor.id:
                raise ForbiddenException("You can only delete your own leave requests.")
            if leave.status != LeaveStatus.pending:
                raise ForbiddenException("Only pending leave requests can be deleted.")

        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor.id,
            old_values={
                "owner_id": str(leave.owner_id),
                "start_date": leave.start_date.isoformat(),
                "end_date": leave.end_date.isoformat(),
                "status": leave.status.value,
            },
        )
        await db.delete(leave)
        await db.flush()
        logger.info("Leave %s deleted by %s", leave_id, actor.id)

    # ─────────────────────────────────────────────────────────────────
    # Balance
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        requester: User,
    ) -> LeaveBalanceSnapshot:
        user = await UserService.get_user(db, user_id)
        if not UserService.can_access(requester, user):
            raise ForbiddenException("You cannot view this user's balance.")

        policy = await TeamService.get_policy(db, user.team_id)
        leaves = await LeaveService._leaves_in_year(db, user.id, year)
        return _unwrap(compute_balance(
            user.id,
            policy,
            leaves,
            year,
            carry_over=LeaveService._carry_over(user, policy.carry_over_days),
            pending_reduces_available=settings.PENDING_REDUCES_AVAILABLE,
        ))

    # ─────────────────────────────────────────────────────────────────
    # Calendar
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_calendar_events(
        db: AsyncSession,
        requester: User,
        team_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[CalendarEventOut]:
        """Working-day ranges of every visible leave, one event per range.

        Admins see every team; everyone else sees their own team, or only
        their own leaves when they have none.
        """
        if from_date is not None and to_date is not None and from_date > to_date:
            raise InvalidDateRange(from_date, to_date)

        query = select(LeaveRequest).options(selectinload(LeaveRequest.owner))
        if requester.role == UserRole.admin:
            if team_id is not None:
                query = query.where(LeaveRequest.team_id == team_id)
        else:
            if team_id is not None and team_id != requester.team_id:
                raise ForbiddenException("You can only view your own team's calendar.")
            if requester.team_id is not None:
                query = query.where(LeaveRequest.team_id == requester.team_id)
            else:
                query = query.where(LeaveRequest.owner_id == requester.id)

        if from_date is not None:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date is not None:
            query = query.where(LeaveRequest.start_date <= to_date)

        result = await db.execute(query.order_by(LeaveRequest.start_date))
        leaves = result.scalars().all()

        # Ranges follow the owner's current pattern, not the one cached at creation
        policies: dict[Optional[uuid.UUID], TeamLeavePolicy] = {}
        patterns: dict[uuid.UUID, ShiftPatternConfig] = {}
        events: list[CalendarEventOut] = []
        for leave in leaves:
            owner = leave.owner
            if owner.id not in patterns:
                if owner.team_id not in policies:
                    policies[owner.team_id] = await TeamService.get_policy(db, owner.team_id)
                patterns[owner.id], _ = LeaveService._effective_shift(
                    owner, policies[owner.team_id],
                )

            title = owner.name
            if leave.status != LeaveStatus.approved:
                title = f"{title} ({leave.status.value})"

            for index, span in enumerate(
                _unwrap(split_into_working_ranges(leave, patterns[owner.id]))
            ):
                events.append(
                    CalendarEventOut(
                        id=f"{leave.id}-{index}",
                        leave_id=leave.id,
                        owner_id=owner.id,
                        title=title,
                        start=span.start,
                        end=span.end,
                        status=leave.status,
                    )
                )
        return events
