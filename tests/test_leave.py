"""Leave module tests — application rules, reviews with the concurrent-leave
limit and its password override, deletion, balances, calendar events, and
the HTTP endpoints.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.common.audit import AuditTrail
from leavebot.common.constants import LeaveStatus, UserRole
from leavebot.common.exceptions import (
    ConcurrentLimitException,
    ForbiddenException,
    InvalidDateRange,
    InvalidOverrideCredentialException,
    NotFoundException,
    ValidationException,
)
from leavebot.leave.models import LeaveRequest
from leavebot.leave.schemas import LeaveRequestCreate, WorkingDaysRequest
from leavebot.leave.service import LeaveService

from tests.factories import (
    TEST_PASSWORD,
    auth_headers,
    make_leave,
    make_team,
    make_user,
)

# 2030-03-04 is a Monday
MON = date(2030, 3, 4)
ROTATION_2_2 = {"kind": "rotation", "work_days": 2, "off_days": 2, "reference_date": "2030-03-04"}
REGULAR = {"kind": "regular"}


def _day(offset: int) -> date:
    return MON + timedelta(days=offset)


async def _audit_actions(db: AsyncSession, entity_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(AuditTrail.action).where(AuditTrail.entity_id == entity_id)
    )
    return list(result.scalars().all())


async def _fill_team(db: AsyncSession, teammates, start: date, end: date) -> None:
    for mate in teammates:
        await make_leave(db, mate, start, end)


# ═════════════════════════════════════════════════════════════════════
# 1. Working-day preview
# ═════════════════════════════════════════════════════════════════════


class TestCalculateWorkingDays:

    async def test_counts_with_owner_pattern(self, db: AsyncSession, team):
        user = await make_user(db, username="rota", team=team, shift_pattern=ROTATION_2_2)
        result = await LeaveService.calculate_working_days(
            db, user, WorkingDaysRequest(start_date=_day(0), end_date=_day(7)),
        )
        assert result.count == 4
        assert result.calendar_days == 8
        assert result.dates == [_day(0), _day(1), _day(4), _day(5)]
        assert result.shift_pattern == "rotation"
        assert result.shift_time.type == "day"

    async def test_reports_team_occupancy(self, db: AsyncSession, member, teammates):
        await _fill_team(db, teammates[:2], _day(0), _day(4))
        result = await LeaveService.calculate_working_days(
            db, member, WorkingDaysRequest(start_date=_day(2), end_date=_day(3)),
        )
        assert result.concurrent_info.enabled is True
        assert result.concurrent_info.count == 2
        assert result.concurrent_info.limit == 3
        assert result.warning == (
            "2/3 team members on leave. Adding this request will reach the limit."
        )

    async def test_no_occupancy_info_when_limit_disabled(self, db: AsyncSession):
        team = await make_team(db, name="Quiet")
        user = await make_user(db, username="quiet", team=team)
        result = await LeaveService.calculate_working_days(
            db, user, WorkingDaysRequest(start_date=_day(0), end_date=_day(0)),
        )
        assert result.concurrent_info is None
        assert result.warning is None
        assert result.shift_pattern == "regular"

    async def test_preview_for_someone_else_needs_access(
        self, db: AsyncSession, member, teammates, leader,
    ):
        request = WorkingDaysRequest(start_date=_day(0), end_date=_day(1), user_id=member.id)
        with pytest.raises(ForbiddenException):
            await LeaveService.calculate_working_days(db, teammates[0], request)

        result = await LeaveService.calculate_working_days(db, leader, request)
        assert result.count == 2

    async def test_member_without_pattern_uses_team_default(self, db: AsyncSession, team):
        user = await make_user(db, username="plain", team=team)
        result = await LeaveService.calculate_working_days(
            db, user, WorkingDaysRequest(start_date=_day(0), end_date=_day(6)),
        )
        assert result.count == 5
        assert result.calendar_days == 7
        assert result.dates == [_day(i) for i in range(5)]
        assert result.shift_pattern == "regular"

    async def test_team_default_rotation_and_shift_time(self, db: AsyncSession):
        team = await make_team(
            db, name="Plant",
            settings={
                "shift_pattern": ROTATION_2_2,
                "shift_time": {"type": "night"},
            },
        )
        plain = await make_user(db, username="plain", team=team)
        own = await make_user(db, username="own", team=team, shift_pattern=REGULAR)
        request = WorkingDaysRequest(start_date=_day(0), end_date=_day(7))

        from_team = await LeaveService.calculate_working_days(db, plain, request)
        assert from_team.count == 4
        assert from_team.shift_pattern == "rotation"
        assert from_team.shift_time.type == "night"

        personal = await LeaveService.calculate_working_days(db, own, request)
        assert personal.count == 6
        assert personal.shift_pattern == "regular"

    async def test_no_team_gets_weekday_default(self, db: AsyncSession):
        loner = await make_user(db, username="loner")
        result = await LeaveService.calculate_working_days(
            db, loner, WorkingDaysRequest(start_date=_day(5), end_date=_day(6)),
        )
        assert result.count == 0

    async def test_reversed_span_becomes_validation_error(self, db: AsyncSession, member):
        # Bypasses the request validator, as a direct service caller could
        request = WorkingDaysRequest.model_construct(
            start_date=_day(3), end_date=_day(1), user_id=None,
        )
        with pytest.raises(InvalidDateRange) as exc_info:
            await LeaveService.calculate_working_days(db, member, request)
        assert exc_info.value.status_code == 422
        assert "start_date" in exc_info.value.errors


# ═════════════════════════════════════════════════════════════════════
# 2. Apply
# ═════════════════════════════════════════════════════════════════════


class TestApplyLeave:

    async def test_apply_leave_happy_path(self, db: AsyncSession, team):
        user = await make_user(db, username="rota", team=team, shift_pattern=ROTATION_2_2)
        out = await LeaveService.apply_leave(
            db, user, LeaveRequestCreate(start_date=_day(0), end_date=_day(7), reason="Trip"),
        )
        assert out.status == LeaveStatus.pending
        assert out.working_days_count == 4
        assert out.calendar_days_count == 8
        assert out.shift_pattern_kind == "rotation"
        assert out.shift_time == "day"
        assert out.team_id == team.id
        assert await _audit_actions(db, out.id) == ["create"]

    async def test_weekend_not_counted_without_own_pattern(self, db: AsyncSession, member):
        out = await LeaveService.apply_leave(
            db, member, LeaveRequestCreate(start_date=_day(0), end_date=_day(6)),
        )
        assert out.working_days_count == 5
        assert out.calendar_days_count == 7
        assert out.shift_pattern_kind == "regular"

        snapshot = await LeaveService.get_balance(db, member.id, 2030, member)
        assert snapshot.pending == 5

    async def test_count_is_not_recomputed_when_pattern_changes(self, db: AsyncSession, team):
        user = await make_user(db, username="rota", team=team, shift_pattern=ROTATION_2_2)
        out = await LeaveService.apply_leave(
            db, user, LeaveRequestCreate(start_date=_day(0), end_date=_day(7)),
        )
        user.shift_pattern = REGULAR
        await db.commit()

        leave = await db.get(LeaveRequest, out.id)
        assert leave.working_days_count == 4

    async def test_zero_working_days_rejected(self, db: AsyncSession, team):
        user = await make_user(db, username="regular", team=team, shift_pattern=REGULAR)
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.apply_leave(
                db, user, LeaveRequestCreate(start_date=_day(5), end_date=_day(6)),
            )
        assert "dates" in exc_info.value.errors

    async def test_max_consecutive_days_exceeded(self, db: AsyncSession, member):
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.apply_leave(
                db, member, LeaveRequestCreate(start_date=_day(0), end_date=_day(20)),
            )
        assert "14" in exc_info.value.errors["dates"][0]

    async def test_advance_notice_for_regular_users(self, db: AsyncSession):
        team = await make_team(db, name="Notice")  # default 7 days notice
        user = await make_user(db, username="eager", team=team)
        lead = await make_user(db, username="boss", role=UserRole.leader, team=team)
        tomorrow = datetime.now(timezone.utc).date() + timedelta(days=1)
        data = LeaveRequestCreate(start_date=tomorrow, end_date=tomorrow)

        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.apply_leave(db, user, data)
        assert "start_date" in exc_info.value.errors

        out = await LeaveService.apply_leave(db, lead, data)
        assert out.status == LeaveStatus.pending

    async def test_overlapping_dates_rejected(self, db: AsyncSession, member):
        await make_leave(db, member, _day(0), _day(2), status=LeaveStatus.pending)
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.apply_leave(
                db, member, LeaveRequestCreate(start_date=_day(2), end_date=_day(4)),
            )
        assert "dates" in exc_info.value.errors

    async def test_rejected_leave_does_not_block(self, db: AsyncSession, member):
        await make_leave(db, member, _day(0), _day(2), status=LeaveStatus.rejected)
        out = await LeaveService.apply_leave(
            db, member, LeaveRequestCreate(start_date=_day(0), end_date=_day(2)),
        )
        assert out.working_days_count == 3

    async def test_insufficient_balance(self, db: AsyncSession, member):
        await make_leave(db, member, date(2030, 1, 7), date(2030, 1, 7), working_days_count=18)
        await make_leave(
            db, member, date(2030, 2, 4), date(2030, 2, 4),
            status=LeaveStatus.pending, working_days_count=2,
        )
        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.apply_leave(
                db, member, LeaveRequestCreate(start_date=_day(0), end_date=_day(1)),
            )
        assert "balance" in exc_info.value.errors

    async def test_negative_balance_allowed_by_policy(self, db: AsyncSession):
        team = await make_team(
            db, name="Lenient",
            settings={"min_advance_notice_days": 0, "allow_negative_balance": True},
        )
        user = await make_user(db, username="spender", team=team)
        await make_leave(db, user, date(2030, 1, 7), date(2030, 1, 7), working_days_count=21)

        out = await LeaveService.apply_leave(
            db, user, LeaveRequestCreate(start_date=_day(0), end_date=_day(1)),
        )
        assert out.status == LeaveStatus.pending


# ═════════════════════════════════════════════════════════════════════
# 3. Review
# ═════════════════════════════════════════════════════════════════════


class TestReviewLeave:

    async def test_leader_rejects(self, db: AsyncSession, leader, member):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        out = await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.rejected)

        assert out.status == LeaveStatus.rejected
        assert out.reviewed_by == leader.id
        assert out.reviewed_at is not None
        assert await _audit_actions(db, leave.id) == ["reject"]

    async def test_approve_within_limit(self, db: AsyncSession, leader, member, teammates):
        await _fill_team(db, teammates[:2], _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        out = await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.approved)

        assert out.status == LeaveStatus.approved
        assert out.overridden is False
        assert await _audit_actions(db, leave.id) == ["approve"]

    async def test_limit_reached_without_password(
        self, db: AsyncSession, leader, member, teammates,
    ):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        with pytest.raises(ConcurrentLimitException) as exc_info:
            await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.approved)

        assert exc_info.value.current_count == 3
        assert exc_info.value.limit == 3
        assert exc_info.value.status_code == 409
        await db.refresh(leave)
        assert leave.status == LeaveStatus.pending

    async def test_wrong_override_password_changes_nothing(
        self, db: AsyncSession, leader, member, teammates,
    ):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        with pytest.raises(InvalidOverrideCredentialException):
            await LeaveService.review_leave(
                db, leave.id, leader, LeaveStatus.approved, override_password="wrong",
            )

        await db.refresh(leave)
        assert leave.status == LeaveStatus.pending
        assert leave.overridden is False
        assert await _audit_actions(db, leave.id) == []

    async def test_empty_override_password_is_refused(
        self, db: AsyncSession, leader, member, teammates,
    ):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        with pytest.raises(InvalidOverrideCredentialException):
            await LeaveService.review_leave(
                db, leave.id, leader, LeaveStatus.approved, override_password="",
            )

    async def test_override_with_own_password(
        self, db: AsyncSession, leader, member, teammates,
    ):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        out = await LeaveService.review_leave(
            db, leave.id, leader, LeaveStatus.approved, override_password=TEST_PASSWORD,
        )

        assert out.status == LeaveStatus.approved
        assert out.overridden is True
        assert await _audit_actions(db, leave.id) == ["override_approve"]

    async def test_rejection_ignores_limit(self, db: AsyncSession, leader, member, teammates):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)

        out = await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.rejected)
        assert out.status == LeaveStatus.rejected

    async def test_by_shift_limit(self, db: AsyncSession):
        team = await make_team(
            db, name="Shifts",
            settings={"concurrent_leave": {
                "enabled": True, "check_by_shift": True, "max_per_shift": 1,
            }},
        )
        boss = await make_user(db, username="shiftboss", role=UserRole.admin)
        night = await make_user(db, username="night", team=team)
        day = await make_user(db, username="day", team=team)
        await make_leave(db, night, _day(0), _day(3), shift_time="night")

        day_leave = await make_leave(
            db, day, _day(1), _day(1), status=LeaveStatus.pending, shift_time="day",
        )
        night_leave = await make_leave(
            db, night, _day(5), _day(5), status=LeaveStatus.pending, shift_time="night",
        )
        other = await make_user(db, username="night2", team=team)
        blocked = await make_leave(
            db, other, _day(2), _day(2), status=LeaveStatus.pending, shift_time="night",
        )

        assert (await LeaveService.review_leave(
            db, day_leave.id, boss, LeaveStatus.approved,
        )).status == LeaveStatus.approved
        assert (await LeaveService.review_leave(
            db, night_leave.id, boss, LeaveStatus.approved,
        )).status == LeaveStatus.approved
        with pytest.raises(ConcurrentLimitException):
            await LeaveService.review_leave(db, blocked.id, boss, LeaveStatus.approved)

    async def test_already_reviewed(self, db: AsyncSession, leader, member):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.approved)
        with pytest.raises(ValidationException):
            await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.rejected)

    async def test_member_cannot_review(self, db: AsyncSession, member, teammates):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        with pytest.raises(ForbiddenException):
            await LeaveService.review_leave(db, leave.id, teammates[0], LeaveStatus.approved)

    async def test_leader_of_other_team_cannot_review(self, db: AsyncSession, member):
        other_team = await make_team(db, name="Sales")
        other_lead = await make_user(
            db, username="sales-lead", role=UserRole.leader, team=other_team,
        )
        other_team.leader_id = other_lead.id
        await db.commit()

        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        with pytest.raises(ForbiddenException):
            await LeaveService.review_leave(db, leave.id, other_lead, LeaveStatus.approved)

    async def test_leader_cannot_review_own_leave(self, db: AsyncSession, leader):
        leave = await make_leave(db, leader, _day(0), _day(1), status=LeaveStatus.pending)
        with pytest.raises(ForbiddenException):
            await LeaveService.review_leave(db, leave.id, leader, LeaveStatus.approved)

    async def test_admin_reviews_any_team(self, db: AsyncSession, admin, member):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        out = await LeaveService.review_leave(db, leave.id, admin, LeaveStatus.approved)
        assert out.status == LeaveStatus.approved

    async def test_unknown_leave(self, db: AsyncSession, admin):
        with pytest.raises(NotFoundException):
            await LeaveService.review_leave(db, uuid.uuid4(), admin, LeaveStatus.approved)


# ═════════════════════════════════════════════════════════════════════
# 4. Delete
# ═════════════════════════════════════════════════════════════════════


class TestDeleteLeave:

    async def test_owner_deletes_pending(self, db: AsyncSession, member):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        leave_id = leave.id
        await LeaveService.delete_leave(db, leave_id, member)

        assert await db.get(LeaveRequest, leave_id) is None
        assert await _audit_actions(db, leave_id) == ["delete"]

    async def test_owner_cannot_delete_approved(self, db: AsyncSession, member):
        leave = await make_leave(db, member, _day(0), _day(1))
        with pytest.raises(ForbiddenException):
            await LeaveService.delete_leave(db, leave.id, member)

    async def test_cannot_delete_someone_elses(self, db: AsyncSession, member, teammates):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        with pytest.raises(ForbiddenException):
            await LeaveService.delete_leave(db, leave.id, teammates[0])

    async def test_leader_deletes_approved(self, db: AsyncSession, leader, member):
        leave = await make_leave(db, member, _day(0), _day(1))
        leave_id = leave.id
        await LeaveService.delete_leave(db, leave_id, leader)
        assert await db.get(LeaveRequest, leave_id) is None


# ═════════════════════════════════════════════════════════════════════
# 5. Balance
# ═════════════════════════════════════════════════════════════════════


class TestGetBalance:

    async def test_balance_from_cached_counts(self, db: AsyncSession, member):
        await make_leave(db, member, date(2030, 1, 7), date(2030, 1, 9), working_days_count=3)
        await make_leave(db, member, date(2030, 2, 4), date(2030, 2, 5), working_days_count=2)
        await make_leave(
            db, member, date(2030, 3, 4), date(2030, 3, 6),
            status=LeaveStatus.pending, working_days_count=3,
        )
        await make_leave(db, member, date(2029, 12, 2), date(2029, 12, 2), working_days_count=1)

        snapshot = await LeaveService.get_balance(db, member.id, 2030, member)

        assert snapshot.total == 21
        assert snapshot.used == 5
        assert snapshot.pending == 3
        assert snapshot.available == 16

    async def test_carry_over_capped_by_policy(self, db: AsyncSession, team):
        user = await make_user(db, username="saver", team=team, carry_over_days=9)
        snapshot = await LeaveService.get_balance(db, user.id, 2030, user)
        # Team default cap is 5 days
        assert snapshot.total == 26

    async def test_teammate_cannot_read_balance(self, db: AsyncSession, member, teammates):
        with pytest.raises(ForbiddenException):
            await LeaveService.get_balance(db, member.id, 2030, teammates[0])

    async def test_leader_reads_member_balance(self, db: AsyncSession, leader, member):
        snapshot = await LeaveService.get_balance(db, member.id, 2030, leader)
        assert snapshot.user_id == member.id


# ═════════════════════════════════════════════════════════════════════
# 6. Calendar
# ═════════════════════════════════════════════════════════════════════


class TestCalendarEvents:

    async def test_events_follow_owner_pattern(self, db: AsyncSession, team):
        user = await make_user(db, username="rota", team=team, shift_pattern=ROTATION_2_2)
        leave = await make_leave(db, user, _day(0), _day(7), status=LeaveStatus.pending)

        events = await LeaveService.get_calendar_events(db, user)

        assert [(e.start, e.end) for e in events] == [
            (_day(0), _day(2)),
            (_day(4), _day(6)),
        ]
        assert [e.id for e in events] == [f"{leave.id}-0", f"{leave.id}-1"]
        assert all(e.title == "Rota (pending)" for e in events)

    async def test_team_default_splits_around_weekend(self, db: AsyncSession, member):
        # Friday to Monday
        await make_leave(db, member, _day(4), _day(7))
        events = await LeaveService.get_calendar_events(db, member)
        assert [(e.start, e.end) for e in events] == [
            (_day(4), _day(5)),
            (_day(7), _day(8)),
        ]

    async def test_approved_title_has_no_suffix(self, db: AsyncSession, member):
        await make_leave(db, member, _day(0), _day(0))
        [event] = await LeaveService.get_calendar_events(db, member)
        assert event.title == "Member"
        assert event.end == _day(1)

    async def test_rejected_suffix(self, db: AsyncSession, member):
        await make_leave(db, member, _day(0), _day(0), status=LeaveStatus.rejected)
        [event] = await LeaveService.get_calendar_events(db, member)
        assert event.title == "Member (rejected)"

    async def test_window_and_team_scope(self, db: AsyncSession, member, teammates):
        other_team = await make_team(db, name="Sales")
        outsider = await make_user(db, username="outsider", team=other_team)
        await make_leave(db, outsider, _day(0), _day(0))
        await make_leave(db, teammates[0], _day(0), _day(0))
        await make_leave(db, teammates[1], _day(20), _day(21))

        events = await LeaveService.get_calendar_events(
            db, member, from_date=_day(0), to_date=_day(7),
        )
        assert [e.owner_id for e in events] == [teammates[0].id]

    async def test_other_team_forbidden_for_members(self, db: AsyncSession, member):
        other_team = await make_team(db, name="Sales")
        with pytest.raises(ForbiddenException):
            await LeaveService.get_calendar_events(db, member, team_id=other_team.id)

    async def test_admin_filters_by_team(self, db: AsyncSession, admin, member):
        other_team = await make_team(db, name="Sales")
        outsider = await make_user(db, username="outsider", team=other_team)
        await make_leave(db, outsider, _day(0), _day(0))
        await make_leave(db, member, _day(0), _day(0))

        everything = await LeaveService.get_calendar_events(db, admin)
        sales = await LeaveService.get_calendar_events(db, admin, team_id=other_team.id)
        assert len(everything) == 2
        assert [e.owner_id for e in sales] == [outsider.id]

    async def test_reversed_window(self, db: AsyncSession, member):
        with pytest.raises(InvalidDateRange):
            await LeaveService.get_calendar_events(
                db, member, from_date=_day(3), to_date=_day(1),
            )


# ═════════════════════════════════════════════════════════════════════
# 7. API endpoints
# ═════════════════════════════════════════════════════════════════════


class TestLeaveAPI:

    async def test_requires_auth(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/leaves/calculate",
            json={"start_date": "2030-03-04", "end_date": "2030-03-05"},
        )
        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("application/problem+json")

    async def test_calculate(self, client: AsyncClient, db: AsyncSession, member, teammates):
        await _fill_team(db, teammates, _day(0), _day(2))
        resp = await client.post(
            "/api/v1/leaves/calculate",
            json={"start_date": "2030-03-04", "end_date": "2030-03-06"},
            headers=auth_headers(member),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 3
        assert body["calendar_days"] == 3
        assert body["concurrent_info"] == {"enabled": True, "count": 3, "limit": 3}
        assert body["warning"].endswith("Limit reached.")

    async def test_calculate_reversed_dates(self, client: AsyncClient, member):
        resp = await client.post(
            "/api/v1/leaves/calculate",
            json={"start_date": "2030-03-06", "end_date": "2030-03-04"},
            headers=auth_headers(member),
        )
        assert resp.status_code == 422

    async def test_apply(self, client: AsyncClient, db: AsyncSession, member):
        resp = await client.post(
            "/api/v1/leaves",
            json={"start_date": "2030-04-01", "end_date": "2030-04-03", "reason": "Family"},
            headers=auth_headers(member),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["working_days_count"] == 3
        assert body["owner_id"] == str(member.id)

    async def test_apply_validation_error_shape(self, client: AsyncClient, db, team):
        user = await make_user(db, username="regular", team=team, shift_pattern=REGULAR)
        resp = await client.post(
            "/api/v1/leaves",
            json={"start_date": "2030-03-09", "end_date": "2030-03-10"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 422
        assert "dates" in resp.json()["errors"]

    async def test_review_conflict_then_override(
        self, client: AsyncClient, db: AsyncSession, leader, member, teammates,
    ):
        await _fill_team(db, teammates, _day(0), _day(4))
        leave = await make_leave(db, member, _day(1), _day(2), status=LeaveStatus.pending)
        url = f"/api/v1/leaves/{leave.id}"
        headers = auth_headers(leader)

        # 1. Limit reached: no password supplied
        resp = await client.put(url, json={"status": "approved"}, headers=headers)
        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "concurrent_limit_exceeded"
        assert body["current_count"] == 3
        assert body["limit"] == 3
        assert body["warning"] == (
            "3/3 team members already on leave during this period. Limit reached."
        )
        # Counts only; nobody on leave is identified
        for mate in teammates:
            assert str(mate.id) not in resp.text
            assert mate.name not in resp.text

        # 2. Wrong password: 401 and the leave is untouched
        resp = await client.put(
            url, json={"status": "approved", "override_password": "nope"}, headers=headers,
        )
        assert resp.status_code == 401
        assert resp.json()["type"].endswith("/invalid_override_credential")
        await db.refresh(leave)
        assert leave.status == LeaveStatus.pending

        # 3. Approver's own password forces the approval
        resp = await client.put(
            url,
            json={"status": "approved", "override_password": TEST_PASSWORD},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert resp.json()["overridden"] is True
        await db.refresh(leave)
        assert leave.status == LeaveStatus.approved

    async def test_review_requires_leader_role(self, client: AsyncClient, db, member, teammates):
        leave = await make_leave(db, member, _day(0), _day(0), status=LeaveStatus.pending)
        resp = await client.put(
            f"/api/v1/leaves/{leave.id}",
            json={"status": "approved"},
            headers=auth_headers(teammates[0]),
        )
        assert resp.status_code == 403

    async def test_review_rejects_pending_as_target(self, client: AsyncClient, db, leader, member):
        leave = await make_leave(db, member, _day(0), _day(0), status=LeaveStatus.pending)
        resp = await client.put(
            f"/api/v1/leaves/{leave.id}",
            json={"status": "pending"},
            headers=auth_headers(leader),
        )
        assert resp.status_code == 422

    async def test_delete(self, client: AsyncClient, db: AsyncSession, member):
        leave = await make_leave(db, member, _day(0), _day(0), status=LeaveStatus.pending)
        resp = await client.delete(f"/api/v1/leaves/{leave.id}", headers=auth_headers(member))
        assert resp.status_code == 204

        result = await db.execute(select(LeaveRequest.id).where(LeaveRequest.id == leave.id))
        assert result.first() is None

    async def test_delete_unknown(self, client: AsyncClient, member):
        resp = await client.delete(
            f"/api/v1/leaves/{uuid.uuid4()}", headers=auth_headers(member),
        )
        assert resp.status_code == 404

    async def test_balance(self, client: AsyncClient, db: AsyncSession, member):
        await make_leave(db, member, date(2030, 1, 7), date(2030, 1, 9), working_days_count=3)
        resp = await client.get(
            f"/api/v1/leaves/balance/{member.id}",
            params={"year": 2030},
            headers=auth_headers(member),
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "user_id": str(member.id),
            "year": 2030,
            "total": 21,
            "used": 3,
            "pending": 0,
            "available": 18,
        }

    async def test_calendar(self, client: AsyncClient, db: AsyncSession, member):
        leave = await make_leave(db, member, _day(0), _day(1), status=LeaveStatus.pending)
        resp = await client.get(
            "/api/v1/leaves/calendar",
            params={"from_date": "2030-03-01", "to_date": "2030-03-31"},
            headers=auth_headers(member),
        )
        assert resp.status_code == 200
        assert resp.json() == [{
            "id": f"{leave.id}-0",
            "leave_id": str(leave.id),
            "owner_id": str(member.id),
            "title": "Member (pending)",
            "start": "2030-03-04",
            "end": "2030-03-06",
            "status": "pending",
        }]

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
