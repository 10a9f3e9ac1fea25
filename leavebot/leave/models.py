"""Leave ORM model: LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavebot.common.constants import LeaveStatus
from leavebot.database import Base

if TYPE_CHECKING:
    from leavebot.users.models import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_span"),
        sa.Index("ix_leave_team_span", "team_id", "status", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True
    )
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, sa.ForeignKey("teams.id"))
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        default=LeaveStatus.pending,
        nullable=False,
    )
    # Computed once from the owner's pattern when the leave is created;
    # later pattern changes do not rewrite it
    working_days_count: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    calendar_days_count: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    shift_pattern_kind: Mapped[Optional[str]] = mapped_column(sa.String(20))
    shift_time: Mapped[Optional[str]] = mapped_column(sa.String(20))
    overridden: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id")
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    owner: Mapped[User] = relationship(foreign_keys=[owner_id])
    reviewer: Mapped[Optional[User]] = relationship(foreign_keys=[reviewed_by])
