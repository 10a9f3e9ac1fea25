"""User ORM model — identity, team membership and shift settings."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavebot.common.constants import UserRole
from leavebot.database import Base

if TYPE_CHECKING:
    from leavebot.teams.models import Team


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(sa.String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"), default=UserRole.user, nullable=False
    )
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("teams.id"), index=True
    )
    # werkzeug hash; the plaintext is never stored
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    # Serialised ShiftPatternConfig / ShiftTime; NULL means "not configured"
    shift_pattern: Mapped[Optional[dict]] = mapped_column(sa.JSON)
    shift_time: Mapped[Optional[dict]] = mapped_column(sa.JSON)
    # Written by the yearly carry-over job
    carry_over_days: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )

    # Relationships
    team: Mapped[Optional[Team]] = relationship(back_populates="members")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
