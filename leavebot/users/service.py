"""User service — shift settings of a person."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.common.audit import create_audit_entry
from leavebot.common.exceptions import ForbiddenException, NotFoundException
from leavebot.shifts.patterns import parse_shift_pattern, parse_shift_time, require_valid_pattern
from leavebot.teams.service import TeamService
from leavebot.users.models import User
from leavebot.users.schemas import UserSettingsOut, UserSettingsUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Async user settings operations."""

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalars().first()
        if user is None:
            raise NotFoundException("User", str(user_id))
        return user

    @staticmethod
    def can_access(requester: User, target: User) -> bool:
        """Self, an admin, or the leader of the target's team."""
        return requester.id == target.id or TeamService.can_manage(requester, target.team_id)

    @staticmethod
    def _build_settings_response(user: User) -> UserSettingsOut:
        return UserSettingsOut(
            user_id=user.id,
            shift_pattern=parse_shift_pattern(user.shift_pattern),
            shift_time=parse_shift_time(user.shift_time),
        )

    @staticmethod
    async def get_settings(
        db: AsyncSession,
        user_id: uuid.UUID,
        requester: User,
    ) -> UserSettingsOut:
        user = await UserService.get_user(db, user_id)
        if not UserService.can_access(requester, user):
            raise ForbiddenException("You cannot view this user's settings.")
        return UserService._build_settings_response(user)

    @staticmethod
    async def update_settings(
        db: AsyncSession,
        user_id: uuid.UUID,
        actor: User,
        data: UserSettingsUpdate,
    ) -> UserSettingsOut:
        """Save a new shift pattern / shift time.

        Existing leaves keep the working-day counts they were created with.
        """
        user = await UserService.get_user(db, user_id)
        if not UserService.can_access(actor, user):
            raise ForbiddenException("You cannot change this user's settings.")

        old_values = {"shift_pattern": user.shift_pattern, "shift_time": user.shift_time}
        if data.shift_pattern is not None:
            user.shift_pattern = require_valid_pattern(data.shift_pattern).model_dump(mode="json")
        if data.shift_time is not None:
            user.shift_time = data.shift_time.model_dump(mode="json")
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="user_settings",
            entity_id=user.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values={"shift_pattern": user.shift_pattern, "shift_time": user.shift_time},
        )
        logger.info("Shift settings of user %s updated by %s", user.id, actor.id)

        return UserService._build_settings_response(user)
