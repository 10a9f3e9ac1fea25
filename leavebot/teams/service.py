"""Team service — leave policy lookup and updates, team-scope permissions."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.common.audit import create_audit_entry
from leavebot.common.constants import UserRole
from leavebot.common.exceptions import ForbiddenException, NotFoundException
from leavebot.shifts.patterns import require_valid_pattern
from leavebot.teams.models import Team
from leavebot.teams.schemas import TeamLeavePolicy, TeamSettingsOut, TeamSettingsUpdate
from leavebot.users.models import User

logger = logging.getLogger(__name__)


class TeamService:
    """Async team policy operations."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def policy_of(team: Optional[Team]) -> TeamLeavePolicy:
        """Validated policy stored on ``team``; defaults when absent or unreadable."""
        if team is None or not team.settings:
            return TeamLeavePolicy()
        try:
            return TeamLeavePolicy.model_validate(team.settings)
        except ValidationError:
            logger.warning("Stored settings for team %s are invalid, using defaults", team.id)
            return TeamLeavePolicy()

    @staticmethod
    def can_manage(user: User, team_id: Optional[uuid.UUID], team: Optional[Team] = None) -> bool:
        """Admins manage every team; a leader manages the team they lead."""
        if user.role == UserRole.admin:
            return True
        if user.role != UserRole.leader or team_id is None:
            return False
        if team is not None:
            return team.leader_id == user.id
        return user.team_id == team_id

    @staticmethod
    async def get_team(
        db: AsyncSession,
        team_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Team:
        query = select(Team).where(Team.id == team_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        team = result.scalars().first()
        if team is None:
            raise NotFoundException("Team", str(team_id))
        return team

    @staticmethod
    def _build_settings_response(team: Team) -> TeamSettingsOut:
        return TeamSettingsOut(
            team_id=team.id,
            team_name=team.name,
            settings=TeamService.policy_of(team),
            updated_at=team.updated_at,
        )

    # ─────────────────────────────────────────────────────────────────
    # Policy
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_policy(db: AsyncSession, team_id: Optional[uuid.UUID]) -> TeamLeavePolicy:
        """Policy for ``team_id``; users without a team get the defaults."""
        if team_id is None:
            return TeamLeavePolicy()
        return TeamService.policy_of(await TeamService.get_team(db, team_id))

    @staticmethod
    async def get_settings(
        db: AsyncSession,
        team_id: uuid.UUID,
        requester: User,
    ) -> TeamSettingsOut:
        team = await TeamService.get_team(db, team_id)
        if not (TeamService.can_manage(requester, team_id, team) or requester.team_id == team_id):
            raise ForbiddenException("You can only view your own team's settings.")
        return TeamService._build_settings_response(team)

    @staticmethod
    async def update_settings(
        db: AsyncSession,
        team_id: uuid.UUID,
        actor: User,
        data: TeamSettingsUpdate,
    ) -> TeamSettingsOut:
        """Apply a partial policy update. Admins or the team's leader only."""
        team = await TeamService.get_team(db, team_id, for_update=True)
        if not TeamService.can_manage(actor, team_id, team):
            raise ForbiddenException("Only admins and the team leader can change team settings.")

        if data.shift_pattern is not None:
            require_valid_pattern(data.shift_pattern)

        current = TeamService.policy_of(team)
        merged = current.model_dump()
        merged.update(
            data.model_dump(exclude_unset=True, exclude_none=True, exclude={"concurrent_leave"}),
        )
        if data.concurrent_leave is not None:
            merged["concurrent_leave"].update(
                data.concurrent_leave.model_dump(exclude_unset=True, exclude_none=True),
            )
        # Re-validate so the bounds hold on the merged result
        updated = TeamLeavePolicy.model_validate(merged)

        team.settings = updated.model_dump(mode="json")
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="team_settings",
            entity_id=team.id,
            actor_id=actor.id,
            old_values=current.model_dump(mode="json"),
            new_values=team.settings,
        )
        logger.info("Team %s settings updated by %s", team.id, actor.id)

        await db.refresh(team)
        return TeamService._build_settings_response(team)
