"""Teams router — leave policy settings per team."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.auth.dependencies import get_current_user, require_role
from leavebot.common.constants import UserRole
from leavebot.database import get_db
from leavebot.teams.schemas import TeamSettingsOut, TeamSettingsUpdate
from leavebot.teams.service import TeamService
from leavebot.users.models import User

router = APIRouter(prefix="", tags=["teams"])


# ── GET /{team_id}/settings ─────────────────────────────────────────

@router.get("/{team_id}/settings", response_model=TeamSettingsOut)
async def get_team_settings(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave policy of a team. Members, its leader and admins may read it."""
    return await TeamService.get_settings(db, team_id, user)


# ── PUT /{team_id}/settings ─────────────────────────────────────────

@router.put("/{team_id}/settings", response_model=TeamSettingsOut)
async def update_team_settings(
    team_id: uuid.UUID,
    body: TeamSettingsUpdate,
    user: User = Depends(require_role(UserRole.admin, UserRole.leader)),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a team's leave policy."""
    return await TeamService.update_settings(db, team_id, user, body)
