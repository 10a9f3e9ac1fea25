"""Users router — shift pattern and shift time settings."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavebot.auth.dependencies import get_current_user
from leavebot.database import get_db
from leavebot.users.models import User
from leavebot.users.schemas import UserSettingsOut, UserSettingsUpdate
from leavebot.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


@router.get("/{user_id}/settings", response_model=UserSettingsOut)
async def get_user_settings(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_settings(db, user_id, user)


@router.put("/{user_id}/settings", response_model=UserSettingsOut)
async def update_user_settings(
    user_id: uuid.UUID,
    body: UserSettingsUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Save a shift pattern; rotation and custom patterns need a reference date."""
    return await UserService.update_settings(db, user_id, user, body)
