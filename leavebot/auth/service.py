"""Auth service — password hashing, credential verification, JWT helpers.

Login and session handling live outside this service; the leave engine only
needs to verify an approver's password again for capacity overrides, and
the API needs to read bearer tokens.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from leavebot.common.constants import UserRole
from leavebot.common.exceptions import UnauthorizedException
from leavebot.config import settings
from leavebot.leave.override import CredentialVerifier
from leavebot.users.models import User


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return bool(password_hash) and check_password_hash(password_hash, password)


async def verify_user_credential(
    db: AsyncSession,
    user_id: uuid.UUID,
    password: str,
) -> bool:
    """True if ``password`` matches the stored hash of user ``user_id``."""
    result = await db.execute(select(User.password_hash).where(User.id == user_id))
    password_hash = result.scalar()
    if password_hash is None:
        return False
    return verify_password(password_hash, password)


def make_credential_verifier(db: AsyncSession) -> CredentialVerifier:
    """Bind ``verify_user_credential`` to a session for the override check."""

    async def _verify(user_id: uuid.UUID, password: str) -> bool:
        return await verify_user_credential(db, user_id, password)

    return _verify


# ── JWT helpers ─────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.user,
    *,
    expires_in_hours: int | None = None,
) -> str:
    hours = settings.JWT_EXPIRY_HOURS if expires_in_hours is None else expires_in_hours
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token or raise 401."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise UnauthorizedException("Invalid or expired token.")

    if payload.get("type") != "access" or "sub" not in payload:
        raise UnauthorizedException("Invalid token type.")
    return payload
