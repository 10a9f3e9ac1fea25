"""Capacity override — an approver re-enters their password to force approval.

The password is checked by the auth layer's verifier (one-way hash compare);
this module never hashes, stores or logs it. A successful decision lets the
caller approve the one leave that hit the limit, skipping the capacity check
for that single decision.
"""

from __future__ import annotations

import enum
import logging
import uuid
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CredentialVerifier = Callable[[uuid.UUID, str], Awaitable[bool]]


class OverrideFailure(str, enum.Enum):
    invalid_credential = "invalid_credential"


class OverrideDecision(BaseModel):
    """Outcome of an override attempt. Never mentions who is on leave."""

    authorized: bool
    reason: Optional[OverrideFailure] = None


OVERRIDE_GRANTED = OverrideDecision(authorized=True)
OVERRIDE_DENIED = OverrideDecision(
    authorized=False, reason=OverrideFailure.invalid_credential,
)


async def authorize_override(
    approver_id: uuid.UUID,
    supplied_credential: Optional[str],
    verify: CredentialVerifier,
) -> OverrideDecision:
    """Check the approver's re-entered password with ``verify``.

    An empty password is refused without calling the verifier.
    """
    if not supplied_credential:
        logger.warning("Override attempt without a password by approver %s", approver_id)
        return OVERRIDE_DENIED

    if not await verify(approver_id, supplied_credential):
        logger.warning("Override password rejected for approver %s", approver_id)
        return OVERRIDE_DENIED

    logger.info("Override authorised for approver %s", approver_id)
    return OVERRIDE_GRANTED
