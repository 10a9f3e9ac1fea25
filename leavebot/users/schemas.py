"""User settings Pydantic v2 schemas — shift pattern and shift time."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel

from leavebot.shifts.patterns import ShiftPatternConfig, ShiftTime


class UserSettingsOut(BaseModel):
    user_id: uuid.UUID
    shift_pattern: Optional[ShiftPatternConfig] = None
    shift_time: ShiftTime


class UserSettingsUpdate(BaseModel):
    """Replace the pattern and/or shift time; omitted fields are kept."""

    shift_pattern: Optional[ShiftPatternConfig] = None
    shift_time: Optional[ShiftTime] = None
