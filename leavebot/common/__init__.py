"""Common module — shared utilities for LeaveBot."""

from leavebot.common.audit import AuditTrail, create_audit_entry
from leavebot.common.constants import (
    REVIEW_STATUSES,
    LeaveStatus,
    ShiftKind,
    ShiftTimeType,
    UserRole,
)
from leavebot.common.exceptions import (
    AppException,
    ConcurrentLimitException,
    ForbiddenException,
    InvalidDateRange,
    InvalidOverrideCredentialException,
    InvalidPatternConfig,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "LeaveStatus",
    "ShiftKind",
    "ShiftTimeType",
    "UserRole",
    "REVIEW_STATUSES",
    # Exceptions
    "AppException",
    "ConcurrentLimitException",
    "ForbiddenException",
    "InvalidDateRange",
    "InvalidOverrideCredentialException",
    "InvalidPatternConfig",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
]
