"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization and plain VARCHAR storage.
"""

from __future__ import annotations

from enum import Enum


class IdentityType(str, Enum):
    """Role discriminator carried in every token — selects the identity table."""

    GUEST = "guest"
    MEMBER = "member"
    ADMIN = "admin"
    ADMIN_USER = "adminUser"

    @property
    def is_privileged(self) -> bool:
        return self in (IdentityType.ADMIN, IdentityType.ADMIN_USER)


class TokenType(str, Enum):
    """Which half of a token pair a JWT is."""

    ACCESS = "access"
    REFRESH = "refresh"


class DeletionPolicy(str, Enum):
    """How a resource family is deleted — declared per resource, never inferred."""

    SOFT = "soft"
    HARD = "hard"


class AuditResult(str, Enum):
    """Outcome recorded on an audit entry."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditEventType(str, Enum):
    """Privileged actions written to the audit trail."""

    CATEGORY_CREATED = "category.created"
    CATEGORY_UPDATED = "category.updated"
    CATEGORY_DELETED = "category.deleted"
    SESSION_REVOKED = "session.revoked"
    REPORT_DELETED = "report.deleted"
    MODERATION_RECORDED = "moderation.recorded"


class ReportStatus(str, Enum):
    """Lifecycle of a post or comment report."""

    OPEN = "open"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"
