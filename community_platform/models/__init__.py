"""SQLAlchemy ORM models for the community platform.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from community_platform.models.audit import AuditLog, ModerationLog
from community_platform.models.base import Base
from community_platform.models.category import Category
from community_platform.models.enums import (
    AuditEventType,
    AuditResult,
    DeletionPolicy,
    IdentityType,
    ReportStatus,
    TokenType,
)
from community_platform.models.identity import IDENTITY_MODELS, Admin, AdminUser, Guest, Member
from community_platform.models.report import CommentReport, PostReport
from community_platform.models.session import Session

__all__ = [
    # Base
    "Base",
    # Models
    "Guest",
    "Member",
    "Admin",
    "AdminUser",
    "Session",
    "AuditLog",
    "ModerationLog",
    "Category",
    "PostReport",
    "CommentReport",
    "IDENTITY_MODELS",
    # Enums
    "IdentityType",
    "TokenType",
    "DeletionPolicy",
    "AuditResult",
    "AuditEventType",
    "ReportStatus",
]
