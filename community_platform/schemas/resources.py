"""Request/response schemas for sessions, categories, reports, and audit logs.

All datetimes serialize as ISO-8601 strings.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from community_platform.models.enums import AuditResult, IdentityType

T = TypeVar("T")


class Pagination(BaseModel):
    current: int
    limit: int
    records: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(current=page, limit=limit, records=total, pages=(total + limit - 1) // limit)


class Page(BaseModel, Generic[T]):
    pagination: Pagination
    data: list[T]


# ── Sessions ─────────────────────────────────────────────────────────


class SessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_type: str
    owner_id: uuid.UUID
    device_fingerprint: str | None = None
    expires_at: datetime
    created_at: datetime
    deleted_at: datetime | None = None


class SessionSearch(BaseModel):
    """Filters for session listing. Revoked sessions are never listed.

    `owner_type` and `owner_id` are honoured for admins and admin users only;
    members always see their own sessions.
    """

    active_only: bool = False
    expired_only: bool = False
    device_fingerprint: str | None = None
    search: str | None = Field(default=None, max_length=255, description="Substring of the device fingerprint")
    created_at_from: datetime | None = None
    created_at_to: datetime | None = None
    owner_type: IdentityType | None = None
    owner_id: uuid.UUID | None = None
    page: int | None = None
    limit: int | None = None


# ── Categories ───────────────────────────────────────────────────────


class CategoryCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)


class CategoryUpdate(BaseModel):
    """Partial update. `name` may be omitted but not nulled; `description` may be cleared."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: str | None) -> str:
        if v is None:
            msg = "name cannot be null"
            raise ValueError(msg)
        return v


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


# ── Reports ──────────────────────────────────────────────────────────


class PostReportCreate(BaseModel):
    report_type: str = Field(min_length=1, max_length=50)
    reason: str = Field(min_length=1, max_length=1000)


class PostReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    reported_by_member_id: uuid.UUID
    admin_id: uuid.UUID | None = None
    report_type: str
    reason: str
    status: str
    resolution_notes: str | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None
    deleted_at: datetime | None = None


class CommentReportCreate(BaseModel):
    report_reason: str = Field(min_length=1, max_length=1000)


class CommentReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    comment_id: uuid.UUID
    reporter_id: uuid.UUID
    admin_id: uuid.UUID | None = None
    report_reason: str
    status: str
    resolution: str | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None


# ── Audit ────────────────────────────────────────────────────────────


class AuditLogCreate(BaseModel):
    """An audit entry to append. The four classification fields are required."""

    admin_id: uuid.UUID | None = None
    member_id: uuid.UUID | None = None
    event_type: str = Field(min_length=1, max_length=100)
    entity_type: str = Field(min_length=1, max_length=50)
    entity_id: str = Field(min_length=1, max_length=100)
    metadata_json: dict[str, Any] | None = None
    result: AuditResult

    @field_validator("entity_id", mode="before")
    @classmethod
    def stringify_entity_id(cls, v: Any) -> Any:
        if isinstance(v, uuid.UUID):
            return str(v)
        return v


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    admin_id: uuid.UUID | None = None
    member_id: uuid.UUID | None = None
    event_type: str
    entity_type: str
    entity_id: str
    metadata_json: dict[str, Any] | None = None
    result: str
    created_at: datetime


class AuditLogSearch(BaseModel):
    """Filters for the audit search. Out-of-range paging falls back to defaults."""

    event_type: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    result: AuditResult | None = None
    created_at_from: datetime | None = None
    created_at_to: datetime | None = None
    page: int | None = None
    limit: int | None = None


class ModerationLogCreate(BaseModel):
    action: str = Field(min_length=1, max_length=50)
    reason: str | None = Field(default=None, max_length=1000)


class ModerationLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    admin_id: uuid.UUID
    action: str
    reason: str | None = None
    created_at: datetime


class ModerationLogSearch(BaseModel):
    page: int | None = None
    limit: int | None = None
