"""Identity payload and authentication schemas.

IdentityPayload is a discriminated union on `type`: the decoded claims of a
bearer token. Only `id` and `type` are carried; callers must not infer
anything else about the subject from it.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter

from community_platform.models.enums import IdentityType

# ── Token claims ─────────────────────────────────────────────────────


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: uuid.UUID


class GuestPayload(_Payload):
    type: Literal["guest"] = "guest"


class MemberPayload(_Payload):
    type: Literal["member"] = "member"


class AdminPayload(_Payload):
    type: Literal["admin"] = "admin"


class AdminUserPayload(_Payload):
    type: Literal["adminUser"] = "adminUser"


IdentityPayload = Annotated[
    Union[GuestPayload, MemberPayload, AdminPayload, AdminUserPayload],
    Field(discriminator="type"),
]

identity_payload_adapter: TypeAdapter[IdentityPayload] = TypeAdapter(IdentityPayload)

_PAYLOAD_CLASSES: dict[IdentityType, type[_Payload]] = {
    IdentityType.GUEST: GuestPayload,
    IdentityType.MEMBER: MemberPayload,
    IdentityType.ADMIN: AdminPayload,
    IdentityType.ADMIN_USER: AdminUserPayload,
}


def payload_for(role: IdentityType, subject_id: uuid.UUID) -> IdentityPayload:
    """Build the payload variant for a role."""
    return _PAYLOAD_CLASSES[role](id=subject_id)  # type: ignore[return-value]


# ── Tokens ───────────────────────────────────────────────────────────


class AuthorizationToken(BaseModel):
    """Access/refresh token pair returned on join, login, and refresh."""

    access: str
    refresh: str
    expired_at: datetime
    refreshable_until: datetime


# ── Requests ─────────────────────────────────────────────────────────


class JoinRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    display_name: str | None = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    device_fingerprint: str | None = Field(default=None, max_length=255)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


# ── Responses ────────────────────────────────────────────────────────


class GuestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    guest_identifier: str
    created_at: datetime
    deleted_at: datetime | None = None


class AccountRead(BaseModel):
    """Sanitized member/admin/admin-user entity — never includes the hash."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    display_name: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class Authorized(BaseModel):
    """Result of a successful join/login/refresh."""

    type: IdentityType
    token: AuthorizationToken
    guest: GuestRead | None = None
    account: AccountRead | None = None
