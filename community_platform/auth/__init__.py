"""Authentication & authorization — token codec, per-role authorizers, passwords."""

from community_platform.auth.authorizer import (
    AUTHORIZERS,
    RoleAuthorizer,
    authorize_as_admin,
    authorize_as_admin_user,
    authorize_as_guest,
    authorize_as_member,
)
from community_platform.auth.tokens import TokenCodec, token_codec

__all__ = [
    "AUTHORIZERS",
    "RoleAuthorizer",
    "TokenCodec",
    "authorize_as_admin",
    "authorize_as_admin_user",
    "authorize_as_guest",
    "authorize_as_member",
    "token_codec",
]
