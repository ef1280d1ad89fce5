"""Signed token issue and verification (HS256 JWT via PyJWT).

This is the only place signature and expiry logic lives. It performs no
database access and no role-specific checks — the authorizers build on it.

Usage:
    from community_platform.auth.tokens import token_codec

    tokens = token_codec.issue(MemberPayload(id=member.id))
    payload = token_codec.verify(tokens.access)
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import ValidationError

from community_platform.config import settings
from community_platform.errors import InvalidCredential
from community_platform.models.enums import TokenType
from community_platform.schemas.identity import (
    AuthorizationToken,
    IdentityPayload,
    identity_payload_adapter,
)

logger = logging.getLogger(__name__)


class TokenCodec:
    """Issues and verifies access/refresh token pairs."""

    def __init__(
        self,
        secret: str,
        issuer: str,
        algorithm: str = "HS256",
        access_ttl: int = 3600,
        refresh_ttl: int = 604800,
    ) -> None:
        if not secret:
            msg = "Token signing secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self._issuer = issuer
        self._algorithm = algorithm
        self.access_ttl = timedelta(seconds=access_ttl)
        self.refresh_ttl = timedelta(seconds=refresh_ttl)

    def _encode(self, payload: IdentityPayload, token_type: TokenType, now: datetime, ttl: timedelta) -> str:
        # refresh digests are unique, so pairs issued in the same second must still differ
        claims = {
            "id": str(payload.id),
            "type": payload.type,
            "token_type": token_type.value,
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def issue(self, payload: IdentityPayload, now: datetime | None = None) -> AuthorizationToken:
        """Sign a fresh access/refresh pair for the given identity."""
        now = now or datetime.now(UTC)
        return AuthorizationToken(
            access=self._encode(payload, TokenType.ACCESS, now, self.access_ttl),
            refresh=self._encode(payload, TokenType.REFRESH, now, self.refresh_ttl),
            expired_at=now + self.access_ttl,
            refreshable_until=now + self.refresh_ttl,
        )

    def verify(self, token: str, token_type: TokenType = TokenType.ACCESS) -> IdentityPayload:
        """Verify signature, issuer and expiry, then decode the identity claims.

        Raises:
            InvalidCredential: on any verification or decoding failure.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "iss"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidCredential("Token expired") from exc
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            raise InvalidCredential() from exc

        if claims.get("token_type") != token_type.value:
            raise InvalidCredential()

        try:
            return identity_payload_adapter.validate_python(claims)
        except ValidationError as exc:
            raise InvalidCredential() from exc


# Module-level singleton
token_codec = TokenCodec(
    secret=settings.security.jwt_secret,
    issuer=settings.security.jwt_issuer,
    algorithm=settings.security.jwt_algorithm,
    access_ttl=settings.security.access_token_ttl_seconds,
    refresh_ttl=settings.security.refresh_token_ttl_seconds,
)
