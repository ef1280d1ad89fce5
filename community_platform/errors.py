"""Domain error taxonomy.

Services raise these; the API layer maps each to a stable HTTP status and
code. Messages never reveal whether a given identity or resource exists
beyond what the error class itself says.
"""

from __future__ import annotations


class CommunityPlatformError(Exception):
    """Base class — every subclass is terminal for the current request."""

    status_code: int = 500
    code: str = "internal_error"
    default_detail: str = "Internal error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class InvalidCredential(CommunityPlatformError):
    """Token missing, malformed, unverifiable, or expired (or a failed login)."""

    status_code = 401
    code = "invalid_credential"
    default_detail = "Invalid or expired credential"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class RoleMismatch(CommunityPlatformError):
    """Valid token whose role discriminator does not match the endpoint."""

    status_code = 403
    code = "role_mismatch"

    def __init__(self, actual: str) -> None:
        self.actual = actual
        super().__init__(f"Forbidden: token of type '{actual}' cannot access this endpoint")


class NotEnrolled(CommunityPlatformError):
    """Token subject has no live backing record (missing, deleted, or inactive)."""

    status_code = 403
    code = "not_enrolled"
    default_detail = "You're not enrolled"


class NotFound(CommunityPlatformError):
    """Target absent or already soft-deleted."""

    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class Mismatch(CommunityPlatformError):
    """Target exists but does not belong to the stated parent."""

    status_code = 400
    code = "mismatch"
    default_detail = "Resource does not belong to the specified parent"


class AlreadyExists(CommunityPlatformError):
    """Uniqueness violation on creation or update."""

    status_code = 409
    code = "already_exists"
    default_detail = "Resource already exists"


class TooManyAttempts(CommunityPlatformError):
    """Login throttled for this account key."""

    status_code = 429
    code = "too_many_attempts"
    default_detail = "Too many login attempts, try again later"

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__()

    @property
    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after)}
