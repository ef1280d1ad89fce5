"""HTTP tests for the routers — authorization surface, status codes, and audit hooks.

Services are patched at the router module; authorization runs for real against
a mocked AsyncSession so role checks and liveness lookups are exercised.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from community_platform.api import audit, auth, categories, reports, sessions
from community_platform.api.errors import install_error_handlers
from community_platform.auth.tokens import token_codec
from community_platform.db.engine import get_session
from community_platform.errors import AlreadyExists, Mismatch, NotFound, TooManyAttempts
from community_platform.models.category import Category
from community_platform.models.enums import IdentityType
from community_platform.models.session import Session
from community_platform.schemas.identity import (
    AdminPayload,
    AdminUserPayload,
    Authorized,
    GuestPayload,
    GuestRead,
    MemberPayload,
)

# ── Helpers ──────────────────────────────────────────────────────────


def _bearer(payload) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_codec.issue(payload).access}"}


def _make_category(**overrides) -> Category:
    now = datetime.now(UTC)
    fields = {
        "id": uuid.uuid4(),
        "code": "general",
        "name": "General",
        "description": None,
        "created_at": now,
        "updated_at": now,
        "deleted_at": None,
    }
    fields.update(overrides)
    return Category(**fields)


def _make_session(owner) -> Session:
    return Session(
        id=uuid.uuid4(),
        owner_type=owner.type,
        owner_id=owner.id,
        refresh_token_digest="0" * 64,
        expires_at=datetime.now(UTC) + timedelta(days=7),
        created_at=datetime.now(UTC),
        deleted_at=None,
    )


@pytest.fixture
def mock_db():
    """Mocked AsyncSession; identity lookups find a live record by default."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = MagicMock()
    db = AsyncMock()
    db.execute = AsyncMock(return_value=result)
    return db


@pytest.fixture
def mock_audit():
    """Patch the audit writer in every router that writes entries."""
    writer = MagicMock()
    writer.append = AsyncMock()
    writer.append_detached = AsyncMock()
    with (
        patch("community_platform.api.sessions.audit_trail", writer),
        patch("community_platform.api.categories.audit_trail", writer),
        patch("community_platform.api.reports.audit_trail", writer),
    ):
        yield writer


@pytest.fixture
def client(mock_db, mock_audit):
    """Test app with all routers and the session dependency overridden."""
    test_app = FastAPI()
    install_error_handlers(test_app)
    for module in (auth, sessions, categories, reports, audit):
        test_app.include_router(module.router)

    async def fake_session():
        yield mock_db

    test_app.dependency_overrides[get_session] = fake_session
    return TestClient(test_app)


# ── Authorization surface ────────────────────────────────────────────


class TestAuthorization:
    def test_missing_token_401(self, client):
        resp = client.delete(f"/communityPlatform/admin/categories/{uuid.uuid4()}")

        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        assert resp.json()["code"] == "invalid_credential"

    def test_garbage_token_401(self, client):
        resp = client.delete(
            f"/communityPlatform/admin/categories/{uuid.uuid4()}",
            headers={"Authorization": "Bearer nonsense"},
        )

        assert resp.status_code == 401

    def test_member_token_on_admin_endpoint(self, client):
        resp = client.delete(
            f"/communityPlatform/admin/categories/{uuid.uuid4()}",
            headers=_bearer(MemberPayload(id=uuid.uuid4())),
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == "role_mismatch"
        assert "member" in resp.json()["detail"]

    def test_deleted_admin_not_enrolled(self, client, mock_db):
        mock_db.execute.return_value.scalar_one_or_none.return_value = None

        resp = client.delete(
            f"/communityPlatform/admin/categories/{uuid.uuid4()}",
            headers=_bearer(AdminPayload(id=uuid.uuid4())),
        )

        assert resp.status_code == 403
        assert resp.json() == {"code": "not_enrolled", "detail": "You're not enrolled"}


# ── Categories ───────────────────────────────────────────────────────


class TestCategories:
    def test_delete_then_delete_again(self, client, mock_audit):
        admin = AdminPayload(id=uuid.uuid4())
        category_id = uuid.uuid4()
        url = f"/communityPlatform/admin/categories/{category_id}"

        with patch("community_platform.api.categories.category_service") as service:
            service.delete = AsyncMock(side_effect=[None, NotFound("Category not found or already deleted")])
            first = client.delete(url, headers=_bearer(admin))
            second = client.delete(url, headers=_bearer(admin))

        assert first.status_code == 204
        assert second.status_code == 404
        assert second.json()["code"] == "not_found"
        mock_audit.append.assert_awaited_once()
        success = mock_audit.append.call_args[0][1]
        assert success.admin_id == admin.id
        assert success.result.value == "success"
        mock_audit.append_detached.assert_awaited_once()
        assert mock_audit.append_detached.call_args[0][0].result.value == "failure"

    def test_create(self, client, mock_audit):
        category = _make_category()

        with patch("community_platform.api.categories.category_service") as service:
            service.create = AsyncMock(return_value=category)
            resp = client.post(
                "/communityPlatform/admin/categories",
                json={"code": "general", "name": "General"},
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 201
        assert resp.json()["id"] == str(category.id)
        assert resp.json()["deleted_at"] is None
        mock_audit.append.assert_awaited_once()

    def test_create_duplicate(self, client, mock_audit):
        with patch("community_platform.api.categories.category_service") as service:
            service.create = AsyncMock(side_effect=AlreadyExists("Category code or name already exists"))
            resp = client.post(
                "/communityPlatform/admin/categories",
                json={"code": "general", "name": "General"},
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 409
        assert resp.json()["code"] == "already_exists"
        mock_audit.append_detached.assert_awaited_once()

    def test_admin_read_includes_deleted_on_request(self, client):
        category = _make_category(deleted_at=datetime.now(UTC))

        with patch("community_platform.api.categories.category_service") as service:
            service.get = AsyncMock(return_value=category)
            resp = client.get(
                f"/communityPlatform/admin/categories/{category.id}?include_deleted=true",
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 200
        assert resp.json()["deleted_at"] is not None
        assert service.get.call_args.kwargs["include_deleted"] is True

    def test_member_list(self, client):
        with patch("community_platform.api.categories.category_service") as service:
            service.list_active = AsyncMock(return_value=([_make_category()], 41))
            resp = client.get(
                "/communityPlatform/member/categories?limit=500",
                headers=_bearer(MemberPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"current": 1, "limit": 20, "records": 41, "pages": 3}
        assert len(body["data"]) == 1


# ── Sessions ─────────────────────────────────────────────────────────


class TestSessions:
    def test_member_revokes_own(self, client, mock_audit):
        member = MemberPayload(id=uuid.uuid4())
        session = _make_session(member)

        with patch("community_platform.api.sessions.session_manager") as manager:
            manager.invalidate = AsyncMock(return_value=session)
            resp = client.delete(f"/communityPlatform/member/sessions/{session.id}", headers=_bearer(member))

        assert resp.status_code == 204
        entry = mock_audit.append.call_args[0][1]
        assert entry.member_id == member.id
        assert entry.event_type == "session.revoked"

    def test_revoked_twice_404(self, client, mock_audit):
        member = MemberPayload(id=uuid.uuid4())

        with patch("community_platform.api.sessions.session_manager") as manager:
            manager.invalidate = AsyncMock(side_effect=NotFound("Session not found"))
            resp = client.delete(f"/communityPlatform/member/sessions/{uuid.uuid4()}", headers=_bearer(member))

        assert resp.status_code == 404
        mock_audit.append_detached.assert_awaited_once()

    def test_admin_user_revokes_any(self, client):
        admin_user = AdminUserPayload(id=uuid.uuid4())
        session = _make_session(MemberPayload(id=uuid.uuid4()))

        with patch("community_platform.api.sessions.session_manager") as manager:
            manager.invalidate = AsyncMock(return_value=session)
            resp = client.delete(
                f"/communityPlatform/adminUser/sessions/{session.id}", headers=_bearer(admin_user)
            )

        assert resp.status_code == 204
        assert manager.invalidate.call_args[0][2] == admin_user

    def test_member_search_passes_caller(self, client):
        member = MemberPayload(id=uuid.uuid4())
        own = _make_session(member)

        with patch("community_platform.api.sessions.session_manager") as manager:
            manager.search = AsyncMock(return_value=([own], 1, 1, 20))
            resp = client.patch(
                "/communityPlatform/member/sessions",
                json={"owner_id": str(uuid.uuid4()), "active_only": True},
                headers=_bearer(member),
            )

        assert resp.status_code == 200
        assert resp.json()["pagination"] == {"current": 1, "limit": 20, "records": 1, "pages": 1}
        assert resp.json()["data"][0]["owner_id"] == str(member.id)
        assert manager.search.call_args[0][1] == member

    def test_admin_user_search(self, client):
        admin_user = AdminUserPayload(id=uuid.uuid4())

        with patch("community_platform.api.sessions.session_manager") as manager:
            manager.search = AsyncMock(return_value=([], 0, 1, 20))
            resp = client.patch("/communityPlatform/adminUser/sessions", json={}, headers=_bearer(admin_user))

        assert resp.status_code == 200
        assert manager.search.call_args[0][1] == admin_user

    def test_guest_cannot_search(self, client):
        resp = client.patch(
            "/communityPlatform/member/sessions", json={}, headers=_bearer(GuestPayload(id=uuid.uuid4()))
        )

        assert resp.status_code == 403

    def test_guest_cannot_use_member_endpoint(self, client):
        resp = client.get(
            f"/communityPlatform/member/sessions/{uuid.uuid4()}",
            headers=_bearer(GuestPayload(id=uuid.uuid4())),
        )

        assert resp.status_code == 403
        assert "guest" in resp.json()["detail"]


# ── Reports & audit ──────────────────────────────────────────────────


class TestReports:
    def test_wrong_parent_400(self, client):
        with patch("community_platform.api.reports.report_service") as service:
            service.get_post_report = AsyncMock(
                side_effect=Mismatch("Post report does not belong to the specified parent")
            )
            resp = client.get(
                f"/communityPlatform/admin/posts/{uuid.uuid4()}/reports/{uuid.uuid4()}",
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 400
        assert resp.json()["code"] == "mismatch"

    def test_comment_report_delete_audited(self, client, mock_audit):
        with patch("community_platform.api.reports.report_service") as service:
            service.delete_comment_report = AsyncMock(return_value=None)
            resp = client.delete(
                f"/communityPlatform/admin/comments/{uuid.uuid4()}/reports/{uuid.uuid4()}",
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 204
        assert mock_audit.append.call_args[0][1].entity_type == "comment_report"


class TestAuditLogs:
    def test_search_paginates(self, client):
        with patch("community_platform.api.audit.audit_trail") as writer:
            writer.search = AsyncMock(return_value=([], 0, 1, 20))
            resp = client.patch(
                "/communityPlatform/admin/auditLogs",
                json={"event_type": "session.revoked"},
                headers=_bearer(AdminPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 200
        assert resp.json() == {"pagination": {"current": 1, "limit": 20, "records": 0, "pages": 0}, "data": []}

    def test_admin_user_searches(self, client):
        with patch("community_platform.api.audit.audit_trail") as writer:
            writer.search = AsyncMock(return_value=([], 0, 1, 20))
            resp = client.patch(
                "/communityPlatform/adminUser/auditLogs",
                json={},
                headers=_bearer(AdminUserPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 200
        writer.search.assert_awaited_once()

    def test_admin_user_reads_moderation_log_of_other_post(self, client):
        with patch("community_platform.api.audit.audit_trail") as writer:
            writer.get_moderation_log = AsyncMock(
                side_effect=Mismatch("Moderation log does not belong to the specified post")
            )
            resp = client.get(
                f"/communityPlatform/adminUser/posts/{uuid.uuid4()}/moderationLogs/{uuid.uuid4()}",
                headers=_bearer(AdminUserPayload(id=uuid.uuid4())),
            )

        assert resp.status_code == 400

    def test_admin_token_not_accepted_on_admin_user_path(self, client):
        resp = client.get(
            f"/communityPlatform/adminUser/auditLogs/{uuid.uuid4()}",
            headers=_bearer(AdminPayload(id=uuid.uuid4())),
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == "role_mismatch"

    def test_member_cannot_read(self, client):
        resp = client.get(
            f"/communityPlatform/admin/auditLogs/{uuid.uuid4()}",
            headers=_bearer(MemberPayload(id=uuid.uuid4())),
        )

        assert resp.status_code == 403


# ── Auth ─────────────────────────────────────────────────────────────


class TestAuthRoutes:
    def test_guest_join(self, client):
        guest_id = uuid.uuid4()
        authorized = Authorized(
            type=IdentityType.GUEST,
            token=token_codec.issue(GuestPayload(id=guest_id)),
            guest=GuestRead(id=guest_id, guest_identifier="abc", created_at=datetime.now(UTC)),
        )

        with patch("community_platform.api.auth.account_service") as service:
            service.join_guest = AsyncMock(return_value=authorized)
            resp = client.post("/auth/guest/join")

        assert resp.status_code == 201
        assert resp.json()["type"] == "guest"
        assert resp.json()["token"]["access"]

    def test_guest_has_no_login(self, client):
        resp = client.post("/auth/guest/login", json={"email": "a@example.com", "password": "x"})

        assert resp.status_code == 404

    def test_unknown_role(self, client):
        resp = client.post("/auth/superuser/login", json={"email": "a@example.com", "password": "x"})

        assert resp.status_code == 422

    def test_login_throttled(self, client):
        with patch("community_platform.api.auth.account_service") as service:
            service.login = AsyncMock(side_effect=TooManyAttempts(30))
            resp = client.post("/auth/member/login", json={"email": "a@example.com", "password": "x"})

        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "30"
