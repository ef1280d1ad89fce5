"""Initial schema — identities, sessions, audit, categories, reports.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None

_LIVE = sa.text("deleted_at IS NULL")


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _deleted_at() -> sa.Column:
    return sa.Column("deleted_at", sa.DateTime(timezone=True))


def _account_columns() -> list[sa.Column]:
    return [
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(100)),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    ]


def upgrade() -> None:
    # ── Identities ─────────────────────────────────────────────────────

    op.create_table(
        "guests",
        sa.Column("guest_identifier", sa.String(64), nullable=False),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.String(500)),
        _id(),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("guest_identifier"),
    )
    op.create_index("ix_guests_deleted_at", "guests", ["deleted_at"])

    for table in ("members", "admins", "admin_users"):
        extra = [sa.Column("is_super_admin", sa.Boolean(), nullable=False)] if table == "admins" else []
        op.create_table(
            table,
            *_account_columns(),
            *extra,
            _id(),
            _created_at(),
            _updated_at(),
            _deleted_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])

    # ── Sessions ───────────────────────────────────────────────────────

    op.create_table(
        "sessions",
        sa.Column("owner_type", sa.String(20), nullable=False, comment="IdentityType value"),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("refresh_token_digest", sa.String(64), nullable=False),
        sa.Column("device_fingerprint", sa.String(255)),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _id(),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("refresh_token_digest"),
    )
    op.create_index("ix_sessions_owner", "sessions", ["owner_type", "owner_id"])
    op.create_index("ix_sessions_deleted_at", "sessions", ["deleted_at"])

    # ── Audit trail (append-only) ──────────────────────────────────────

    op.create_table(
        "audit_logs",
        sa.Column("admin_id", postgresql.UUID(as_uuid=True)),
        sa.Column("member_id", postgresql.UUID(as_uuid=True)),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False, comment="Table/model name"),
        sa.Column("entity_id", sa.String(100), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("result", sa.String(20), nullable=False, comment="success or failure"),
        _id(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_admin_id", "audit_logs", ["admin_id"])
    op.create_index("ix_audit_logs_member_id", "audit_logs", ["member_id"])
    op.create_index("ix_audit_logs_event_type", "audit_logs", ["event_type"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])

    op.create_table(
        "moderation_logs",
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("reason", sa.String(1000)),
        _id(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_moderation_logs_post_id", "moderation_logs", ["post_id"])
    op.create_index("ix_moderation_logs_admin_id", "moderation_logs", ["admin_id"])

    # ── Categories ─────────────────────────────────────────────────────

    op.create_table(
        "categories",
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000)),
        _id(),
        _created_at(),
        _updated_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categories_deleted_at", "categories", ["deleted_at"])
    # Unique among live rows only — a deleted code/name may be reused
    op.create_index("uq_categories_code_live", "categories", ["code"], unique=True, postgresql_where=_LIVE)
    op.create_index("uq_categories_name_live", "categories", ["name"], unique=True, postgresql_where=_LIVE)

    # ── Reports ────────────────────────────────────────────────────────

    op.create_table(
        "post_reports",
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reported_by_member_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True)),
        sa.Column("report_type", sa.String(50), nullable=False),
        sa.Column("reason", sa.String(1000), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("resolution_notes", sa.String(1000)),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        _id(),
        _created_at(),
        _updated_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_reports_post_id", "post_reports", ["post_id"])
    op.create_index("ix_post_reports_deleted_at", "post_reports", ["deleted_at"])
    op.create_index(
        "uq_post_reports_post_member_live",
        "post_reports",
        ["post_id", "reported_by_member_id"],
        unique=True,
        postgresql_where=_LIVE,
    )

    op.create_table(
        "comment_reports",
        sa.Column("comment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reporter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True)),
        sa.Column("report_reason", sa.String(1000), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("resolution", sa.String(1000)),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        _id(),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("comment_id", "reporter_id", name="uq_comment_reports_comment_reporter"),
    )
    op.create_index("ix_comment_reports_comment_id", "comment_reports", ["comment_id"])


def downgrade() -> None:
    op.drop_table("comment_reports")
    op.drop_table("post_reports")
    op.drop_table("categories")
    op.drop_table("moderation_logs")
    op.drop_table("audit_logs")
    op.drop_table("sessions")
    op.drop_table("admin_users")
    op.drop_table("admins")
    op.drop_table("members")
    op.drop_table("guests")
