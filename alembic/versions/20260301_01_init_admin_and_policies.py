"""create administrators and policy_documents

Revision ID: 20260301_01_init
Revises:
Create Date: 2026-03-01 10:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20260301_01_init"
down_revision = None
branch_labels = None
depends_on = None

ADMIN_ROLES = ("super_admin", "admin", "editor")
POLICY_TYPES = (
    "terms_conditions",
    "privacy_policy",
    "client_policy",
    "refund_policy",
    "shipping_policy",
    "cancellation_policy",
)
POLICY_STATUSES = ("draft", "published", "archived")


def _enum(values: tuple[str, ...], name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "administrators",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", _enum(ADMIN_ROLES, "admin_role"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_administrators_email", "administrators", ["email"], unique=True)

    op.create_table(
        "policy_documents",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("type", _enum(POLICY_TYPES, "policy_type"), nullable=False),
        sa.Column("status", _enum(POLICY_STATUSES, "policy_status"), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False),
        sa.Column("meta_title", sa.String(length=150), nullable=True),
        sa.Column("meta_description", sa.String(length=300), nullable=True),
        sa.Column("keywords", sa.JSON, nullable=False),
        sa.Column(
            "last_updated_by_id",
            sa.Integer,
            sa.ForeignKey("administrators.id"),
            nullable=True,
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_policy_documents_slug", "policy_documents", ["slug"])
    op.create_index("ix_policy_documents_type", "policy_documents", ["type"])
    op.create_index("ix_policy_documents_status", "policy_documents", ["status"])
    op.create_index("ix_policy_documents_is_active", "policy_documents", ["is_active"])
    op.create_index("ix_policy_documents_created_at", "policy_documents", ["created_at"])
    op.create_index("ix_policy_documents_updated_at", "policy_documents", ["updated_at"])
    # Slug is unique among active documents only
    op.create_index(
        "uq_policy_documents_active_slug",
        "policy_documents",
        ["slug"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )


def downgrade() -> None:
    op.drop_index("uq_policy_documents_active_slug", table_name="policy_documents")
    op.drop_index("ix_policy_documents_updated_at", table_name="policy_documents")
    op.drop_index("ix_policy_documents_created_at", table_name="policy_documents")
    op.drop_index("ix_policy_documents_is_active", table_name="policy_documents")
    op.drop_index("ix_policy_documents_status", table_name="policy_documents")
    op.drop_index("ix_policy_documents_type", table_name="policy_documents")
    op.drop_index("ix_policy_documents_slug", table_name="policy_documents")
    op.drop_table("policy_documents")
    op.drop_index("ix_administrators_email", table_name="administrators")
    op.drop_table("administrators")
