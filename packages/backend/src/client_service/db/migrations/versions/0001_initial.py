"""Initial schema: orgs, users, anonymous_orgs, anonymous_users

The composite unique keys are what the upserts arbitrate on:
(app_id, external_id) for resolved identities and (app_id, email) for
anonymous registrations.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # ─── Resolved identities ─────────────────────────────
    op.create_table(
        "orgs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Text(), nullable=False),
        sa.Column("external_id", sa.Text(), nullable=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("app_id", "external_id", name="uq_orgs_app_external"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Text(), nullable=False),
        sa.Column("external_id", sa.Text(), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("org_id", sa.Uuid(), sa.ForeignKey("orgs.id"), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("app_id", "external_id", name="uq_users_app_external"),
    )
    op.create_index("ix_users_app_org", "users", ["app_id", "org_id"])
    op.create_index("ix_users_app_email", "users", ["app_id", "email"])

    # ─── Anonymous registration ──────────────────────────
    op.create_table(
        "anonymous_orgs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False, server_default="Personal"),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_anonymous_orgs_app", "anonymous_orgs", ["app_id"])

    op.create_table(
        "anonymous_users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Text(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column(
            "org_id", sa.Uuid(), sa.ForeignKey("anonymous_orgs.id"), nullable=True
        ),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("app_id", "email", name="uq_anonymous_users_app_email"),
    )


def downgrade() -> None:
    op.drop_table("anonymous_users")
    op.drop_index("ix_anonymous_orgs_app", table_name="anonymous_orgs")
    op.drop_table("anonymous_orgs")
    op.drop_index("ix_users_app_email", table_name="users")
    op.drop_index("ix_users_app_org", table_name="users")
    op.drop_table("users")
    op.drop_table("orgs")
