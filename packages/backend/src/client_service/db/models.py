"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror what is declared here.

Key concepts:
- UUID primary keys generated client-side, so an upsert can carry its id
- Tenant isolation is structural: every external reference is unique
  per (app_id, external_id), never globally
- JSON metadata becomes JSONB on PostgreSQL
- created_at/updated_at are set by the application with microsecond
  precision, so "created_at == updated_at" is a sound fallback signal
  for "just inserted" on stores without an insert flag
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere.
JSONType = JSON().with_variant(JSONB(), "postgresql")

DEFAULT_ANONYMOUS_ORG_NAME = "Personal"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


# ══════════════════════════════════════════════════════════════
# Resolved identities (tenant apps and provider mode)
# ══════════════════════════════════════════════════════════════


class Organization(TimestampMixin, Base):
    """An organization as known to one tenant application.

    Learn: Rows are created lazily by the resolver the first time a
    tenant mentions an external org id. A later resolve for the same
    (app_id, external_id) finds the same row through the unique key.
    """

    __tablename__ = "orgs"
    __table_args__ = (
        UniqueConstraint("app_id", "external_id", name="uq_orgs_app_external"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    app_id: Mapped[str] = mapped_column(Text, nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    users: Mapped[list["User"]] = relationship(back_populates="organization")


class User(TimestampMixin, Base):
    """A user as known to one tenant application.

    org_id is a back-reference: the org is looked up (or resolved), never
    owned by the user.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("app_id", "external_id", name="uq_users_app_external"),
        Index("ix_users_app_org", "app_id", "org_id"),
        Index("ix_users_app_email", "app_id", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    app_id: Mapped[str] = mapped_column(Text, nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    org_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("orgs.id"), nullable=True
    )
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="users"
    )


# ══════════════════════════════════════════════════════════════
# Anonymous self-registration (keyed by email, no external id)
# ══════════════════════════════════════════════════════════════


class AnonymousOrg(TimestampMixin, Base):
    """Org auto-created for self-registered users ("Personal" by default)."""

    __tablename__ = "anonymous_orgs"
    __table_args__ = (Index("ix_anonymous_orgs_app", "app_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    app_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_ANONYMOUS_ORG_NAME
    )
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)


class AnonymousUser(TimestampMixin, Base):
    """A user registered directly by tenant + email."""

    __tablename__ = "anonymous_users"
    __table_args__ = (
        UniqueConstraint("app_id", "email", name="uq_anonymous_users_app_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    app_id: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    org_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("anonymous_orgs.id"), nullable=True
    )
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
