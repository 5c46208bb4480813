"""Pydantic schemas for anonymous (email-keyed) users and orgs.

Learn: The Update schemas are PATCH bodies — every field optional, and
only fields present in the JSON are applied (exclude_unset). Sending
`"imageUrl": null` clears the image; leaving imageUrl out keeps it.

Envelopes use the anonymousUser / anonymousUsers / anonymousOrg /
anonymousOrgs keys existing callers read.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from client_service.schemas.common import CamelModel, Email, ImageUrl, PageMeta

# ─── Users ───────────────────────────────────────────────


class AnonymousUserCreate(CamelModel):
    app_id: str = Field(..., min_length=1, max_length=255)
    email: Email
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    image_url: Optional[ImageUrl] = None
    phone: Optional[str] = Field(None, max_length=50)
    org_id: Optional[uuid.UUID] = None
    metadata: Optional[dict] = None

    def profile(self) -> dict:
        return self.model_dump(
            include={"first_name", "last_name", "image_url", "phone"},
            exclude_unset=True,
        )


class AnonymousUserUpdate(CamelModel):
    email: Optional[Email] = None
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    image_url: Optional[ImageUrl] = None
    phone: Optional[str] = Field(None, max_length=50)
    metadata: Optional[dict] = None

    @field_validator("email")
    @classmethod
    def email_not_null(cls, v):
        if v is None:
            raise ValueError("email cannot be null")
        return v

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)
        if "metadata" in changes:
            changes["meta"] = changes.pop("metadata")
        return changes


class AnonymousUserRead(CamelModel):
    id: uuid.UUID
    app_id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    image_url: Optional[str]
    phone: Optional[str]
    org_id: Optional[uuid.UUID]
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime
    updated_at: datetime


class AnonymousUserEnvelope(CamelModel):
    anonymous_user: AnonymousUserRead


class AnonymousUserList(PageMeta):
    anonymous_users: list[AnonymousUserRead]


# ─── Orgs ────────────────────────────────────────────────


class AnonymousOrgUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    metadata: Optional[dict] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("name cannot be null")
        return v

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)
        if "metadata" in changes:
            changes["meta"] = changes.pop("metadata")
        return changes


class AnonymousOrgRead(CamelModel):
    id: uuid.UUID
    app_id: str
    name: str
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime
    updated_at: datetime


class AnonymousOrgEnvelope(CamelModel):
    anonymous_org: AnonymousOrgRead


class AnonymousOrgList(PageMeta):
    anonymous_orgs: list[AnonymousOrgRead]


# ─── Registration ────────────────────────────────────────


class AnonymousRegistration(CamelModel):
    anonymous_user: AnonymousUserRead
    anonymous_org: Optional[AnonymousOrgRead]
    created: bool
