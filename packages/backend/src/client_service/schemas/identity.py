"""Pydantic schemas for resolve and user listing.

Learn: Request bodies are validated here; the resolver only checks the
three key fields again because it can be called without HTTP.

Profile fields are tri-state. A field the caller left out is "unset"
and never touches the stored value; an explicit null clears it. Routes
hand services `model_dump(exclude_unset=True)` so the distinction
survives.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from client_service.schemas.common import CamelModel, Email, ImageUrl, PageMeta

PROFILE_FIELDS = ("email", "first_name", "last_name", "image_url", "phone")


# ─── Resolve ─────────────────────────────────────────────


class ResolveRequest(CamelModel):
    app_id: str = Field(..., min_length=1, max_length=255)
    external_org_id: str = Field(..., min_length=1, max_length=255)
    external_user_id: str = Field(..., min_length=1, max_length=255)
    email: Optional[Email] = None
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    image_url: Optional[ImageUrl] = Field(
        None, validation_alias=AliasChoices("imageUrl", "avatarUrl", "image_url")
    )
    phone: Optional[str] = Field(None, max_length=50)
    org_name: Optional[str] = Field(None, max_length=255)

    def profile(self) -> dict:
        """Only the profile fields the caller actually sent."""
        return self.model_dump(include=set(PROFILE_FIELDS), exclude_unset=True)


class ResolveResponse(CamelModel):
    org_id: uuid.UUID
    user_id: uuid.UUID
    org_created: bool
    user_created: bool


# ─── Users ───────────────────────────────────────────────


class UserRead(CamelModel):
    id: uuid.UUID
    external_id: Optional[str]
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    image_url: Optional[str]
    phone: Optional[str]
    org_id: Optional[uuid.UUID]
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime
    updated_at: datetime


class UserList(PageMeta):
    users: list[UserRead]


class UserEnvelope(CamelModel):
    user: UserRead


class OrgRead(CamelModel):
    id: uuid.UUID
    external_id: Optional[str]
    name: Optional[str]
    metadata: Optional[dict] = Field(None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime
    updated_at: datetime


# ─── Provider sync ───────────────────────────────────────


class OrgSyncResponse(CamelModel):
    org: OrgRead
    created: bool


class UserSyncResponse(CamelModel):
    user: UserRead
    created: bool
