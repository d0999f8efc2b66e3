from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from slate.domain.types import AccessLevel, LinkState, ShareLinkRecord
from slate.schemas.presentation import OwnerInfo


class ShareLinkCreate(BaseModel):
    access_level: str = AccessLevel.READ.value
    password: str | None = None
    expires_at: datetime | None = None
    expires_in_days: int | None = None
    max_views: int | None = None


class ShareLinkUpdate(BaseModel):
    access_level: str | None = None
    password: str | None = None
    expires_at: datetime | None = None
    max_views: int | None = None
    is_active: bool | None = None


class ShareLinkAccessRequest(BaseModel):
    password: str | None = None


class ShareLinkInfo(BaseModel):
    """Owner view of a link. The password hash never leaves the server."""

    id: str
    presentation_id: str
    token: str
    url: str
    access_level: AccessLevel
    has_password: bool
    expires_at: datetime | None
    max_views: int | None
    view_count: int
    is_active: bool
    state: LinkState
    created_at: datetime | None

    @classmethod
    def from_record(cls, link: ShareLinkRecord, state: LinkState, url: str) -> "ShareLinkInfo":
        data = link.public_dict()
        return cls(**{k: data[k] for k in cls.model_fields if k in data}, state=state, url=url)


class ShareLinkListResponse(BaseModel):
    links: list[ShareLinkInfo]


class ShareLinkValidation(BaseModel):
    valid: bool
    state: LinkState
    requires_password: bool
    access_level: AccessLevel
    expires_at: datetime | None


class SharedPresentationView(BaseModel):
    id: str
    title: str
    description: str | None
    editor_data: Any = None
    excalidraw_data: Any = None
    owner: OwnerInfo | None = None


class ShareLinkAccessResponse(BaseModel):
    presentation: SharedPresentationView
    access_level: AccessLevel
    views_remaining: int | None


class ShareLinkAnalyticsResponse(BaseModel):
    link_id: str
    total_views: int
    max_views: int | None
    remaining_views: int | None
    expires_at: datetime | None
    is_expired: bool
    is_active: bool
    state: LinkState
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
