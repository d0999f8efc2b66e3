from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from slate.domain.types import AccessLevel, MatchedLevel


class PresentationCreate(BaseModel):
    title: str
    description: str | None = None


class PresentationUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    editor_data: Any = None
    excalidraw_data: Any = None
    is_public: bool | None = None
    default_share_access: str | None = None


class OwnerInfo(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class PresentationInfo(BaseModel):
    id: str
    title: str
    description: str | None
    owner_id: str
    is_public: bool
    default_share_access: AccessLevel
    created_at: datetime | None
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class PresentationDetail(PresentationInfo):
    editor_data: Any = None
    excalidraw_data: Any = None
    access: MatchedLevel | None = None


class PresentationListResponse(BaseModel):
    presentations: list[PresentationInfo]
    total: int
    skip: int
    limit: int


class PublicPresentation(PresentationInfo):
    owner: OwnerInfo | None = None


class PublicPresentationListResponse(BaseModel):
    presentations: list[PublicPresentation]
    total: int
    skip: int
    limit: int
