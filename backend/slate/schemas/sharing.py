from datetime import datetime

from pydantic import BaseModel, ConfigDict

from slate.domain.types import AccessLevel
from slate.schemas.presentation import OwnerInfo, PresentationInfo


class ShareRequest(BaseModel):
    email: str
    access_level: str = AccessLevel.READ.value


class RevokeRequest(BaseModel):
    user_id: str


class VisibilityRequest(BaseModel):
    is_public: bool


class GranteeInfo(BaseModel):
    id: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class GrantInfo(BaseModel):
    id: str
    presentation_id: str
    access_level: AccessLevel
    granted_by_user_id: str
    created_at: datetime | None
    updated_at: datetime | None
    user: GranteeInfo | None = None


class ShareResponse(BaseModel):
    message: str
    created: bool
    share: GrantInfo


class GrantListResponse(BaseModel):
    shares: list[GrantInfo]


class SharedPresentationInfo(BaseModel):
    presentation: PresentationInfo
    owner: OwnerInfo | None
    access_level: AccessLevel
    shared_at: datetime | None


class SharedWithMeResponse(BaseModel):
    presentations: list[SharedPresentationInfo]
    total: int
    skip: int
    limit: int
