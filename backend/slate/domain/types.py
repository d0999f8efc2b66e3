"""Value types exchanged between the storage gateway, the access core and the routes.

Records are immutable snapshots of stored rows. Nothing here loads related
rows on attribute access: a link knows its ``presentation_id``, and whoever
needs the presentation asks the gateway for it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class AccessLevel(str, enum.Enum):
    READ = "read"
    WRITE = "write"

    def satisfies(self, required: AccessLevel) -> bool:
        if self is AccessLevel.WRITE:
            return True
        return required is AccessLevel.READ

    @classmethod
    def parse(cls, value: Any) -> AccessLevel:
        from slate.domain.errors import ValidationError

        try:
            return cls(value)
        except ValueError:
            raise ValidationError('Access level must be either "read" or "write"') from None


class MatchedLevel(str, enum.Enum):
    OWNER = "owner"
    WRITE = "write"
    READ = "read"
    NONE = "none"


class LinkState(str, enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"
    VIEW_LIMIT_EXCEEDED = "view_limit_exceeded"


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str


@dataclass(frozen=True)
class PresentationRecord:
    id: str
    owner_id: str
    title: str
    description: str | None = None
    editor_data: Any = None
    excalidraw_data: Any = None
    is_public: bool = False
    default_share_access: AccessLevel = AccessLevel.READ
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class GrantRecord:
    id: str
    presentation_id: str
    grantee_user_id: str
    access_level: AccessLevel
    granted_by_user_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ShareLinkRecord:
    id: str
    presentation_id: str
    token: str
    access_level: AccessLevel
    created_by_user_id: str
    password_hash: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None
    max_views: int | None = None
    view_count: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def public_dict(self) -> dict:
        """Serializable view of the link; the password hash is never included."""
        return {
            "id": self.id,
            "presentation_id": self.presentation_id,
            "token": self.token,
            "access_level": self.access_level.value,
            "expires_at": self.expires_at,
            "max_views": self.max_views,
            "view_count": self.view_count,
            "created_by_user_id": self.created_by_user_id,
            "is_active": self.is_active,
            "has_password": self.has_password,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    matched_level: MatchedLevel


@dataclass(frozen=True)
class LinkValidation:
    state: LinkState
    link: ShareLinkRecord


@dataclass(frozen=True)
class LinkAccess:
    presentation: PresentationRecord
    owner: UserRecord | None
    access_level: AccessLevel
    link: ShareLinkRecord


@dataclass(frozen=True)
class LinkAnalytics:
    link_id: str
    total_views: int
    max_views: int | None
    remaining_views: int | None
    expires_at: datetime | None
    is_expired: bool
    is_active: bool
    state: LinkState
    created_at: datetime | None


@dataclass(frozen=True)
class GrantWithGrantee:
    grant: GrantRecord
    grantee: UserRecord | None


@dataclass(frozen=True)
class SharedPresentation:
    grant: GrantRecord
    presentation: PresentationRecord
    owner: UserRecord | None


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    skip: int
    limit: int


@dataclass(frozen=True)
class Mutation(Generic[T]):
    """Result of a write: the new value plus events for the notification dispatcher."""

    value: T
    events: tuple = ()
    created: bool = False
