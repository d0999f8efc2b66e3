"""Post-commit events emitted by successful share operations.

Events describe what happened; they never carry share tokens or passwords.
The core only returns them. Routes hand them to the notification dispatcher.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

from slate.utils.clock import utcnow


@dataclass(frozen=True)
class PresentationShared:
    presentation_id: str
    presentation_title: str
    owner_name: str
    grantee_email: str
    grantee_name: str
    access_level: str
    updated: bool = False
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "presentation_shared"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ShareLinkIssued:
    link_id: str
    presentation_id: str
    presentation_title: str
    owner_email: str
    owner_name: str
    access_level: str
    has_password: bool
    expires_at: datetime | None
    max_views: int | None
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "share_link_issued"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **asdict(self)}


Event = PresentationShared | ShareLinkIssued
