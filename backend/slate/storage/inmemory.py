"""Dict-backed StorageGateway for tests and local experiments."""

from __future__ import annotations

import itertools
import uuid
from dataclasses import replace
from typing import Any, Mapping

from slate.domain.errors import NotFound, TokenCollision
from slate.domain.types import (
    AccessLevel,
    GrantRecord,
    PresentationRecord,
    ShareLinkRecord,
    UserRecord,
)
from slate.storage.gateway import (
    PRESENTATION_MUTABLE_FIELDS,
    SHARE_LINK_MUTABLE_FIELDS,
    check_fields,
)
from slate.utils.clock import utcnow


class InMemoryStorageGateway:
    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.presentations: dict[str, PresentationRecord] = {}
        self.grants: dict[tuple[str, str], GrantRecord] = {}
        self.links: dict[str, ShareLinkRecord] = {}
        # insertion order breaks created_at ties
        self._seq = itertools.count()
        self._order: dict[str, int] = {}

    def _stamp(self, key: str) -> None:
        self._order[key] = next(self._seq)

    def add_user(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = user
        return user

    # ── users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: str) -> UserRecord | None:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        needle = email.strip().lower()
        for user in self.users.values():
            if user.email.lower() == needle:
                return user
        return None

    async def get_users(self, user_ids: list[str]) -> dict[str, UserRecord]:
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    # ── presentations ────────────────────────────────────────────────

    async def get_presentation(self, presentation_id: str) -> PresentationRecord | None:
        return self.presentations.get(presentation_id)

    async def create_presentation(self, presentation: PresentationRecord) -> PresentationRecord:
        if presentation.owner_id not in self.users:
            raise NotFound("User not found")
        now = utcnow()
        record = replace(
            presentation,
            id=presentation.id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
        )
        self.presentations[record.id] = record
        self._stamp(record.id)
        return record

    async def update_presentation(
        self, presentation_id: str, fields: Mapping[str, Any],
    ) -> PresentationRecord | None:
        check_fields(fields, PRESENTATION_MUTABLE_FIELDS)
        current = self.presentations.get(presentation_id)
        if current is None:
            return None
        updated = replace(current, **fields, updated_at=utcnow())
        self.presentations[presentation_id] = updated
        return updated

    async def delete_presentation(self, presentation_id: str) -> bool:
        if self.presentations.pop(presentation_id, None) is None:
            return False
        for key in [k for k in self.grants if k[0] == presentation_id]:
            del self.grants[key]
        for link_id in [i for i, link in self.links.items() if link.presentation_id == presentation_id]:
            del self.links[link_id]
        return True

    async def list_presentations(
        self,
        *,
        owner_id: str | None = None,
        public_only: bool = False,
        search: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[PresentationRecord], int]:
        needle = search.strip().lower() if search and search.strip() else None
        matches = []
        for p in self.presentations.values():
            if owner_id is not None and p.owner_id != owner_id:
                continue
            if public_only and not p.is_public:
                continue
            if needle and needle not in p.title.lower() and needle not in (p.description or "").lower():
                continue
            matches.append(p)
        matches.sort(key=lambda p: (p.updated_at, self._order[p.id]), reverse=True)
        return matches[skip:skip + limit], len(matches)

    # ── grants ───────────────────────────────────────────────────────

    async def find_grant(self, presentation_id: str, user_id: str) -> GrantRecord | None:
        return self.grants.get((presentation_id, user_id))

    async def upsert_grant(
        self,
        presentation_id: str,
        grantee_user_id: str,
        access_level: AccessLevel,
        granted_by_user_id: str,
    ) -> tuple[GrantRecord, bool]:
        key = (presentation_id, grantee_user_id)
        now = utcnow()
        existing = self.grants.get(key)
        if existing is not None:
            updated = replace(existing, access_level=access_level, updated_at=now)
            self.grants[key] = updated
            return updated, False
        if presentation_id not in self.presentations or grantee_user_id not in self.users:
            raise NotFound("Presentation or user no longer exists")
        grant = GrantRecord(
            id=str(uuid.uuid4()),
            presentation_id=presentation_id,
            grantee_user_id=grantee_user_id,
            access_level=access_level,
            granted_by_user_id=granted_by_user_id,
            created_at=now,
            updated_at=now,
        )
        self.grants[key] = grant
        self._stamp(grant.id)
        return grant, True

    async def delete_grant(self, presentation_id: str, grantee_user_id: str) -> bool:
        return self.grants.pop((presentation_id, grantee_user_id), None) is not None

    def _newest_first(self, records):
        return sorted(records, key=lambda r: (r.created_at, self._order[r.id]), reverse=True)

    async def list_grants(self, presentation_id: str) -> list[GrantRecord]:
        return self._newest_first(g for g in self.grants.values() if g.presentation_id == presentation_id)

    async def list_shared_with(
        self, user_id: str, *, skip: int = 0, limit: int = 10,
    ) -> tuple[list[tuple[GrantRecord, PresentationRecord]], int]:
        grants = self._newest_first(
            g for g in self.grants.values()
            if g.grantee_user_id == user_id and g.presentation_id in self.presentations
        )
        page = [(g, self.presentations[g.presentation_id]) for g in grants[skip:skip + limit]]
        return page, len(grants)

    # ── share links ──────────────────────────────────────────────────

    async def create_share_link(self, link: ShareLinkRecord) -> ShareLinkRecord:
        if any(existing.token == link.token for existing in self.links.values()):
            raise TokenCollision()
        if link.presentation_id not in self.presentations:
            raise NotFound("Presentation not found")
        now = utcnow()
        record = replace(
            link,
            id=link.id or str(uuid.uuid4()),
            view_count=0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.links[record.id] = record
        self._stamp(record.id)
        return record

    async def get_share_link_by_token(self, token: str) -> ShareLinkRecord | None:
        for link in self.links.values():
            if link.token == token:
                return link
        return None

    async def get_share_link_by_id(self, link_id: str) -> ShareLinkRecord | None:
        return self.links.get(link_id)

    async def update_share_link(
        self, link_id: str, fields: Mapping[str, Any],
    ) -> ShareLinkRecord | None:
        check_fields(fields, SHARE_LINK_MUTABLE_FIELDS)
        current = self.links.get(link_id)
        if current is None:
            return None
        updated = replace(current, **fields, updated_at=utcnow())
        self.links[link_id] = updated
        return updated

    async def delete_share_link(self, link_id: str) -> bool:
        return self.links.pop(link_id, None) is not None

    async def list_share_links(self, presentation_id: str) -> list[ShareLinkRecord]:
        return self._newest_first(l for l in self.links.values() if l.presentation_id == presentation_id)

    async def conditional_increment_view_count(self, link_id: str) -> bool:
        # no await between the check and the write, so this is atomic on the loop
        link = self.links.get(link_id)
        if link is None or not link.is_active:
            return False
        if link.max_views is not None and link.view_count >= link.max_views:
            return False
        self.links[link_id] = replace(link, view_count=link.view_count + 1)
        return True
