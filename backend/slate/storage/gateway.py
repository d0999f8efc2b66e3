"""Storage boundary consumed by the access core.

Implementations: ``SqlAlchemyStorageGateway`` (production, one per request
session) and ``InMemoryStorageGateway`` (tests).

Contract notes:
  - ``conditional_increment_view_count`` is the only way ``view_count``
    changes. It must be one atomic conditional write: increment only if the
    link is active and ``max_views`` is unset or not yet reached, and report
    whether a row was updated.
  - ``update_share_link`` rejects ``view_count`` in its fields.
  - Token uniqueness and (presentation, grantee) uniqueness are enforced by
    storage; a token clash on insert raises ``TokenCollision``.
  - Connectivity failures raise ``TransientStorageError``.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from slate.domain.types import (
    AccessLevel,
    GrantRecord,
    PresentationRecord,
    ShareLinkRecord,
    UserRecord,
)

PRESENTATION_MUTABLE_FIELDS = frozenset(
    {"title", "description", "editor_data", "excalidraw_data", "is_public", "default_share_access"}
)
SHARE_LINK_MUTABLE_FIELDS = frozenset(
    {"access_level", "password_hash", "expires_at", "max_views", "is_active"}
)


def check_fields(fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"fields not updatable: {sorted(unknown)}")


class StorageGateway(Protocol):
    # Identity (read-only)
    async def get_user(self, user_id: str) -> UserRecord | None: ...

    async def get_user_by_email(self, email: str) -> UserRecord | None: ...

    async def get_users(self, user_ids: list[str]) -> dict[str, UserRecord]: ...

    # Presentations
    async def get_presentation(self, presentation_id: str) -> PresentationRecord | None: ...

    async def create_presentation(self, presentation: PresentationRecord) -> PresentationRecord: ...

    async def update_presentation(
        self, presentation_id: str, fields: Mapping[str, Any],
    ) -> PresentationRecord | None: ...

    async def delete_presentation(self, presentation_id: str) -> bool:
        """Delete the presentation with its grants and links in one transaction."""
        ...

    async def list_presentations(
        self,
        *,
        owner_id: str | None = None,
        public_only: bool = False,
        search: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[PresentationRecord], int]: ...

    # Grants
    async def find_grant(self, presentation_id: str, user_id: str) -> GrantRecord | None: ...

    async def upsert_grant(
        self,
        presentation_id: str,
        grantee_user_id: str,
        access_level: AccessLevel,
        granted_by_user_id: str,
    ) -> tuple[GrantRecord, bool]:
        """Insert or update in place; the bool is True when a row was created."""
        ...

    async def delete_grant(self, presentation_id: str, grantee_user_id: str) -> bool: ...

    async def list_grants(self, presentation_id: str) -> list[GrantRecord]: ...

    async def list_shared_with(
        self, user_id: str, *, skip: int = 0, limit: int = 10,
    ) -> tuple[list[tuple[GrantRecord, PresentationRecord]], int]: ...

    # Share links
    async def create_share_link(self, link: ShareLinkRecord) -> ShareLinkRecord: ...

    async def get_share_link_by_token(self, token: str) -> ShareLinkRecord | None: ...

    async def get_share_link_by_id(self, link_id: str) -> ShareLinkRecord | None: ...

    async def update_share_link(
        self, link_id: str, fields: Mapping[str, Any],
    ) -> ShareLinkRecord | None: ...

    async def delete_share_link(self, link_id: str) -> bool: ...

    async def list_share_links(self, presentation_id: str) -> list[ShareLinkRecord]: ...

    async def conditional_increment_view_count(self, link_id: str) -> bool: ...
