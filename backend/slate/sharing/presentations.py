from __future__ import annotations

import logging
from typing import Any, Mapping

from slate.domain.errors import NotFound, PermissionDenied, ValidationError
from slate.domain.types import (
    AccessDecision,
    AccessLevel,
    MatchedLevel,
    Mutation,
    Page,
    PresentationRecord,
    UserRecord,
)
from slate.sharing.grants import ShareGrantStore
from slate.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)

CONTENT_FIELDS = frozenset({"title", "description", "editor_data", "excalidraw_data"})
OWNER_FIELDS = frozenset({"is_public", "default_share_access"})
MAX_TITLE_LENGTH = 255


def _clean_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required")
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return title


def _clean_description(description: Any) -> str | None:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("Description must be a string")
    return description.strip() or None


class PresentationService:
    def __init__(self, gateway: StorageGateway, grants: ShareGrantStore | None = None) -> None:
        self.gateway = gateway
        self.grants = grants or ShareGrantStore(gateway)

    async def create(self, owner_id: str, title: str, description: str | None = None) -> Mutation[PresentationRecord]:
        record = PresentationRecord(
            id="",
            owner_id=owner_id,
            title=_clean_title(title),
            description=_clean_description(description),
        )
        created = await self.gateway.create_presentation(record)
        logger.info("Presentation created id=%s owner=%s", created.id, owner_id)
        return Mutation(value=created, created=True)

    async def list_owned(
        self, owner_id: str, *, search: str | None = None, skip: int = 0, limit: int = 10,
    ) -> Page[PresentationRecord]:
        items, total = await self.gateway.list_presentations(
            owner_id=owner_id, search=search, skip=skip, limit=limit,
        )
        return Page(items=items, total=total, skip=skip, limit=limit)

    async def get(self, presentation_id: str, principal_id: str | None) -> tuple[PresentationRecord, AccessDecision]:
        return await self.grants.require(presentation_id, principal_id, AccessLevel.READ)

    async def update(
        self, presentation_id: str, principal_id: str, fields: Mapping[str, Any],
    ) -> Mutation[PresentationRecord]:
        unknown = set(fields) - CONTENT_FIELDS - OWNER_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        presentation, decision = await self.grants.require(presentation_id, principal_id, AccessLevel.WRITE)
        if OWNER_FIELDS & set(fields) and decision.matched_level is not MatchedLevel.OWNER:
            raise PermissionDenied("Only the owner can change visibility or default share access")

        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = _clean_title(fields["title"])
        if "description" in fields:
            changes["description"] = _clean_description(fields["description"])
        for key in ("editor_data", "excalidraw_data"):
            if key in fields:
                changes[key] = fields[key]
        if "is_public" in fields:
            if not isinstance(fields["is_public"], bool):
                raise ValidationError("is_public must be a boolean")
            changes["is_public"] = fields["is_public"]
        if "default_share_access" in fields:
            changes["default_share_access"] = AccessLevel.parse(fields["default_share_access"])

        if not changes:
            return Mutation(value=presentation)
        updated = await self.gateway.update_presentation(presentation.id, changes)
        if updated is None:
            raise NotFound("Presentation not found")
        logger.info("Presentation updated id=%s by=%s fields=%s", presentation.id, principal_id, sorted(changes))
        return Mutation(value=updated)

    async def set_visibility(self, presentation_id: str, owner_id: str, is_public: bool) -> Mutation[PresentationRecord]:
        if not isinstance(is_public, bool):
            raise ValidationError("is_public must be a boolean")
        presentation = await self.grants.require_owner(presentation_id, owner_id)
        updated = await self.gateway.update_presentation(presentation.id, {"is_public": is_public})
        if updated is None:
            raise NotFound("Presentation not found")
        logger.info("Presentation %s is now %s", presentation.id, "public" if is_public else "private")
        return Mutation(value=updated)

    async def delete(self, presentation_id: str, owner_id: str) -> Mutation[None]:
        presentation = await self.grants.require_owner(presentation_id, owner_id)
        if not await self.gateway.delete_presentation(presentation.id):
            raise NotFound("Presentation not found")
        logger.info("Presentation deleted id=%s", presentation.id)
        return Mutation(value=None)

    async def duplicate(self, presentation_id: str, principal_id: str) -> Mutation[PresentationRecord]:
        source, _ = await self.grants.require(presentation_id, principal_id, AccessLevel.READ)
        copy = PresentationRecord(
            id="",
            owner_id=principal_id,
            title=f"{source.title} (Copy)"[:MAX_TITLE_LENGTH],
            description=source.description,
            editor_data=source.editor_data,
            excalidraw_data=source.excalidraw_data,
        )
        created = await self.gateway.create_presentation(copy)
        logger.info("Presentation %s duplicated as %s for %s", source.id, created.id, principal_id)
        return Mutation(value=created, created=True)

    async def list_public(
        self, *, search: str | None = None, skip: int = 0, limit: int = 10,
    ) -> Page[tuple[PresentationRecord, UserRecord | None]]:
        items, total = await self.gateway.list_presentations(
            public_only=True, search=search, skip=skip, limit=limit,
        )
        owners = await self.gateway.get_users([p.owner_id for p in items])
        return Page(
            items=[(p, owners.get(p.owner_id)) for p in items],
            total=total,
            skip=skip,
            limit=limit,
        )
