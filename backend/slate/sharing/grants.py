from __future__ import annotations

import logging

from slate.domain.errors import NotFound, PermissionDenied, SelfShareRejected, ValidationError
from slate.domain.types import (
    AccessDecision,
    AccessLevel,
    GrantRecord,
    GrantWithGrantee,
    MatchedLevel,
    Mutation,
    Page,
    PresentationRecord,
    SharedPresentation,
)
from slate.sharing.events import PresentationShared
from slate.sharing.resolver import needs_grant_lookup, resolve
from slate.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)


class ShareGrantStore:
    """Explicit per-user grants, and the fresh-read entry point to the resolver.

    Callers that cannot read a presentation at all get NotFound, so existence
    is not leaked; callers that can read it but lack the needed level or
    ownership get PermissionDenied.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self.gateway = gateway

    async def authorize(
        self,
        presentation_id: str,
        principal_id: str | None,
        required_level: AccessLevel,
    ) -> tuple[PresentationRecord, AccessDecision]:
        presentation = await self.gateway.get_presentation(presentation_id)
        if presentation is None:
            raise NotFound("Presentation not found")
        grant = None
        if needs_grant_lookup(presentation, principal_id):
            grant = await self.gateway.find_grant(presentation.id, principal_id)
        return presentation, resolve(presentation, principal_id, required_level, grant)

    async def require(
        self,
        presentation_id: str,
        principal_id: str | None,
        required_level: AccessLevel,
    ) -> tuple[PresentationRecord, AccessDecision]:
        presentation, decision = await self.authorize(presentation_id, principal_id, required_level)
        if decision.granted:
            return presentation, decision
        if decision.matched_level is MatchedLevel.NONE:
            raise NotFound("Presentation not found")
        raise PermissionDenied("You only have read access to this presentation")

    async def require_owner(self, presentation_id: str, principal_id: str | None) -> PresentationRecord:
        presentation, decision = await self.authorize(presentation_id, principal_id, AccessLevel.READ)
        if decision.matched_level is MatchedLevel.OWNER:
            return presentation
        if not decision.granted:
            raise NotFound("Presentation not found")
        raise PermissionDenied("Only the owner can perform this action")

    async def share(
        self,
        presentation_id: str,
        owner_id: str,
        grantee_email: str,
        access_level: AccessLevel | str = AccessLevel.READ,
    ) -> Mutation[GrantRecord]:
        level = AccessLevel.parse(access_level)
        if not grantee_email or not grantee_email.strip():
            raise ValidationError("Email is required")

        presentation = await self.require_owner(presentation_id, owner_id)

        grantee = await self.gateway.get_user_by_email(grantee_email)
        if grantee is None:
            raise NotFound("User not found with this email")
        if grantee.id == presentation.owner_id:
            raise SelfShareRejected("Cannot share presentation with yourself")

        grant, created = await self.gateway.upsert_grant(presentation.id, grantee.id, level, owner_id)
        logger.info(
            "Grant %s presentation=%s grantee=%s level=%s",
            "created" if created else "updated", presentation.id, grantee.id, level.value,
        )

        owner = await self.gateway.get_user(presentation.owner_id)
        event = PresentationShared(
            presentation_id=presentation.id,
            presentation_title=presentation.title,
            owner_name=owner.name if owner else "A Slate user",
            grantee_email=grantee.email,
            grantee_name=grantee.name,
            access_level=level.value,
            updated=not created,
        )
        return Mutation(value=grant, events=(event,), created=created)

    async def revoke(self, presentation_id: str, owner_id: str, grantee_user_id: str) -> Mutation[None]:
        if not grantee_user_id:
            raise ValidationError("User ID is required")
        presentation = await self.require_owner(presentation_id, owner_id)
        if not await self.gateway.delete_grant(presentation.id, grantee_user_id):
            raise NotFound("Share not found")
        logger.info("Grant revoked presentation=%s grantee=%s", presentation.id, grantee_user_id)
        return Mutation(value=None)

    async def list(self, presentation_id: str, owner_id: str) -> list[GrantWithGrantee]:
        presentation = await self.require_owner(presentation_id, owner_id)
        grants = await self.gateway.list_grants(presentation.id)
        users = await self.gateway.get_users([g.grantee_user_id for g in grants])
        return [GrantWithGrantee(grant=g, grantee=users.get(g.grantee_user_id)) for g in grants]

    async def shared_with(self, user_id: str, *, skip: int = 0, limit: int = 10) -> Page[SharedPresentation]:
        rows, total = await self.gateway.list_shared_with(user_id, skip=skip, limit=limit)
        owners = await self.gateway.get_users([p.owner_id for _, p in rows])
        items = [
            SharedPresentation(grant=g, presentation=p, owner=owners.get(p.owner_id))
            for g, p in rows
        ]
        return Page(items=items, total=total, skip=skip, limit=limit)
