"""Tokenized share links: issue, validate, consume, update, revoke, analytics.

Link states are derived, never stored, except the owner-controlled
``is_active`` flag:

    revoked              is_active is false (terminal; issue a new link)
    expired              now > expires_at
    view_limit_exceeded  max_views set and view_count >= max_views
    active               none of the above

``access`` is the only operation that changes ``view_count`` and it does so
through the gateway's conditional increment, so a link capped at N views is
consumed at most N times however many requests race for it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from starlette.concurrency import run_in_threadpool

from slate.core.config import settings
from slate.core.security import get_password_hash, verify_password
from slate.domain.errors import (
    LinkStateError,
    NotFound,
    PasswordIncorrect,
    PasswordRequired,
    TokenCollision,
    ValidationError,
)
from slate.domain.types import (
    AccessLevel,
    LinkAccess,
    LinkAnalytics,
    LinkState,
    LinkValidation,
    Mutation,
    ShareLinkRecord,
)
from slate.monitoring.setup import report_link_access
from slate.sharing.events import ShareLinkIssued
from slate.sharing.grants import ShareGrantStore
from slate.sharing.link_state import generate_share_token, link_state
from slate.storage.gateway import StorageGateway
from slate.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"access_level", "password", "expires_at", "max_views", "is_active"})


def _token_prefix(token: str) -> str:
    return f"{token[:6]}..." if token else "<none>"


def _positive_views(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("max_views must be a positive integer")
    return value


class ShareLinkManager:
    def __init__(
        self,
        gateway: StorageGateway,
        grants: ShareGrantStore | None = None,
        *,
        password_rounds: int | None = None,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_share_token,
        max_token_attempts: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.grants = grants or ShareGrantStore(gateway)
        self.password_rounds = password_rounds or settings.SHARE_LINK_PASSWORD_ROUNDS
        self.clock = clock
        self.token_factory = token_factory
        self.max_token_attempts = max_token_attempts or settings.SHARE_TOKEN_MAX_ATTEMPTS

    async def _hash_password(self, password: Any) -> str | None:
        if password is None:
            return None
        if not isinstance(password, str):
            raise ValidationError("password must be a string")
        if not password.strip():
            return None
        return await run_in_threadpool(get_password_hash, password, self.password_rounds)

    async def _owned_link(self, link_id: str, owner_id: str) -> ShareLinkRecord:
        link = await self.gateway.get_share_link_by_id(link_id)
        if link is None:
            raise NotFound("Share link not found")
        try:
            await self.grants.require_owner(link.presentation_id, owner_id)
        except NotFound:
            # the link id must not reveal anything the presentation would not
            raise NotFound("Share link not found") from None
        return link

    # ── issue ────────────────────────────────────────────────────────

    async def issue(
        self,
        presentation_id: str,
        owner_id: str,
        access_level: AccessLevel | str = AccessLevel.READ,
        password: str | None = None,
        expires_at: datetime | None = None,
        expires_in_days: int | None = None,
        max_views: int | None = None,
    ) -> Mutation[ShareLinkRecord]:
        level = AccessLevel.parse(access_level)
        now = self.clock()

        expiry = None
        if expires_at is not None:
            expiry = to_naive_utc(expires_at)
            if expiry <= now:
                raise ValidationError("expires_at must be in the future")
        elif expires_in_days is not None:
            if isinstance(expires_in_days, bool) or expires_in_days < 1:
                raise ValidationError("expires_in_days must be a positive integer")
            expiry = now + timedelta(days=expires_in_days)

        if max_views is not None:
            max_views = _positive_views(max_views)

        presentation = await self.grants.require_owner(presentation_id, owner_id)
        password_hash = await self._hash_password(password)

        link = None
        for attempt in range(1, self.max_token_attempts + 1):
            candidate = ShareLinkRecord(
                id="",
                presentation_id=presentation.id,
                token=self.token_factory(),
                access_level=level,
                created_by_user_id=owner_id,
                password_hash=password_hash,
                expires_at=expiry,
                max_views=max_views,
            )
            try:
                link = await self.gateway.create_share_link(candidate)
                break
            except TokenCollision:
                logger.warning("Share token collision on attempt %s/%s", attempt, self.max_token_attempts)
        if link is None:
            raise TokenCollision("Could not allocate a unique share token")

        logger.info(
            "Share link issued id=%s presentation=%s level=%s protected=%s expires_at=%s max_views=%s",
            link.id, presentation.id, level.value, link.has_password, expiry, max_views,
        )

        owner = await self.gateway.get_user(owner_id)
        event = ShareLinkIssued(
            link_id=link.id,
            presentation_id=presentation.id,
            presentation_title=presentation.title,
            owner_email=owner.email if owner else "",
            owner_name=owner.name if owner else "",
            access_level=level.value,
            has_password=link.has_password,
            expires_at=link.expires_at,
            max_views=link.max_views,
        )
        return Mutation(value=link, events=(event,) if owner else (), created=True)

    # ── validate / access ────────────────────────────────────────────

    async def validate(self, token: str) -> LinkValidation:
        link = await self.gateway.get_share_link_by_token(token) if token else None
        if link is None:
            raise NotFound("Share link not found")
        return LinkValidation(state=link_state(link, self.clock()), link=link)

    async def access(self, token: str, password_attempt: str | None = None) -> LinkAccess:
        validation = await self.validate(token)
        link = validation.link
        if validation.state is not LinkState.ACTIVE:
            report_link_access(validation.state.value)
            raise LinkStateError(validation.state)

        if link.password_hash is not None:
            if not password_attempt:
                report_link_access("password_required")
                raise PasswordRequired()
            matches = await run_in_threadpool(verify_password, password_attempt, link.password_hash)
            if not matches:
                report_link_access("password_incorrect")
                raise PasswordIncorrect()

        presentation = await self.gateway.get_presentation(link.presentation_id)
        if presentation is None:
            raise NotFound("Share link not found")

        if not await self.gateway.conditional_increment_view_count(link.id):
            # lost the race, or the link changed since validation
            retry = await self.gateway.get_share_link_by_id(link.id)
            state = link_state(retry, self.clock()) if retry else LinkState.REVOKED
            if state is LinkState.ACTIVE:
                state = LinkState.VIEW_LIMIT_EXCEEDED
            report_link_access(state.value)
            logger.info("Share link %s not consumed: %s", _token_prefix(token), state.value)
            raise LinkStateError(state)

        consumed = await self.gateway.get_share_link_by_id(link.id)
        if consumed is None:
            consumed = replace(link, view_count=link.view_count + 1)
        owner = await self.gateway.get_user(presentation.owner_id)
        report_link_access("granted")
        logger.info("Share link %s consumed view %s/%s", _token_prefix(token), consumed.view_count, consumed.max_views)
        return LinkAccess(
            presentation=presentation,
            owner=owner,
            access_level=consumed.access_level,
            link=consumed,
        )

    # ── owner operations ─────────────────────────────────────────────

    async def update(self, link_id: str, owner_id: str, fields: Mapping[str, Any]) -> Mutation[ShareLinkRecord]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        link = await self._owned_link(link_id, owner_id)
        changes: dict[str, Any] = {}

        if "access_level" in fields:
            changes["access_level"] = AccessLevel.parse(fields["access_level"])
        if "is_active" in fields:
            if not isinstance(fields["is_active"], bool):
                raise ValidationError("is_active must be a boolean")
            changes["is_active"] = fields["is_active"]
        if "expires_at" in fields:
            changes["expires_at"] = to_naive_utc(fields["expires_at"])
        if "max_views" in fields:
            max_views = fields["max_views"]
            if max_views is not None:
                max_views = _positive_views(max_views)
                if max_views < link.view_count:
                    raise ValidationError(
                        f"max_views cannot be lower than the {link.view_count} views already used"
                    )
            changes["max_views"] = max_views
        if "password" in fields:
            changes["password_hash"] = await self._hash_password(fields["password"])

        if not changes:
            return Mutation(value=link)

        updated = await self.gateway.update_share_link(link.id, changes)
        if updated is None:
            raise NotFound("Share link not found")
        logger.info("Share link updated id=%s fields=%s", link.id, sorted(fields))
        return Mutation(value=updated)

    async def revoke(self, link_id: str, owner_id: str) -> Mutation[ShareLinkRecord]:
        link = await self._owned_link(link_id, owner_id)
        revoked = await self.gateway.update_share_link(link.id, {"is_active": False})
        if revoked is None:
            raise NotFound("Share link not found")
        logger.info("Share link revoked id=%s presentation=%s", link.id, link.presentation_id)
        return Mutation(value=revoked)

    async def analytics(self, link_id: str, owner_id: str) -> LinkAnalytics:
        link = await self._owned_link(link_id, owner_id)
        now = self.clock()
        return LinkAnalytics(
            link_id=link.id,
            total_views=link.view_count,
            max_views=link.max_views,
            remaining_views=max(link.max_views - link.view_count, 0) if link.max_views is not None else None,
            expires_at=link.expires_at,
            is_expired=link.expires_at is not None and now > link.expires_at,
            is_active=link.is_active,
            state=link_state(link, now),
            created_at=link.created_at,
        )

    async def list_for_presentation(
        self, presentation_id: str, owner_id: str,
    ) -> list[tuple[ShareLinkRecord, LinkState]]:
        presentation = await self.grants.require_owner(presentation_id, owner_id)
        now = self.clock()
        return [(link, link_state(link, now)) for link in await self.gateway.list_share_links(presentation.id)]
