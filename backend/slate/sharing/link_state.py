from __future__ import annotations

import secrets
from datetime import datetime

from slate.core.config import settings
from slate.domain.types import LinkState, ShareLinkRecord


def generate_share_token(nbytes: int | None = None) -> str:
    """Random URL-safe token; 32 bytes always encode to 43 characters."""
    return secrets.token_urlsafe(nbytes or settings.SHARE_TOKEN_BYTES)


def compute_link_state(
    is_active: bool,
    expires_at: datetime | None,
    max_views: int | None,
    view_count: int,
    now: datetime,
) -> LinkState:
    # revoked, then expired, then view limit
    if not is_active:
        return LinkState.REVOKED
    if expires_at is not None and now > expires_at:
        return LinkState.EXPIRED
    if max_views is not None and view_count >= max_views:
        return LinkState.VIEW_LIMIT_EXCEEDED
    return LinkState.ACTIVE


def link_state(link: ShareLinkRecord, now: datetime) -> LinkState:
    return compute_link_state(link.is_active, link.expires_at, link.max_views, link.view_count, now)
