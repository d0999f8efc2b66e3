from __future__ import annotations

from slate.domain.types import (
    AccessDecision,
    AccessLevel,
    GrantRecord,
    MatchedLevel,
    PresentationRecord,
)


def resolve(
    presentation: PresentationRecord,
    principal_id: str | None,
    required_level: AccessLevel,
    grant: GrantRecord | None = None,
) -> AccessDecision:
    """Decide whether ``principal_id`` may act on ``presentation`` at ``required_level``.

    First match wins: owner, then public visibility, then the explicit grant.
    Public visibility only ever yields read, and it is checked before the grant,
    so a grantee with write access to a public presentation resolves as read.

    ``grant`` must be the caller's fresh lookup for (presentation, principal);
    it is only consulted when the first two rules do not match.
    """
    if principal_id is not None and principal_id == presentation.owner_id:
        return AccessDecision(granted=True, matched_level=MatchedLevel.OWNER)

    if presentation.is_public:
        return AccessDecision(
            granted=required_level is AccessLevel.READ,
            matched_level=MatchedLevel.READ,
        )

    if grant is not None and principal_id is not None and grant.grantee_user_id == principal_id:
        return AccessDecision(
            granted=grant.access_level.satisfies(required_level),
            matched_level=MatchedLevel(grant.access_level.value),
        )

    return AccessDecision(granted=False, matched_level=MatchedLevel.NONE)


def needs_grant_lookup(presentation: PresentationRecord, principal_id: str | None) -> bool:
    """True when ``resolve`` would fall through to the grant rule."""
    if principal_id is None:
        return False
    return principal_id != presentation.owner_id and not presentation.is_public
