"""ShareLinkManager lifecycle against the in-memory gateway."""
from dataclasses import replace
from datetime import timedelta, timezone

import pytest

from slate.domain.errors import (
    LinkStateError,
    NotFound,
    PasswordIncorrect,
    PasswordRequired,
    PermissionDenied,
    TokenCollision,
    ValidationError,
)
from slate.domain.types import AccessLevel, LinkState
from slate.sharing import ShareLinkManager
from slate.sharing.events import ShareLinkIssued

from conftest import ALICE, BOB, CAROL


class TestIssue:
    async def test_defaults(self, links, deck):
        result = await links.issue(deck.id, ALICE.id)
        link = result.value

        assert result.created
        assert len(link.token) == 43
        assert link.view_count == 0
        assert link.is_active
        assert link.access_level is AccessLevel.READ
        assert not link.has_password
        assert link.expires_at is None
        assert link.max_views is None

    async def test_event_never_carries_token(self, links, deck):
        result = await links.issue(deck.id, ALICE.id, password="s3cret")
        (event,) = result.events

        assert isinstance(event, ShareLinkIssued)
        assert event.owner_email == ALICE.email
        assert event.has_password
        dumped = str(event.to_dict())
        assert result.value.token not in dumped
        assert "s3cret" not in dumped

    async def test_password_is_hashed_and_hidden(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, password="hunter2")).value

        assert link.has_password
        assert link.password_hash != "hunter2"
        assert link.password_hash.startswith("$2")
        assert "password_hash" not in link.public_dict()
        assert "hunter2" not in repr(link)

    async def test_blank_password_means_no_password(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, password="   ")).value
        assert not link.has_password

    async def test_expires_in_days(self, links, clock, deck):
        link = (await links.issue(deck.id, ALICE.id, expires_in_days=7)).value
        assert link.expires_at == clock.now + timedelta(days=7)

    async def test_expires_at_wins(self, links, clock, deck):
        at = clock.now + timedelta(hours=3)
        link = (await links.issue(deck.id, ALICE.id, expires_at=at, expires_in_days=7)).value
        assert link.expires_at == at

    async def test_aware_expiry_is_stored_as_utc(self, links, clock, deck):
        at = (clock.now + timedelta(hours=5)).replace(tzinfo=timezone(timedelta(hours=2)))
        link = (await links.issue(deck.id, ALICE.id, expires_at=at)).value
        assert link.expires_at == clock.now + timedelta(hours=3)
        assert link.expires_at.tzinfo is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"expires_in_days": 0},
            {"expires_in_days": -3},
            {"max_views": 0},
            {"max_views": -1},
            {"access_level": "admin"},
        ],
    )
    async def test_rejects_bad_policy(self, links, deck, kwargs):
        with pytest.raises(ValidationError):
            await links.issue(deck.id, ALICE.id, **kwargs)

    async def test_rejects_past_expiry(self, links, clock, deck):
        with pytest.raises(ValidationError):
            await links.issue(deck.id, ALICE.id, expires_at=clock.now - timedelta(seconds=1))

    async def test_owner_only(self, links, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "write")
        with pytest.raises(PermissionDenied):
            await links.issue(deck.id, BOB.id)
        with pytest.raises(NotFound):
            await links.issue(deck.id, CAROL.id)

    async def test_retries_token_collision(self, gateway, grants, deck):
        tokens = iter(["dup", "dup", "fresh"])
        manager = ShareLinkManager(gateway, grants, password_rounds=4, token_factory=lambda: next(tokens))

        first = (await manager.issue(deck.id, ALICE.id)).value
        second = (await manager.issue(deck.id, ALICE.id)).value
        assert (first.token, second.token) == ("dup", "fresh")

    async def test_gives_up_after_max_attempts(self, gateway, grants, deck):
        manager = ShareLinkManager(
            gateway, grants, password_rounds=4, token_factory=lambda: "same", max_token_attempts=3,
        )
        await manager.issue(deck.id, ALICE.id)
        with pytest.raises(TokenCollision):
            await manager.issue(deck.id, ALICE.id)


class TestAccess:
    async def test_consumes_one_view(self, links, gateway, deck):
        link = (await links.issue(deck.id, ALICE.id, access_level="write")).value

        result = await links.access(link.token)
        assert result.presentation.id == deck.id
        assert result.owner == ALICE
        assert result.access_level is AccessLevel.WRITE
        assert result.link.view_count == 1
        assert (await gateway.get_share_link_by_id(link.id)).view_count == 1

    async def test_validate_does_not_consume(self, links, gateway, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=1)).value
        for _ in range(3):
            assert (await links.validate(link.token)).state is LinkState.ACTIVE
        assert (await gateway.get_share_link_by_id(link.id)).view_count == 0

    async def test_unknown_token(self, links):
        with pytest.raises(NotFound):
            await links.access("not-a-token")
        with pytest.raises(NotFound):
            await links.access("")

    async def test_password_flow(self, links, gateway, deck):
        link = (await links.issue(deck.id, ALICE.id, password="open sesame")).value

        with pytest.raises(PasswordRequired):
            await links.access(link.token)
        with pytest.raises(PasswordIncorrect):
            await links.access(link.token, "open barley")
        for padded in ("  open sesame  ", "open sesame ", " open sesame"):
            with pytest.raises(PasswordIncorrect):
                await links.access(link.token, padded)
        assert (await gateway.get_share_link_by_id(link.id)).view_count == 0

        result = await links.access(link.token, "open sesame")
        assert result.link.view_count == 1

    async def test_expired(self, links, clock, gateway, deck):
        link = (await links.issue(deck.id, ALICE.id, expires_in_days=1)).value

        clock.advance(days=1)
        await links.access(link.token)
        clock.advance(microseconds=1)
        with pytest.raises(LinkStateError) as exc_info:
            await links.access(link.token)
        assert exc_info.value.reason is LinkState.EXPIRED
        assert exc_info.value.code == "link_expired"
        assert (await gateway.get_share_link_by_id(link.id)).view_count == 1

    async def test_view_limit(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=2)).value
        await links.access(link.token)
        await links.access(link.token)

        with pytest.raises(LinkStateError) as exc_info:
            await links.access(link.token)
        assert exc_info.value.reason is LinkState.VIEW_LIMIT_EXCEEDED

    async def test_revoked_link_is_unusable(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=100, expires_in_days=30)).value
        await links.access(link.token)
        await links.revoke(link.id, ALICE.id)

        with pytest.raises(LinkStateError) as exc_info:
            await links.access(link.token)
        assert exc_info.value.reason is LinkState.REVOKED
        assert (await links.validate(link.token)).state is LinkState.REVOKED

    async def test_revoked_wins_over_password_check(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, password="pw")).value
        await links.revoke(link.id, ALICE.id)
        with pytest.raises(LinkStateError):
            await links.access(link.token)

    async def test_lost_race_reports_view_limit(self, links, gateway, deck, monkeypatch):
        link = (await links.issue(deck.id, ALICE.id, max_views=1)).value

        async def lose(link_id):
            # another request took the last slot first
            gateway.links[link_id] = replace(gateway.links[link_id], view_count=1)
            return False

        monkeypatch.setattr(gateway, "conditional_increment_view_count", lose)
        with pytest.raises(LinkStateError) as exc_info:
            await links.access(link.token)
        assert exc_info.value.reason is LinkState.VIEW_LIMIT_EXCEEDED


class TestUpdate:
    async def test_change_policy(self, links, clock, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=5, password="pw")).value
        at = clock.now + timedelta(days=2)

        updated = (await links.update(link.id, ALICE.id, {
            "access_level": "write",
            "expires_at": at,
            "max_views": None,
            "password": None,
        })).value
        assert updated.access_level is AccessLevel.WRITE
        assert updated.expires_at == at
        assert updated.max_views is None
        assert not updated.has_password
        assert updated.token == link.token

    async def test_set_password(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id)).value
        await links.update(link.id, ALICE.id, {"password": "later"})
        with pytest.raises(PasswordRequired):
            await links.access(link.token)

    async def test_max_views_cannot_drop_below_views_used(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=5)).value
        for _ in range(3):
            await links.access(link.token)

        with pytest.raises(ValidationError):
            await links.update(link.id, ALICE.id, {"max_views": 2})
        updated = (await links.update(link.id, ALICE.id, {"max_views": 3})).value
        assert updated.view_count == 3
        assert (await links.validate(link.token)).state is LinkState.VIEW_LIMIT_EXCEEDED

    @pytest.mark.parametrize("password", [1234, b"bytes", ["pw"]])
    async def test_password_must_be_text(self, links, deck, password):
        link = (await links.issue(deck.id, ALICE.id)).value
        with pytest.raises(ValidationError):
            await links.update(link.id, ALICE.id, {"password": password})
        with pytest.raises(ValidationError):
            await links.issue(deck.id, ALICE.id, password=password)
        assert not (await links.validate(link.token)).link.has_password

    async def test_view_count_is_not_updatable(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id)).value
        with pytest.raises(ValidationError):
            await links.update(link.id, ALICE.id, {"view_count": 0})

    async def test_non_owner(self, links, grants, deck):
        link = (await links.issue(deck.id, ALICE.id)).value
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        with pytest.raises(PermissionDenied):
            await links.update(link.id, BOB.id, {"max_views": 10})
        with pytest.raises(NotFound):
            await links.revoke(link.id, CAROL.id)

    async def test_missing_link(self, links):
        with pytest.raises(NotFound):
            await links.update("missing", ALICE.id, {"is_active": False})


class TestAnalytics:
    async def test_counts(self, links, clock, deck):
        link = (await links.issue(deck.id, ALICE.id, max_views=4, expires_in_days=1)).value
        await links.access(link.token)

        stats = await links.analytics(link.id, ALICE.id)
        assert stats.total_views == 1
        assert stats.remaining_views == 3
        assert not stats.is_expired
        assert stats.state is LinkState.ACTIVE

        clock.advance(days=2)
        stats = await links.analytics(link.id, ALICE.id)
        assert stats.is_expired
        assert stats.state is LinkState.EXPIRED
        assert stats.total_views == 1

    async def test_unlimited(self, links, deck):
        link = (await links.issue(deck.id, ALICE.id)).value
        stats = await links.analytics(link.id, ALICE.id)
        assert stats.remaining_views is None
        assert stats.max_views is None

    async def test_list_for_presentation(self, links, deck):
        first = (await links.issue(deck.id, ALICE.id)).value
        second = (await links.issue(deck.id, ALICE.id, password="pw")).value
        await links.revoke(first.id, ALICE.id)

        rows = await links.list_for_presentation(deck.id, ALICE.id)
        assert [(link.id, state) for link, state in rows] == [
            (second.id, LinkState.ACTIVE),
            (first.id, LinkState.REVOKED),
        ]


async def test_presentation_delete_cascades_links(links, presentations, gateway, deck):
    link = (await links.issue(deck.id, ALICE.id)).value
    await presentations.delete(deck.id, ALICE.id)

    assert await gateway.get_share_link_by_id(link.id) is None
    with pytest.raises(NotFound):
        await links.access(link.token)

