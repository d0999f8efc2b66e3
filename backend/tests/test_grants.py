"""ShareGrantStore behaviour against the in-memory gateway."""
import pytest

from slate.domain.errors import NotFound, PermissionDenied, SelfShareRejected, ValidationError
from slate.domain.types import AccessLevel, MatchedLevel
from slate.sharing.events import PresentationShared

from conftest import ALICE, BOB, CAROL


class TestShare:
    async def test_share_creates_grant_and_event(self, grants, deck):
        result = await grants.share(deck.id, ALICE.id, BOB.email, "read")

        assert result.created
        assert result.value.grantee_user_id == BOB.id
        assert result.value.access_level is AccessLevel.READ
        assert len(result.events) == 1
        event = result.events[0]
        assert isinstance(event, PresentationShared)
        assert event.grantee_email == BOB.email
        assert event.owner_name == ALICE.name
        assert not event.updated

    async def test_share_again_updates_in_place(self, grants, gateway, deck):
        first = await grants.share(deck.id, ALICE.id, BOB.email, "read")
        second = await grants.share(deck.id, ALICE.id, BOB.email, "write")

        assert not second.created
        assert second.value.id == first.value.id
        assert second.value.access_level is AccessLevel.WRITE
        assert second.events[0].updated
        assert len(await gateway.list_grants(deck.id)) == 1

    async def test_email_lookup_is_case_insensitive(self, grants, deck):
        result = await grants.share(deck.id, ALICE.id, "  BOB@Example.com ", "read")
        assert result.value.grantee_user_id == BOB.id

    async def test_self_share_rejected(self, grants, deck):
        with pytest.raises(SelfShareRejected):
            await grants.share(deck.id, ALICE.id, ALICE.email, "read")

    async def test_unknown_email(self, grants, deck):
        with pytest.raises(NotFound):
            await grants.share(deck.id, ALICE.id, "nobody@example.com", "read")

    async def test_invalid_level(self, grants, deck):
        with pytest.raises(ValidationError):
            await grants.share(deck.id, ALICE.id, BOB.email, "owner")

    async def test_blank_email(self, grants, deck):
        with pytest.raises(ValidationError):
            await grants.share(deck.id, ALICE.id, "   ", "read")

    async def test_stranger_cannot_share_and_learns_nothing(self, grants, deck):
        with pytest.raises(NotFound):
            await grants.share(deck.id, CAROL.id, BOB.email, "read")

    async def test_grantee_cannot_reshare(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "write")
        with pytest.raises(PermissionDenied):
            await grants.share(deck.id, BOB.id, CAROL.email, "read")


class TestRevoke:
    async def test_revoke_removes_access(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        await grants.revoke(deck.id, ALICE.id, BOB.id)

        _, decision = await grants.authorize(deck.id, BOB.id, AccessLevel.READ)
        assert not decision.granted
        assert decision.matched_level is MatchedLevel.NONE

    async def test_revoke_missing_grant(self, grants, deck):
        with pytest.raises(NotFound):
            await grants.revoke(deck.id, ALICE.id, BOB.id)

    async def test_revoke_requires_owner(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "write")
        with pytest.raises(PermissionDenied):
            await grants.revoke(deck.id, BOB.id, BOB.id)


class TestListing:
    async def test_list_newest_first_with_grantee(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        await grants.share(deck.id, ALICE.id, CAROL.email, "write")

        rows = await grants.list(deck.id, ALICE.id)
        assert [row.grantee.email for row in rows] == [CAROL.email, BOB.email]

    async def test_shared_with(self, grants, presentations, deck):
        other = (await presentations.create(ALICE.id, "Roadmap")).value
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        await grants.share(other.id, ALICE.id, BOB.email, "write")

        page = await grants.shared_with(BOB.id)
        assert page.total == 2
        assert [item.presentation.title for item in page.items] == ["Roadmap", "Quarterly review"]
        assert page.items[0].owner == ALICE

        second_page = await grants.shared_with(BOB.id, skip=1, limit=1)
        assert second_page.total == 2
        assert [item.presentation.id for item in second_page.items] == [deck.id]


class TestRequire:
    async def test_missing_presentation(self, grants):
        with pytest.raises(NotFound):
            await grants.require("missing", ALICE.id, AccessLevel.READ)

    async def test_reader_asking_for_write(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        with pytest.raises(PermissionDenied):
            await grants.require(deck.id, BOB.id, AccessLevel.WRITE)

    async def test_authorize_reads_fresh_grants(self, grants, deck):
        await grants.share(deck.id, ALICE.id, BOB.email, "read")
        _, before = await grants.authorize(deck.id, BOB.id, AccessLevel.WRITE)
        await grants.share(deck.id, ALICE.id, BOB.email, "write")
        _, after = await grants.authorize(deck.id, BOB.id, AccessLevel.WRITE)

        assert not before.granted
        assert after.granted
