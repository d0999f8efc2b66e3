"""NotificationDispatcher delivery, retry and template rendering."""
import asyncio

import pytest

from slate.notifications import NotificationDispatcher, render
from slate.sharing.events import PresentationShared, ShareLinkIssued

from conftest import RecordingSender


def shared_event(**overrides):
    data = dict(
        presentation_id="p1",
        presentation_title="Quarterly <review>",
        owner_name="Alice",
        grantee_email="bob@example.com",
        grantee_name="Bob",
        access_level="write",
    )
    data.update(overrides)
    return PresentationShared(**data)


def issued_event():
    return ShareLinkIssued(
        link_id="l1",
        presentation_id="p1",
        presentation_title="Quarterly review",
        owner_email="alice@example.com",
        owner_name="Alice",
        access_level="read",
        has_password=True,
        expires_at=None,
        max_views=3,
    )


@pytest.fixture
async def running():
    started = []

    async def make(sender, **kwargs):
        kwargs.setdefault("backoff", 0)
        dispatcher = NotificationDispatcher(sender, concurrency=2, max_attempts=3, enabled=True, **kwargs)
        await dispatcher.start()
        started.append(dispatcher)
        return dispatcher

    yield make
    for dispatcher in started:
        await dispatcher.stop()


class TestTemplates:
    def test_shared_goes_to_grantee_and_escapes(self):
        message = render(shared_event())
        assert message.to == "bob@example.com"
        assert "Quarterly <review>" in message.subject
        assert "Quarterly &lt;review&gt;" in message.body
        assert "/presentations/p1" in message.body

    def test_updated_grant_wording(self):
        assert "updated your access" in render(shared_event(updated=True)).body

    def test_link_issued_goes_to_owner(self):
        message = render(issued_event())
        assert message.to == "alice@example.com"
        assert "Password protected: yes" in message.body
        assert "View limit: 3" in message.body
        assert "Expires: never" in message.body

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            render(object())


class TestDispatcher:
    async def test_delivers(self, running):
        sender = RecordingSender()
        dispatcher = await running(sender)

        assert dispatcher.dispatch([shared_event(), issued_event()]) == 2
        await dispatcher.drain()

        assert sorted(to for to, _, _ in sender.sent) == ["alice@example.com", "bob@example.com"]

    async def test_retries_then_succeeds(self, running):
        sender = RecordingSender(failures=2)
        dispatcher = await running(sender)

        dispatcher.dispatch([shared_event()])
        await dispatcher.drain()

        assert len(sender.calls) == 3
        assert len(sender.sent) == 1

    async def test_gives_up_after_max_attempts(self, running):
        sender = RecordingSender(failures=10)
        dispatcher = await running(sender)

        dispatcher.dispatch([shared_event()])
        await dispatcher.drain()

        assert len(sender.calls) == 3
        assert sender.sent == []
        assert dispatcher.running

    async def test_backoff_is_exponential(self, running, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("slate.notifications.dispatcher.asyncio.sleep", fake_sleep)
        dispatcher = await running(RecordingSender(failures=10), backoff=2.0)

        dispatcher.dispatch([shared_event()])
        await dispatcher.drain()
        assert delays == [2.0, 4.0]

    async def test_dispatch_does_not_wait_for_delivery(self, running):
        release = asyncio.Event()

        async def slow_sender(to_email, subject, body):
            await release.wait()

        dispatcher = await running(slow_sender)
        assert dispatcher.dispatch([shared_event()]) == 1
        release.set()
        await dispatcher.drain()

    async def test_disabled_drops_events(self):
        sender = RecordingSender()
        dispatcher = NotificationDispatcher(sender, enabled=False)
        assert dispatcher.dispatch([shared_event()]) == 0

    async def test_stop_cancels_workers(self):
        dispatcher = NotificationDispatcher(RecordingSender(), concurrency=3, enabled=True)
        await dispatcher.start()
        assert dispatcher.running
        await dispatcher.stop()
        assert not dispatcher.running
