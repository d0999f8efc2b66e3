"""Fire-and-forget delivery of share notifications.

The dispatcher is an explicit handle: the application builds one at startup,
calls ``start()`` to spawn its workers and ``stop()`` on shutdown. Write
operations return their events and the caller hands them to ``dispatch``,
which only enqueues. Delivery failures are retried with exponential backoff,
then logged and counted; they never reach the request that caused them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from slate.core.config import settings
from slate.monitoring.setup import report_notification
from slate.notifications.templates import render
from slate.sharing.events import Event
from slate.utils.email import send_email

logger = logging.getLogger(__name__)

Sender = Callable[[str, str, str], Awaitable[None]]


class NotificationDispatcher:
    def __init__(
        self,
        sender: Sender = send_email,
        *,
        concurrency: int | None = None,
        max_attempts: int | None = None,
        backoff: float | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.sender = sender
        self.concurrency = concurrency or settings.NOTIFY_CONCURRENCY
        self.max_attempts = max_attempts or settings.NOTIFY_MAX_ATTEMPTS
        self.backoff = settings.NOTIFY_BACKOFF_SECS if backoff is None else backoff
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"notify-worker-{n}")
            for n in range(self.concurrency)
        ]
        logger.info("Notification dispatcher started with %s workers", self.concurrency)

    async def stop(self, drain_timeout: float = 5.0) -> None:
        if not self._workers:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning("Dropping %s undelivered notifications on shutdown", self._queue.qsize())
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Notification dispatcher stopped")

    def dispatch(self, events: Iterable[Event]) -> int:
        """Enqueue events without waiting; returns how many were queued."""
        if not self.enabled:
            return 0
        queued = 0
        for event in events:
            self._queue.put_nowait(event)
            queued += 1
        return queued

    async def drain(self) -> None:
        await self._queue.join()

    async def _worker(self, n: int) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: Event) -> bool:
        message = render(event)
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.sender(message.to, message.subject, message.body)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "Notification %s failed (attempt %s/%s): %s",
                    event.kind, attempt, self.max_attempts, e,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff * 2 ** (attempt - 1))
                continue
            report_notification(event.kind, delivered=True)
            logger.info("Notification %s delivered", event.kind)
            return True

        report_notification(event.kind, delivered=False)
        logger.error("Notification %s dropped after %s attempts", event.kind, self.max_attempts)
        return False
