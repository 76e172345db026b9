"""
Local (console) and remote (email through the proxy) notifications.

Both are best effort: a failure is logged and never reaches the poll.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Set
from urllib.parse import urljoin

import httpx

log = logging.getLogger("worker")

TEST_MESSAGE = "Test-Benachrichtigung: Foodsharing Abholungs-Beobachter"


def notify_url(proxy_url: str) -> str:
    """The email endpoint lives next to /proxy on the same service."""
    return urljoin(proxy_url, "notify-email")


class ConsoleNotifier:
    """Prints notifications to the attached terminal."""

    def __init__(self, write: Callable[[str], None] = print):
        self._write = write

    def notify(self, message: str) -> None:
        self._write(f"\a🔔 {message}")
        log.info("Local notification", extra={"notification": message})


class EmailDispatcher:
    """
    Fire-and-forget POST to /notify-email.

    dispatch() returns the scheduled task; callers are not expected to await it.
    """

    def __init__(
        self,
        proxy_url: str,
        http_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.url = notify_url(proxy_url)
        self._http_factory = http_factory or (lambda: httpx.AsyncClient(timeout=30.0))
        self._pending: Set[asyncio.Task] = set()

    async def send(self, subject: str, text: str) -> None:
        async with self._http_factory() as client:
            response = await client.post(self.url, json={"subject": subject, "text": text})
        if not response.is_success:
            raise RuntimeError(f"notify-email returned {response.status_code}: {response.text[:200]}")
        log.info("Email notification sent", extra={"url": self.url})

    def dispatch(self, subject: str, text: str) -> asyncio.Task:
        task = asyncio.create_task(self.send(subject, text))
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning("Email notification failed", extra={"url": self.url, "error": str(exc)})

    async def drain(self) -> None:
        """Wait for outstanding sends; used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["TEST_MESSAGE", "notify_url", "ConsoleNotifier", "EmailDispatcher"]
