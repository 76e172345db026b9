import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from dotenv import load_dotenv

from core.config import DEFAULT_STORE_IDS, WatcherConfig
from core.display import fmt_date, fmt_timestamp, slot_badge, slot_message, totals, visible_slots
from core.errors import WatcherError
from core.models import PickupSlot, flatten_pickups, parse_aggregated
from core.state import (
    StateStore,
    load_free_keys,
    load_headers_blob,
    load_store_ids,
    save_free_keys,
    save_headers_blob,
    save_store_ids,
)
from core.upstream import pickups_url
from worker.changes import EMAIL_SUBJECT, ChangeSet, detect_changes, email_body
from worker.notifier import TEST_MESSAGE, ConsoleNotifier, EmailDispatcher, notify_url
from worker.scheduler import Poller, format_countdown

log = logging.getLogger("worker")


def split_store_ids(raw: str) -> List[str]:
    return [sid.strip() for sid in (raw or "").split(",") if sid.strip()]


def parse_headers(blob: str) -> Optional[Dict[str, str]]:
    """Custom request headers from a JSON object; None when empty or invalid."""
    if not blob or not blob.strip():
        return None
    try:
        value = json.loads(blob)
    except ValueError:
        log.warning("Ignoring invalid headers JSON")
        return None
    if not isinstance(value, dict):
        return None
    return {str(k): str(v) for k, v in value.items()}


def build_fetch_url(proxy_url: str, store_ids: str) -> str:
    """
    One store id goes through ?url=..., several through repeated ?store_id=.
    """
    ids = split_store_ids(store_ids)
    if not ids:
        raise WatcherError("No store ids configured")

    parts = urlsplit(proxy_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if len(ids) > 1:
        query.extend(("store_id", sid) for sid in ids)
    elif not any(key == "url" for key, _ in query):
        query.append(("url", pickups_url(ids[0])))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class Watcher:
    """
    Polls the proxy, keeps the latest pickups and fires notifications for slots
    that became free since the previous poll.
    """

    def __init__(
        self,
        config: WatcherConfig,
        store: StateStore,
        store_ids: Optional[str] = None,
        headers_blob: Optional[str] = None,
        notifier=None,
        emailer: Optional[EmailDispatcher] = None,
        http_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        only_unoccupied: bool = True,
        write: Callable[[str], None] = print,
    ):
        self.config = config
        self.store = store
        self.proxy_url = config.proxy_url
        self.store_ids = store_ids or load_store_ids(store) or DEFAULT_STORE_IDS
        self.headers_blob = headers_blob if headers_blob is not None else load_headers_blob(store)
        save_store_ids(store, self.store_ids)
        save_headers_blob(store, self.headers_blob)

        self.prev_free_keys: List[str] = load_free_keys(store)
        self.notifier = notifier or ConsoleNotifier()
        self.emailer = emailer or EmailDispatcher(self.proxy_url)
        self._http_factory = http_factory or (lambda: httpx.AsyncClient(timeout=60.0))
        self.only_unoccupied = only_unoccupied
        self.write = write

        self.pickups: List[PickupSlot] = []
        self.error: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.poller = Poller(self.run_once)

    async def fetch(self) -> List[PickupSlot]:
        # Snapshot the parameters; reconfigure() may change them while we wait.
        store_ids = self.store_ids
        url = build_fetch_url(self.proxy_url, store_ids)
        headers = {**(parse_headers(self.headers_blob) or {}), "cache-control": "no-store"}
        ids = split_store_ids(store_ids)
        single_id = ids[0] if len(ids) == 1 else ""

        async with self._http_factory() as client:
            response = await client.get(url, headers=headers)
        if not response.is_success:
            raise WatcherError(f"HTTP {response.status_code} {response.reason_phrase}: {response.text[:200]}")

        return flatten_pickups(parse_aggregated(response.json(), store_id=single_id))

    def _notify_locally(self, slots: List[PickupSlot]) -> None:
        for slot in slots:
            try:
                self.notifier.notify(slot_message(slot))
            except Exception as exc:
                log.warning("Local notification failed", extra={"error": str(exc)})

    async def run_once(self) -> Optional[ChangeSet]:
        """
        One poll:
        - fetch pickups through the proxy
        - diff free slots against the persisted baseline
        - notify for newly free slots
        - persist the new baseline
        Returns None when the fetch failed.
        """
        log.info("Checking for pickups...", extra={"storeIds": self.store_ids})
        self.error = None
        try:
            slots = await self.fetch()
        except Exception as exc:
            self.error = str(exc) or type(exc).__name__
            log.error("Poll failed", extra={"error": self.error})
            self.render()
            return None

        self.pickups = slots
        self.last_updated = datetime.now(timezone.utc)

        changes = detect_changes(slots, self.prev_free_keys)
        if changes.newly_free:
            log.info("Newly free slots", extra={"keys": changes.newly_free_keys})
            if self.config.visible and self.config.notifications_granted:
                self._notify_locally(changes.newly_free)
            self.emailer.dispatch(EMAIL_SUBJECT, email_body(changes.newly_free))

        self.prev_free_keys = changes.now_free_keys
        save_free_keys(self.store, changes.now_free_keys)
        self.render()
        return changes

    async def reconfigure(
        self,
        store_ids: Optional[str] = None,
        proxy_url: Optional[str] = None,
        headers_blob: Optional[str] = None,
    ) -> bool:
        """Apply new poll parameters; restarts both timers when anything changed."""
        changed = False
        if store_ids is not None and store_ids != self.store_ids:
            self.store_ids = store_ids
            save_store_ids(self.store, store_ids)
            changed = True
        if headers_blob is not None and headers_blob != self.headers_blob:
            self.headers_blob = headers_blob
            save_headers_blob(self.store, headers_blob)
            changed = True
        if proxy_url is not None and proxy_url != self.proxy_url:
            self.proxy_url = proxy_url
            self.emailer.url = notify_url(proxy_url)
            changed = True
        if changed:
            log.info("Configuration changed, restarting poller")
            await self.poller.restart()
        return changed

    def render(self) -> None:
        """Console dashboard: status block plus the visible slots."""
        counts = totals(self.pickups)
        lines = [
            "",
            f"Foodsharing Pickup Watcher  |  Nächste Prüfung in {format_countdown(self.poller.remaining())}",
            f"Laden-IDs: {self.store_ids}",
            f"Last updated: {fmt_timestamp(self.last_updated)}",
            f"Pickups: {counts.total} ({counts.with_free} with free slots)",
        ]
        if self.error:
            lines.append(f"Error: {self.error}")
        shown = visible_slots(self.pickups, only_unoccupied=self.only_unoccupied)
        if not shown and not self.error:
            lines.append("No pickups found.")
        for slot in shown:
            lines.append(f"  {fmt_date(slot.date):<26} {slot.description or 'Abholung':<20} {slot_badge(slot)}")
        self.write("\n".join(lines))

    def test_notification(self) -> bool:
        if not self.config.notifications_granted:
            log.warning("Local notifications are not enabled (set WATCHER_NOTIFICATIONS=granted)")
            return False
        self.notifier.notify(TEST_MESSAGE)
        return True


async def _read_line() -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, sys.stdin.readline)


async def console_commands(watcher: Watcher) -> None:
    """
    Interactive controls while attached to a terminal:
      c | check          poll now
      s | status         show the dashboard again
      a | all            toggle between free-only and all slots
      ids 1,2            change store ids
      headers {...}      change custom header JSON
      proxy <url>        change proxy endpoint
      q | quit           exit
    """
    while True:
        line = await _read_line()
        if not line:
            return
        command, _, arg = line.strip().partition(" ")
        arg = arg.strip()
        if command in ("q", "quit"):
            return
        if command in ("c", "check"):
            watcher.poller.check_now()
        elif command in ("s", "status"):
            watcher.render()
        elif command in ("a", "all"):
            watcher.only_unoccupied = not watcher.only_unoccupied
            watcher.render()
        elif command == "ids" and arg:
            await watcher.reconfigure(store_ids=arg)
        elif command == "headers":
            await watcher.reconfigure(headers_blob=arg)
        elif command == "proxy" and arg:
            await watcher.reconfigure(proxy_url=arg)
        elif command:
            watcher.write("Commands: check, status, all, ids <a,b>, headers <json>, proxy <url>, quit")


async def main(args: Optional[argparse.Namespace] = None) -> int:
    args = args or parse_args([])
    config = WatcherConfig.from_env()
    if args.proxy_url:
        config = WatcherConfig(
            proxy_url=args.proxy_url,
            state_path=config.state_path,
            notifications_granted=config.notifications_granted,
            visible=config.visible,
        )
    store = StateStore(config.state_path)
    watcher = Watcher(
        config,
        store,
        store_ids=args.store_ids,
        headers_blob=args.headers,
        only_unoccupied=not args.show_all,
    )

    if args.test_notification:
        return 0 if watcher.test_notification() else 1

    if args.once:
        changes = await watcher.run_once()
        await watcher.emailer.drain()
        return 0 if changes is not None else 1

    watcher.poller.start()
    try:
        if config.visible and sys.stdin.isatty():
            await console_commands(watcher)
        else:
            await asyncio.Event().wait()
    finally:
        await watcher.poller.stop()
        await watcher.emailer.drain()
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch foodsharing stores for free pickup slots.")
    parser.add_argument("--store-ids", help="Comma separated store ids, e.g. 29441,29438 (remembered).")
    parser.add_argument("--proxy-url", help="Proxy endpoint, e.g. http://localhost:8787/proxy")
    parser.add_argument("--headers", help='Extra request headers as JSON, e.g. {"accept":"application/json"} (remembered).')
    parser.add_argument("--once", action="store_true", help="Poll once and exit.")
    parser.add_argument("--show-all", action="store_true", help="Show occupied slots too.")
    parser.add_argument("--test-notification", action="store_true", help="Send a local test notification and exit.")
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None) -> int:
    """Console script entrypoint."""
    # Load `.env` for local/dev runs (override=True so updates take effect after restart).
    load_dotenv(override=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = parse_args(argv)
    try:
        return asyncio.run(main(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(cli())
