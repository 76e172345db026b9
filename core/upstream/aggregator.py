"""
Fan a proxy request out to one or many upstream targets.

Single-URL mode forwards the real upstream status and streams the body back.
Multi-store mode always succeeds at the envelope level and reports each leg's
status inside the payload instead.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import urlsplit

import httpx

from core.config import LoginCredentials
from core.errors import InvalidTargetError, LoginFailedError, MissingCredentialsError
from core.models import MultiResult, StoreResult
from core.upstream.auth import Reauthenticator
from core.upstream.client import API_PREFIX, UPSTREAM_BASE, UPSTREAM_HOST, UpstreamClient, pickups_url

log = logging.getLogger("proxy")

DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True)
class SingleTarget:
    url: str


@dataclass(frozen=True)
class MultiTarget:
    store_ids: List[str]


Target = Union[SingleTarget, MultiTarget]


@dataclass
class SingleResponse:
    """Upstream response ready to be streamed to the caller."""

    status: int
    content_type: str
    body: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]


def validate_target_url(url: Optional[str]) -> str:
    """
    Return the upstream URL to fetch, or raise InvalidTargetError.

    Only https://foodsharing.de/api/* is allowed; the proxy is not an open relay.
    """
    if not url:
        raise InvalidTargetError("Missing url param")
    try:
        parts = urlsplit(url)
        hostname = (parts.hostname or "").lower()
    except ValueError as exc:
        raise InvalidTargetError("Invalid url") from exc
    if parts.scheme not in ("http", "https") or not hostname:
        raise InvalidTargetError("Invalid url")

    path = parts.path or "/"
    segments = path.split("/")
    if hostname != UPSTREAM_HOST or not path.startswith(API_PREFIX) or ".." in segments or "." in segments:
        log.error("Invalid URL - not allowed", extra={"hostname": hostname, "path": path})
        raise InvalidTargetError(f"Only {UPSTREAM_HOST} /api/* is allowed")

    query = f"?{parts.query}" if parts.query else ""
    return f"{UPSTREAM_BASE}{path}{query}"


def parse_target(url: Optional[str], store_ids: Sequence[str]) -> Target:
    ids = [sid.strip() for sid in store_ids if sid and sid.strip()]
    if ids:
        return MultiTarget(store_ids=ids)
    return SingleTarget(url=validate_target_url(url))


class Aggregator:
    def __init__(
        self,
        credentials: LoginCredentials,
        client_factory: Callable[[], UpstreamClient] = UpstreamClient,
    ):
        self._reauth = Reauthenticator(credentials)
        self._client_factory = client_factory

    async def handle(self, target: Target, headers: Dict[str, str]) -> Union[SingleResponse, MultiResult]:
        if isinstance(target, MultiTarget):
            return await self.fetch_multi(target.store_ids, headers)
        return await self.fetch_single(target.url, headers)

    async def _run_leg(self, client: UpstreamClient, url: str, headers: Dict[str, str], label: str) -> httpx.Response:
        """
        Initial request plus at most one re-authentication and one retry.

        A second 401 is returned as is; there is no further login attempt.
        """
        response = await client.fetch("GET", url, headers)
        log.info("Initial response", extra={"leg": label, "status": response.status_code})
        if response.status_code != 401:
            return response

        await response.aclose()
        log.info("Got 401, attempting login", extra={"leg": label})
        cookie = await self._reauth.reauthenticate(client, label=label)

        retried = await client.fetch("GET", url, {**headers, "cookie": cookie})
        log.info("Retry response", extra={"leg": label, "status": retried.status_code})
        return retried

    async def fetch_single(self, url: str, headers: Dict[str, str]) -> SingleResponse:
        """
        Raises ReauthError or httpx.HTTPError; on success the caller owns the
        returned stream and must call ``close``.
        """
        client = self._client_factory()
        try:
            response = await self._run_leg(client, url, headers, label=url)
        except BaseException:
            await client.aclose()
            raise

        async def close() -> None:
            await response.aclose()
            await client.aclose()

        log.info("Final response status", extra={"leg": url, "status": response.status_code})
        return SingleResponse(
            status=response.status_code,
            content_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            body=response.aiter_bytes(),
            close=close,
        )

    async def _fetch_store(self, store_id: str, headers: Dict[str, str]) -> StoreResult:
        url = pickups_url(store_id)
        label = f"store {store_id}"
        try:
            async with self._client_factory() as client:
                try:
                    response = await self._run_leg(client, url, headers, label=label)
                except LoginFailedError:
                    return StoreResult(store_id=store_id, pickups=[], status=401)
                try:
                    status = response.status_code
                    raw = await response.aread() if status == 200 else b""
                finally:
                    await response.aclose()
        except MissingCredentialsError:
            return StoreResult(store_id=store_id, pickups=[], status=500, error="Missing credentials")
        except httpx.HTTPError as exc:
            log.error("Upstream request failed", extra={"leg": label, "error": str(exc)})
            return StoreResult(store_id=store_id, pickups=[], status=502, error=str(exc) or type(exc).__name__)
        except Exception as exc:
            log.exception("Unexpected leg failure", extra={"leg": label})
            return StoreResult(store_id=store_id, pickups=[], status=500, error=str(exc) or type(exc).__name__)

        if status != 200:
            log.error("Failed with status", extra={"leg": label, "status": status})
            return StoreResult(store_id=store_id, pickups=[], status=status)

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            log.error("Failed to parse response", extra={"leg": label, "error": str(exc)})
            return StoreResult(store_id=store_id, pickups=[], status=status)

        pickups = payload.get("pickups") if isinstance(payload, dict) else None
        pickups = pickups if isinstance(pickups, list) else []
        log.info("Parsed pickups", extra={"leg": label, "count": len(pickups)})
        return StoreResult(store_id=store_id, pickups=pickups, status=status)

    async def fetch_multi(self, store_ids: Sequence[str], headers: Dict[str, str]) -> MultiResult:
        log.info("Processing store IDs", extra={"storeIds": list(store_ids)})
        results = await asyncio.gather(*(self._fetch_store(sid, headers) for sid in store_ids))
        log.info(
            "Multi-store request completed",
            extra={"totalStores": len(results), "statuses": [(r.store_id, r.status) for r in results]},
        )
        return MultiResult(results=list(results))


__all__ = [
    "SingleTarget",
    "MultiTarget",
    "SingleResponse",
    "Aggregator",
    "validate_target_url",
    "parse_target",
]
