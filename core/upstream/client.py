"""
HTTP client for the fixed upstream host.

Redirects are never followed and cookies never survive a response: the only
session the client ever carries is the one the re-authenticator hands back
explicitly as a `cookie` header.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Union
from urllib.parse import quote, urlsplit

import httpx

from core.config import upstream_timeout
from core.errors import InvalidTargetError

UPSTREAM_HOST = "foodsharing.de"
UPSTREAM_BASE = f"https://{UPSTREAM_HOST}"
API_PREFIX = "/api/"
LOGIN_PATH = "/api/user/login"
USER_AGENT = "fs-watcher-proxy/1.0"
DEFAULT_ACCEPT = "application/json"

log = logging.getLogger("proxy")


def forward_headers(accept: Optional[str] = None, csrf_token: Optional[str] = None) -> Dict[str, str]:
    """
    Minimal header set sent upstream. Caller cookies are never part of it.
    """
    headers = {
        "accept": accept or DEFAULT_ACCEPT,
        "user-agent": USER_AGENT,
    }
    if csrf_token:
        headers["x-csrf-token"] = csrf_token
    return headers


def pickups_url(store_id: str) -> str:
    return f"{UPSTREAM_BASE}/api/stores/{quote(str(store_id), safe='')}/pickups"


def _resolve(path_or_url: str) -> str:
    if path_or_url.startswith("/"):
        return f"{UPSTREAM_BASE}{path_or_url}"
    parts = urlsplit(path_or_url)
    if (parts.hostname or "").lower() != UPSTREAM_HOST:
        raise InvalidTargetError(f"Only {UPSTREAM_HOST} is reachable through the upstream client")
    return path_or_url


class UpstreamClient:
    """
    One client per leg. Use as an async context manager so the connection pool is
    released when the leg is done.
    """

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._http = httpx.AsyncClient(
            timeout=timeout if timeout is not None else upstream_timeout(),
            follow_redirects=False,
            transport=transport,
        )

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fetch(
        self,
        method: str,
        path_or_url: str,
        headers: Dict[str, str],
        body: Union[bytes, str, None] = None,
    ) -> httpx.Response:
        """
        Issue one request and return the still-open response.

        The caller owns the response and must read or close it.
        """
        url = _resolve(path_or_url)
        request = self._http.build_request(method, url, headers=headers, content=body)
        response = await self._http.send(request, stream=True, follow_redirects=False)
        # httpx keeps Set-Cookie values in the client jar; drop them.
        self._http.cookies.clear()
        log.debug("Upstream response", extra={"method": method, "url": url, "status": response.status_code})
        return response


__all__ = [
    "UPSTREAM_HOST",
    "UPSTREAM_BASE",
    "API_PREFIX",
    "LOGIN_PATH",
    "USER_AGENT",
    "forward_headers",
    "pickups_url",
    "UpstreamClient",
]
