"""
Re-authentication against the upstream login endpoint.
"""
from __future__ import annotations

import json
import logging
from typing import List

import httpx

from core.config import LoginCredentials
from core.errors import LoginFailedError, MissingCredentialsError
from core.upstream.client import LOGIN_PATH, UpstreamClient

log = logging.getLogger("proxy")

LOGIN_HEADERS = {
    "accept": "application/json",
    "content-type": "application/json; charset=UTF-8",
}


def session_cookie(response: httpx.Response) -> str:
    """Join the name=value part of every Set-Cookie header with '; '."""
    pairs: List[str] = []
    for raw in response.headers.get_list("set-cookie"):
        pair = raw.split(";", 1)[0].strip()
        if pair:
            pairs.append(pair)
    return "; ".join(pairs)


class Reauthenticator:
    """
    Performs a single login exchange and returns the session cookie.

    The cookie is never cached: every 401 leads to a fresh login.
    """

    def __init__(self, credentials: LoginCredentials):
        self._credentials = credentials

    def _trimmed_credentials(self, label: str) -> tuple[str, str]:
        email = self._credentials.email
        password = self._credentials.password
        log.info("Login credentials check", extra={"leg": label, **self._credentials.masked()})
        if not email or not password:
            log.error(
                "Missing credentials",
                extra={"leg": label, "hasEmail": bool(email), "hasPassword": bool(password)},
            )
            raise MissingCredentialsError(
                "Missing FOODWATCH_LOGIN_EMAIL or FOODWATCH_LOGIN_PASSWORD in environment variables"
            )
        trimmed_email, trimmed_password = email.strip(), password.strip()
        if trimmed_email != email or trimmed_password != password:
            log.warning("Credentials had whitespace, trimmed", extra={"leg": label})
        return trimmed_email, trimmed_password

    async def reauthenticate(self, client: UpstreamClient, label: str = "") -> str:
        email, password = self._trimmed_credentials(label)
        body = json.dumps({"email": email, "password": password, "remember_me": True})

        response = await client.fetch("POST", LOGIN_PATH, dict(LOGIN_HEADERS), body=body)
        try:
            cookie = session_cookie(response)
            log.info(
                "Login response",
                extra={"leg": label, "status": response.status_code, "cookies": bool(cookie)},
            )
            if response.status_code == 200 and cookie:
                return cookie

            try:
                error_text = (await response.aread()).decode("utf-8", "replace")
            except httpx.HTTPError:
                error_text = ""
            log.error(
                "Login failed",
                extra={"leg": label, "status": response.status_code, "body": error_text[:200]},
            )
            raise LoginFailedError(response.status_code, bool(cookie))
        finally:
            await response.aclose()


__all__ = ["Reauthenticator", "session_cookie", "LOGIN_HEADERS"]
