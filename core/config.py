"""
Configuration structs built from environment variables.

Secrets are read once at the edge (route or entry point) and passed into the
business logic explicitly, so tests can hand in fakes without touching os.environ.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import List, Mapping, Optional

from core.errors import MailConfigError

LOGIN_EMAIL_VAR = "FOODWATCH_LOGIN_EMAIL"
LOGIN_PASSWORD_VAR = "FOODWATCH_LOGIN_PASSWORD"

MAIL_VARS = (
    "FOODWATCH_SMTP_HOST",
    "FOODWATCH_SMTP_PORT",
    "FOODWATCH_SMTP_USER",
    "FOODWATCH_SMTP_PASS",
    "FOODWATCH_NOTIFY_FROM",
    "FOODWATCH_NOTIFY_TO",
)

DEFAULT_UPSTREAM_TIMEOUT = 20.0
DEFAULT_PROXY_URL = "http://localhost:8787/proxy"
DEFAULT_STATE_PATH = "watcher_state.json"
DEFAULT_STORE_IDS = "29441,29438"


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on", "granted")


@dataclass(frozen=True)
class LoginCredentials:
    """Operator account used to re-authenticate against the upstream."""

    email: Optional[str]
    password: Optional[str]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LoginCredentials":
        env = _env(environ)
        return cls(email=env.get(LOGIN_EMAIL_VAR), password=env.get(LOGIN_PASSWORD_VAR))

    def masked(self) -> dict:
        """Log-safe summary of the credentials."""
        return {
            "email": f"{self.email[:3]}***" if self.email else "MISSING",
            "password": "***SET***" if self.password else "MISSING",
            "emailLength": len(self.email or ""),
            "passwordLength": len(self.password or ""),
        }


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int
    user: str
    password: str
    sender: str
    recipient: str

    @property
    def implicit_tls(self) -> bool:
        return self.port == 465

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MailConfig":
        """
        Build the SMTP config. All six variables are required; raises MailConfigError
        naming the missing ones otherwise.
        """
        env = _env(environ)
        missing: List[str] = [name for name in MAIL_VARS if not (env.get(name) or "").strip()]
        if missing:
            raise MailConfigError(f"Missing SMTP/email configuration: {', '.join(missing)}")

        raw_port = env["FOODWATCH_SMTP_PORT"].strip()
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise MailConfigError(f"FOODWATCH_SMTP_PORT must be a number, got {raw_port!r}") from exc

        return cls(
            host=env["FOODWATCH_SMTP_HOST"].strip(),
            port=port,
            user=env["FOODWATCH_SMTP_USER"].strip(),
            password=env["FOODWATCH_SMTP_PASS"],
            sender=env["FOODWATCH_NOTIFY_FROM"].strip(),
            recipient=env["FOODWATCH_NOTIFY_TO"].strip(),
        )

    def masked(self) -> dict:
        return {
            "host": f"{self.host[:5]}***",
            "port": self.port,
            "user": f"{self.user[:3]}***",
            "from": self.sender,
            "to": self.recipient,
        }


def upstream_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
    raw = _env(environ).get("UPSTREAM_TIMEOUT_SECONDS", "")
    try:
        value = float(raw) if raw else DEFAULT_UPSTREAM_TIMEOUT
    except ValueError:
        return DEFAULT_UPSTREAM_TIMEOUT
    return value if value > 0 else DEFAULT_UPSTREAM_TIMEOUT


@dataclass(frozen=True)
class WatcherConfig:
    """Settings for the polling watcher process."""

    proxy_url: str = DEFAULT_PROXY_URL
    state_path: str = DEFAULT_STATE_PATH
    notifications_granted: bool = False
    visible: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatcherConfig":
        env = _env(environ)
        visible_raw = env.get("WATCHER_VISIBLE")
        visible = _truthy(visible_raw) if visible_raw else sys.stdout.isatty()
        return cls(
            proxy_url=env.get("WATCHER_PROXY_URL") or DEFAULT_PROXY_URL,
            state_path=env.get("WATCHER_STATE_PATH") or DEFAULT_STATE_PATH,
            notifications_granted=_truthy(env.get("WATCHER_NOTIFICATIONS", "")),
            visible=visible,
        )


__all__ = [
    "LOGIN_EMAIL_VAR",
    "LOGIN_PASSWORD_VAR",
    "MAIL_VARS",
    "DEFAULT_PROXY_URL",
    "DEFAULT_STATE_PATH",
    "DEFAULT_STORE_IDS",
    "LoginCredentials",
    "MailConfig",
    "WatcherConfig",
    "upstream_timeout",
]
