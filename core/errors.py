"""
Exception types shared by the proxy and the watcher.
"""
from __future__ import annotations


class WatcherError(Exception):
    """Base class for all domain errors."""


class InvalidTargetError(WatcherError):
    """The caller asked the proxy for something it will not fetch (HTTP 400)."""


class ReauthError(WatcherError):
    """Re-authentication against the upstream did not produce a session."""


class MissingCredentialsError(ReauthError, RuntimeError):
    """Login email or password is not configured."""


class LoginFailedError(ReauthError):
    def __init__(self, status: int, has_cookie: bool):
        self.status = status
        self.has_cookie = has_cookie
        super().__init__(f"Upstream login failed (status={status}, cookie={'yes' if has_cookie else 'no'})")


class MailConfigError(WatcherError, RuntimeError):
    """SMTP settings are incomplete or invalid."""


__all__ = [
    "WatcherError",
    "InvalidTargetError",
    "ReauthError",
    "MissingCredentialsError",
    "LoginFailedError",
    "MailConfigError",
]
