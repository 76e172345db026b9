"""
Upstream access: client, re-authentication and request fan-out.
"""
from core.upstream.aggregator import (
    Aggregator,
    MultiTarget,
    SingleResponse,
    SingleTarget,
    parse_target,
    validate_target_url,
)
from core.upstream.auth import Reauthenticator, session_cookie
from core.upstream.client import UPSTREAM_HOST, UpstreamClient, forward_headers, pickups_url

__all__ = [
    "Aggregator",
    "MultiTarget",
    "SingleResponse",
    "SingleTarget",
    "parse_target",
    "validate_target_url",
    "Reauthenticator",
    "session_cookie",
    "UPSTREAM_HOST",
    "UpstreamClient",
    "forward_headers",
    "pickups_url",
]
