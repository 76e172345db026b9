import json
from typing import Dict, List, Tuple

import httpx
import pytest

from core.config import LOGIN_EMAIL_VAR, LOGIN_PASSWORD_VAR, MAIL_VARS, LoginCredentials
from core.upstream import Aggregator, UpstreamClient


class FakeUpstream:
    """
    Scripted stand-in for foodsharing.de behind httpx.MockTransport.

    Responses are queued per (method, path); the last one repeats.
    """

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], list] = {}

    def add(self, method: str, path: str, status: int = 200, **kwargs) -> "FakeUpstream":
        self._routes.setdefault((method, path), []).append((status, kwargs))
        return self

    def fail(self, method: str, path: str, exc: Exception) -> "FakeUpstream":
        self._routes.setdefault((method, path), []).append(exc)
        return self

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "not scripted"})
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(entry, Exception):
            raise entry
        status, kwargs = entry
        return httpx.Response(status, **kwargs)

    def client_factory(self):
        return lambda: UpstreamClient(timeout=5.0, transport=httpx.MockTransport(self.handler))

    def aggregator(self, email="user@example.com", password="secret") -> Aggregator:
        return Aggregator(LoginCredentials(email=email, password=password), client_factory=self.client_factory())


def pickup(date="2025-10-20T18:00:00+02:00", total=2, occupied=0, description="Abholung", **extra):
    raw = {
        "date": date,
        "description": description,
        "totalSlots": total,
        "occupiedSlots": [
            {"profile": {"name": f"User {i}", "avatar": f"/images/{i}.png"}, "isConfirmed": True}
            for i in range(occupied)
        ],
    }
    raw.update(extra)
    return raw


def pickups_body(*items) -> bytes:
    return json.dumps({"pickups": list(items)}).encode()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (LOGIN_EMAIL_VAR, LOGIN_PASSWORD_VAR, *MAIL_VARS):
        monkeypatch.delenv(name, raising=False)
    yield
