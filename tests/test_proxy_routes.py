import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

import app.api as api_module
from app.routes import proxy as proxy_routes
from conftest import pickup, pickups_body

PICKUPS_1 = "/api/stores/1/pickups"
PICKUPS_2 = "/api/stores/2/pickups"
LOGIN = "/api/user/login"
TARGET = f"https://foodsharing.de{PICKUPS_1}"


@pytest.fixture
def client(monkeypatch, upstream):
    monkeypatch.setattr(proxy_routes, "build_aggregator", lambda: upstream.aggregator())
    return TestClient(api_module.app)


def test_healthz_and_root(client):
    assert client.get("/healthz").json() == {"ok": True}
    assert client.get("/").json() == {"ok": True, "path": "/"}


@pytest.mark.parametrize(
    "query,message",
    [
        ({}, "Missing url param"),
        ({"url": "::nope::"}, "Invalid url"),
        ({"url": "https://example.com/api/stores/1/pickups"}, "Only foodsharing.de /api/* is allowed"),
        ({"url": "https://foodsharing.de/login"}, "Only foodsharing.de /api/* is allowed"),
    ],
)
def test_invalid_target_is_rejected_without_upstream_call(client, upstream, query, message):
    resp = client.get("/proxy", params=query)

    assert resp.status_code == 400
    assert resp.json() == {"error": message}
    assert upstream.calls == []


def test_single_mode_passes_status_and_body_through(client, upstream):
    body = pickups_body(pickup())
    upstream.add(
        "GET",
        PICKUPS_1,
        200,
        content=body,
        headers={"content-type": "application/json", "set-cookie": "PHPSESSID=leak; path=/"},
    )

    resp = client.get("/proxy", params={"url": TARGET}, headers={"cookie": "mine=1", "x-csrf-token": "tok"})

    assert resp.status_code == 200
    assert resp.content == body
    assert resp.headers["content-type"] == "application/json"
    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "set-cookie" not in resp.headers

    sent = upstream.calls[0]
    assert "cookie" not in sent.headers
    assert sent.headers["x-csrf-token"] == "tok"
    assert sent.headers["user-agent"] == "fs-watcher-proxy/1.0"


def test_single_mode_forwards_upstream_error_status(client, upstream):
    upstream.add("GET", PICKUPS_1, 404, json={"message": "store not found"})

    resp = client.get("/proxy", params={"url": TARGET})

    assert resp.status_code == 404
    assert resp.json() == {"message": "store not found"}


def test_single_mode_reauthenticates_on_401(client, upstream):
    upstream.add("GET", PICKUPS_1, 401)
    upstream.add("GET", PICKUPS_1, 200, content=pickups_body(pickup(), pickup("2025-10-21T18:00:00+02:00")))
    upstream.add("POST", LOGIN, 200, headers={"set-cookie": "PHPSESSID=fresh; path=/; HttpOnly"})

    resp = client.get("/proxy", params={"url": TARGET})

    assert resp.status_code == 200
    assert len(resp.json()["pickups"]) == 2
    assert "set-cookie" not in resp.headers
    assert upstream.calls_to("GET", PICKUPS_1)[1].headers["cookie"] == "PHPSESSID=fresh"


def test_single_mode_failed_login_is_500(client, upstream):
    upstream.add("GET", PICKUPS_1, 401)
    upstream.add("POST", LOGIN, 401, json={"message": "wrong password"})

    resp = client.get("/proxy", params={"url": TARGET})

    assert resp.status_code == 500
    assert "error" in resp.json()


def test_single_mode_missing_credentials_is_500(monkeypatch, upstream):
    upstream.add("GET", PICKUPS_1, 401)
    monkeypatch.setattr(proxy_routes, "build_aggregator", lambda: upstream.aggregator(email=None, password=None))
    client = TestClient(api_module.app)

    resp = client.get("/proxy", params={"url": TARGET})

    assert resp.status_code == 500
    assert "FOODWATCH_LOGIN_EMAIL" in resp.json()["error"]
    assert upstream.calls_to("POST", LOGIN) == []


def test_multi_mode_reports_each_store(client, upstream):
    upstream.add("GET", PICKUPS_1, 200, content=pickups_body(pickup("a"), pickup("b"), pickup("c")))
    upstream.add("GET", PICKUPS_2, 401)
    upstream.add("POST", LOGIN, 401, json={"message": "nope"})

    resp = client.get("/proxy?store_id=1&store_id=2")

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    payload = resp.json()
    assert payload["multi"] is True
    by_id = {r["storeId"]: r for r in payload["results"]}
    assert by_id["1"]["status"] == 200
    assert [p["date"] for p in by_id["1"]["pickups"]] == ["a", "b", "c"]
    assert by_id["2"] == {"storeId": "2", "pickups": [], "status": 401}


def test_store_ids_win_over_url(client, upstream):
    upstream.add("GET", PICKUPS_1, 200, content=pickups_body())

    resp = client.get("/proxy", params={"store_id": "1", "url": "https://example.com/x"})

    assert resp.status_code == 200
    assert resp.json()["multi"] is True
    assert [c.url.path for c in upstream.calls] == [PICKUPS_1]


def test_unexpected_failure_is_500(monkeypatch):
    class Boom:
        async def handle(self, target, headers):
            raise RuntimeError("kaputt")

    monkeypatch.setattr(proxy_routes, "build_aggregator", lambda: Boom())
    client = TestClient(api_module.app)

    resp = client.get("/proxy", params={"url": TARGET})

    assert resp.status_code == 500
    assert resp.json() == {"error": "kaputt"}


def test_preflight_returns_204_with_cors(client, upstream):
    resp = client.options("/proxy")

    assert resp.status_code == 204
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "OPTIONS" in resp.headers["access-control-allow-methods"]
    assert "X-CSRF-Token" in resp.headers["access-control-allow-headers"]
    assert resp.headers["access-control-max-age"] == "3600"
    assert upstream.calls == []


def test_cookie_guard_strips_set_cookie():
    async def run_test():
        async def call_next(_request: Request) -> Response:
            resp = Response(content=json.dumps({"ok": True}), media_type="application/json")
            resp.set_cookie("session", "abc")
            return resp

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "query_string": b"",
        }
        resp = await api_module.cors_and_cookie_guard(Request(scope), call_next)

        assert "set-cookie" not in resp.headers
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Access-Control-Allow-Origin") == "*"

    asyncio.run(run_test())
