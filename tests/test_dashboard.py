import pytest
from fastapi.testclient import TestClient

import app.api as api_module
from app.routes import proxy as proxy_routes
from conftest import pickup, pickups_body

LOGIN = "/api/user/login"


@pytest.fixture
def client(monkeypatch, upstream):
    monkeypatch.setattr(proxy_routes, "build_aggregator", lambda: upstream.aggregator())
    return TestClient(api_module.app)


def test_dashboard_renders_free_slots_and_store_errors(client, upstream):
    upstream.add(
        "GET",
        "/api/stores/1/pickups",
        200,
        content=pickups_body(
            pickup("2025-10-20T18:00:00+02:00", description="Montagsabholung"),
            pickup("2025-10-21T18:00:00+02:00", total=2, occupied=1, description="Besetzt"),
        ),
    )
    upstream.add("GET", "/api/stores/2/pickups", 401)
    upstream.add("POST", LOGIN, 401)

    resp = client.get("/dashboard", params={"store_id": "1,2"})

    assert resp.status_code == 200
    html = resp.text
    assert "Mo., 20.10.2025, 18:00" in html
    assert "Montagsabholung" in html
    assert "Besetzt" not in html
    assert 'class="card monday"' in html
    assert "Frei: 2" in html
    assert "Laden 2: HTTP 401" in html
    assert "Laden-IDs: 1, 2" in html
    assert "only_unoccupied=false" in html


def test_dashboard_can_show_occupied_slots(client, upstream):
    upstream.add(
        "GET",
        "/api/stores/1/pickups",
        200,
        content=pickups_body(pickup("2025-10-21T18:00:00+02:00", total=2, occupied=1, description="Besetzt")),
    )

    resp = client.get("/dashboard", params={"store_id": "1", "only_unoccupied": "false"})

    html = resp.text
    assert "Besetzt" in html
    assert "User 0" in html
    assert "https://foodsharing.de/images/0.png" in html
    assert "bestätigt" in html
    assert 'class="card free"' in html


def test_dashboard_empty_state_uses_default_stores(client, upstream):
    resp = client.get("/dashboard")

    assert resp.status_code == 200
    assert "No pickups found." in resp.text
    assert sorted(c.url.path for c in upstream.calls) == [
        "/api/stores/29438/pickups",
        "/api/stores/29441/pickups",
    ]


def test_dashboard_toggle_link_is_url_encoded(client, upstream):
    resp = client.get("/dashboard", params={"store_id": "a&b=c"})

    assert resp.status_code == 200
    assert 'href="/dashboard?store_id=a%26b%3Dc&amp;only_unoccupied=false"' in resp.text
    assert len(upstream.calls) == 1
