"""HTTP tests for the paste and health routes."""
import inspect
from unittest.mock import MagicMock

import pytest

import pastebox.store
from pastebox.config import settings
from pastebox.exceptions import StorageError
from pastebox.routes import health, pastes
from pastebox.store import MAX_TTL_SECONDS, PasteStore

NOT_FOUND = {"error": "Paste not found"}


def _create(client, **body):
    response = client.post("/api/pastes", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# -------------------------------
# POST /api/pastes
# -------------------------------


def test_create_paste(client):
    data = _create(client, content="hello", ttl_seconds=60, max_views=2)

    assert len(data["id"]) == 10
    assert data["url"] == f"https://paste.example/p/{data['id']}"
    assert data["created_at"] == "2026-01-01T12:00:00.000Z"


@pytest.mark.parametrize(
    "body, field",
    [
        ({"content": ""}, "content"),
        ({"content": "   "}, "content"),
        ({"content": "hi", "ttl_seconds": 0}, "ttl_seconds"),
        ({"content": "hi", "ttl_seconds": -1}, "ttl_seconds"),
        ({"content": "hi", "ttl_seconds": 10**12}, "ttl_seconds"),
        ({"content": "hi", "max_views": 0}, "max_views"),
    ],
)
def test_create_paste_rejects_out_of_range_values(client, body, field):
    response = client.post("/api/pastes", json=body)

    assert response.status_code == 400
    assert response.json()["field"] == field
    assert field in response.json()["error"]


@pytest.mark.parametrize(
    "body, field",
    [
        ({}, "content"),
        ({"content": 42}, "content"),
        ({"content": "hi", "ttl_seconds": "10"}, "ttl_seconds"),
        ({"content": "hi", "max_views": 1.5}, "max_views"),
        ({"content": "hi", "max_views": True}, "max_views"),
    ],
)
def test_create_paste_rejects_wrong_types(client, body, field):
    response = client.post("/api/pastes", json=body)

    assert response.status_code == 400
    assert response.json()["field"] == field


def test_create_paste_storage_failure(client, store, monkeypatch):
    backend = MagicMock()
    backend.insert.side_effect = StorageError("Redis operation insert failed")
    monkeypatch.setattr(pastebox.store, "_store", PasteStore(backend, clock=store.clock))

    response = client.post("/api/pastes", json={"content": "hello"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


# -------------------------------
# GET /api/pastes/{id}
# -------------------------------


def test_fetch_view_limited_paste(client):
    paste_id = _create(client, content="hello", max_views=2)["id"]

    first = client.get(f"/api/pastes/{paste_id}")
    second = client.get(f"/api/pastes/{paste_id}")
    third = client.get(f"/api/pastes/{paste_id}")

    assert first.status_code == 200
    assert first.json() == {"content": "hello", "remaining_views": 1, "expires_at": None}
    assert second.json() == {"content": "hello", "remaining_views": 0, "expires_at": None}
    assert third.status_code == 404
    assert third.json() == NOT_FOUND


def test_fetch_ttl_paste_with_store_clock(client, clock):
    paste_id = _create(client, content="hello", ttl_seconds=10)["id"]

    clock.advance(5)
    response = client.get(f"/api/pastes/{paste_id}")
    assert response.status_code == 200
    assert response.json()["expires_at"] == "2026-01-01T12:00:10.000Z"
    assert response.json()["remaining_views"] is None

    clock.advance(5)
    response = client.get(f"/api/pastes/{paste_id}")
    assert response.status_code == 404
    assert response.json() == NOT_FOUND


def test_fetch_honours_test_clock_header_in_test_mode(client, monkeypatch):
    monkeypatch.setattr(settings, "TEST_MODE", True)
    paste_id = _create(client, content="hello", ttl_seconds=10)["id"]

    # 2026-01-01T12:00:05Z and 2026-01-01T12:00:10Z
    ok = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": "1767268805000"})
    gone = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": "1767268810000"})

    assert ok.status_code == 200
    assert gone.status_code == 404


def test_fetch_ignores_test_clock_header_outside_test_mode(client):
    paste_id = _create(client, content="hello", ttl_seconds=10)["id"]

    response = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": "1767268810000"})

    assert response.status_code == 200


def test_not_found_reasons_are_indistinguishable(client, clock):
    exhausted = _create(client, content="hello", max_views=1)["id"]
    expired = _create(client, content="hello", ttl_seconds=1)["id"]
    client.get(f"/api/pastes/{exhausted}")
    clock.advance(1)

    responses = [
        client.get("/api/pastes/doesnotexist"),
        client.get(f"/api/pastes/{exhausted}"),
        client.get(f"/api/pastes/{expired}"),
    ]

    assert [r.status_code for r in responses] == [404, 404, 404]
    assert [r.json() for r in responses] == [NOT_FOUND] * 3


def test_fetch_storage_failure(client, store, monkeypatch):
    backend = MagicMock()
    backend.consume.side_effect = StorageError("Redis operation consume failed")
    monkeypatch.setattr(pastebox.store, "_store", PasteStore(backend, clock=store.clock))

    response = client.get("/api/pastes/abc")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_fetch_paste_with_maximum_ttl(client):
    paste_id = _create(client, content="hello", ttl_seconds=MAX_TTL_SECONDS)["id"]

    response = client.get(f"/api/pastes/{paste_id}")

    assert response.status_code == 200
    assert response.json()["expires_at"] == "2125-12-08T12:00:00.000Z"


# -------------------------------
# GET /p/{id}
# -------------------------------


def test_view_paste_html_escapes_content(client):
    paste_id = _create(client, content="<script>alert('x')</script>")["id"]

    response = client.get(f"/p/{paste_id}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "&lt;script&gt;alert(&#x27;x&#x27;)&lt;/script&gt;" in response.text
    assert "<script>alert" not in response.text


def test_view_paste_counts_views(client, backend):
    paste_id = _create(client, content="hello", max_views=1)["id"]

    first = client.get(f"/p/{paste_id}")
    assert first.status_code == 200
    assert "Views left: 0" in first.text

    assert client.get(f"/p/{paste_id}").status_code == 404
    assert client.get(f"/api/pastes/{paste_id}").status_code == 404
    assert backend.get(paste_id).view_count == 1


def test_view_missing_paste_html(client):
    response = client.get("/p/doesnotexist")

    assert response.status_code == 404
    assert "404 - Paste Not Found" in response.text


# -------------------------------
# GET /api/healthz and /
# -------------------------------


def test_health_check(client):
    response = client.get("/api/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_check_store_down(client, store, monkeypatch):
    backend = MagicMock()
    backend.ping.side_effect = StorageError("Redis operation ping failed")
    monkeypatch.setattr(pastebox.store, "_store", PasteStore(backend, clock=store.clock))

    response = client.get("/api/healthz")

    assert response.status_code == 503
    assert response.json() == {"ok": False}


def test_root_serves_create_form(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "paste-form" in response.text


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.parametrize(
    "handler",
    [pastes.create_paste, pastes.fetch_paste, pastes.view_paste, health.health_check],
)
def test_store_handlers_run_in_threadpool(handler):
    # Redis calls block, so handlers must be plain functions
    assert not inspect.iscoroutinefunction(handler)
