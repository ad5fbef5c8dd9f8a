"""Tests for the analytics API routes.

Each test gets a fresh in-memory repository through a dependency override,
and the autouse fixture in conftest.py clears rate limit counters.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.adapters.analytics import InMemoryAnalyticsRepository
from app.api.routes.analytics import get_analytics_service
from app.main import app
from app.services.analytics_service import AnalyticsService


@pytest.fixture
def repository() -> InMemoryAnalyticsRepository:
    return InMemoryAnalyticsRepository()


@pytest.fixture
def client(repository: InMemoryAnalyticsRepository):
    service = AnalyticsService(repository)
    app.dependency_overrides[get_analytics_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}


def test_track_visit_records_forwarded_address(
    client: TestClient, repository: InMemoryAnalyticsRepository
) -> None:
    resp = client.post(
        "/analytics/visit",
        json={
            "page": "/",
            "userAgent": "Mozilla/5.0",
            "screenWidth": 1920,
            "screenHeight": 1080,
        },
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["visitId"] == 1
    assert "timestamp" in body
    assert resp.headers["X-RateLimit-Limit"] == "60"
    assert resp.headers["X-RateLimit-Remaining"] == "59"

    visit = repository.list_visits()[0]
    assert visit.ip_address == "203.0.113.9"
    assert visit.referrer == "direct"
    assert visit.screen_width == 1920


def test_track_visit_rejects_missing_page(client: TestClient) -> None:
    resp = client.post("/analytics/visit", json={"referrer": "https://google.com"})

    assert resp.status_code == 422


def test_track_click(client: TestClient) -> None:
    timestamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc).isoformat()
    resp = client.post(
        "/analytics/click",
        json={"button": "music", "page": "/", "destination": "/music", "timestamp": timestamp},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["clickId"] == 1
    assert body["timestamp"].startswith("2026-01-02T03:04:05")


def test_track_time_spent(client: TestClient) -> None:
    resp = client.post("/analytics/time-spent", json={"page": "/", "timeSpent": 42.5})

    assert resp.status_code == 201
    assert resp.json() == {"success": True, "trackingId": 1}


def test_track_time_spent_rejects_negative(client: TestClient) -> None:
    resp = client.post("/analytics/time-spent", json={"page": "/", "timeSpent": -1})

    assert resp.status_code == 422


def test_stats_returns_camel_case_payload(client: TestClient) -> None:
    client.post("/analytics/visit", json={"page": "/", "referrer": "https://x.com/chef"})
    client.post("/analytics/click", json={"button": "contact", "page": "/"})

    resp = client.get("/analytics/stats")

    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats["overview"] == {"totalVisits": 1, "uniqueDays": 1, "uniqueVisitors": 1}
    assert stats["topReferrers"] == [{"source": "Twitter/X", "count": 1}]
    assert stats["buttonClicks"] == [{"buttonName": "contact", "destination": None, "clicks": 1}]
    assert "generatedAt" in stats
    assert resp.headers["X-RateLimit-Limit"] == "10"


def test_stats_rate_limit_rejects_eleventh_request(client: TestClient) -> None:
    for _ in range(10):
        assert client.get("/analytics/stats").status_code == 200

    resp = client.get("/analytics/stats")

    assert resp.status_code == 429
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Rate limit exceeded"
    assert body["message"] == "Too many stats requests. Please try again later."
    assert 0 < body["retryAfter"] <= 60
    assert resp.headers["Retry-After"] == str(body["retryAfter"])


def test_stats_and_live_have_separate_counters(client: TestClient) -> None:
    for _ in range(11):
        client.get("/analytics/stats")

    resp = client.get("/analytics/live")

    assert resp.status_code == 200
    assert resp.headers["X-RateLimit-Remaining"] == "9"


def test_live_feed(client: TestClient) -> None:
    client.post("/analytics/visit", json={"page": "/a"})
    client.post("/analytics/visit", json={"page": "/b"})

    resp = client.get("/analytics/live")

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert {v["page"] for v in body["liveVisits"]} == {"/a", "/b"}
    assert "secondsAgo" in body["liveVisits"][0]


def test_clear_requires_api_key(client: TestClient) -> None:
    resp = client.request("DELETE", "/analytics/clear")

    assert resp.status_code == 401


def test_clear_rejects_invalid_api_key(client: TestClient) -> None:
    resp = client.request("DELETE", "/analytics/clear", headers={"X-API-Key": "nope"})

    assert resp.status_code == 403


def test_failed_key_guesses_count_against_strict_limit(client: TestClient) -> None:
    for i in range(5):
        resp = client.request("DELETE", "/analytics/clear", headers={"X-API-Key": f"guess-{i}"})
        assert resp.status_code == 403

    resp = client.request("DELETE", "/analytics/clear", headers={"X-API-Key": "guess-5"})

    assert resp.status_code == 429
    assert resp.json()["message"] == "This action is rate limited. Please try again later."


def test_clear_with_default_retention(client: TestClient, admin_headers: dict[str, str]) -> None:
    client.post("/analytics/visit", json={"page": "/", "timestamp": "2000-01-01T00:00:00Z"})
    client.post("/analytics/visit", json={"page": "/"})

    resp = client.request("DELETE", "/analytics/clear", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "deletedRecords": 1, "olderThanDays": 90}


def test_clear_with_explicit_retention(client: TestClient, admin_headers: dict[str, str]) -> None:
    client.post("/analytics/visit", json={"page": "/"})

    resp = client.request(
        "DELETE", "/analytics/clear", headers=admin_headers, json={"olderThanDays": 0}
    )

    assert resp.status_code == 200
    assert resp.json()["olderThanDays"] == 0


def test_clear_is_strictly_rate_limited(client: TestClient, admin_headers: dict[str, str]) -> None:
    for _ in range(5):
        assert client.request("DELETE", "/analytics/clear", headers=admin_headers).status_code == 200

    resp = client.request("DELETE", "/analytics/clear", headers=admin_headers)

    assert resp.status_code == 429
    assert resp.json()["message"] == "This action is rate limited. Please try again later."
    assert resp.json()["retryAfter"] <= 15 * 60


def test_health_is_not_rate_limited(client: TestClient) -> None:
    for _ in range(20):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    assert resp.json()["status"] == "ok"


def test_root_lists_endpoints(client: TestClient) -> None:
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.json()["endpoints"]["analytics"]["clear"] == "DELETE /analytics/clear"


def test_unknown_path_returns_404(client: TestClient) -> None:
    assert client.get("/nope").status_code == 404


def test_lifespan_runs_rate_limit_janitor(client: TestClient) -> None:
    janitor = app.state.rate_limit_janitor

    assert janitor.running is True


def test_openapi_marks_clear_as_admin_operation(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    clear_op = schema["paths"]["/analytics/clear"]["delete"]
    assert clear_op["security"] == [{"ApiKeyAuth": []}]
    assert "429" in schema["paths"]["/analytics/visit"]["post"]["responses"]
