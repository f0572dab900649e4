"""
Tests for the engagement analytics API.

The app's lifespan is not run; each test installs a handler built on the
in-memory fakes into ``app.state``.
"""

import pytest
from fastapi.testclient import TestClient

from engagement_analytics.api.app import app
from engagement_analytics.errors import UnauthorizedError
from engagement_analytics.handlers import AnalyticsHandler

from .conftest import FakeTransport, profile

MATCHES = ("GET", "/communities/42/matches")
PROFILES = ("POST", "/communities/getProfilesForUserAndCommunity")


@pytest.fixture
def transport():
    return FakeTransport(
        {
            MATCHES: [
                {"id": 1, "userId": 1, "matchedUserId": 2, "type": "trova_magic", "createdAt": "2024-03-01T10:00:00Z"},
                {"id": 2, "userId": 2, "matchedUserId": 3, "type": "trova_magic", "createdAt": "2024-03-02T10:00:00Z"},
            ],
            PROFILES: [
                profile(1, "Ann Lee", interests=["Chess"]),
                profile(2, "Ben Ng", interests=["Chess"], isMentor=True),
                profile(3, "Cid Roe"),
            ],
        }
    )


@pytest.fixture
def client(make_service):
    """Create a test client wired to the fakes."""
    app.state.analytics_handler = AnalyticsHandler(analytics_service=make_service())
    yield TestClient(app)
    del app.state.analytics_handler


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Engagement Analytics API"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "cache_healthy": True}


def test_engagement(client):
    response = client.get("/communities/42/engagement", params={"start_date": "2024-03-01", "end_date": "2024-03-31"})
    assert response.status_code == 200
    data = response.json()
    assert data["community_id"] == 42
    assert data["connections_made"] == 2
    assert data["total_members"] == 3
    assert data["resolution"] == "primary"
    assert data["diagnostics"]["source"] == "calculated"


def test_reversed_date_range_is_rejected(client):
    response = client.get("/communities/42/engagement", params={"start_date": "2024-03-31", "end_date": "2024-03-01"})
    assert response.status_code == 422


def test_users_by_attribute(client):
    response = client.get("/communities/42/users/by-attribute", params={"type": "interest", "value": "chess"})
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert data["resolution"] == "fallback"
    assert [u["full_name"] for u in data["users"]] == ["Ann Lee", "Ben Ng"]


def test_unknown_attribute_type_is_a_bad_request(client):
    response = client.get("/communities/42/users/by-attribute", params={"type": "shoe_size", "value": "44"})
    assert response.status_code == 400


def test_drilldown(client):
    response = client.get(
        "/communities/42/drilldown",
        params={"type": "interest", "value": "chess", "page_size": 1, "sort_order": "desc"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["total_pages"] == 2
    assert data["data"][0]["full_name"] == "Ben Ng"


def test_drilldown_page_size_is_bounded(client):
    response = client.get(
        "/communities/42/drilldown",
        params={"type": "interest", "value": "chess", "page_size": 500},
    )
    assert response.status_code == 422


def test_magic_intros(client):
    response = client.get("/communities/42/magic-intros")
    assert response.status_code == 200
    data = response.json()
    assert [row["date"] for row in data["dates"]] == ["2024-03-02", "2024-03-01"]
    assert data["dates"][0]["date_display"] == "March 2, 2024"


def test_magic_intro_pairings(client):
    response = client.get("/communities/42/magic-intros/2024-03-01")
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-03-01"
    assert [(p["user_id"], p["matched_user_id"]) for p in data["pairings"]] == [(1, 2)]


def test_connections_and_partners(client):
    summary = client.get("/communities/42/connections").json()
    assert summary["total_pairs"] == 2
    assert summary["per_user"][0]["user"]["id"] == 2
    assert summary["per_user"][0]["connections"] == 2

    partners = client.get("/communities/42/connections/2").json()
    assert sorted(u["id"] for u in partners["users"]) == [1, 3]
    assert partners["resolution"] == "primary"


def test_match_engagement_and_channel_pairing(client):
    engagement = client.get("/communities/42/match-engagement")
    assert engagement.status_code == 200
    assert engagement.json()["direct_intro"]["total"] == 2

    pairing = client.get("/communities/42/channel-pairing")
    assert pairing.status_code == 200
    assert pairing.json()["unique_groups"] == 0


def test_mentors(client):
    response = client.get("/communities/42/mentors/can")
    assert response.status_code == 200
    assert [u["id"] for u in response.json()["users"]] == [2]

    assert client.get("/communities/42/mentors/maybe").status_code == 422


def test_mentor_stats_and_messages(client):
    stats = client.get("/communities/42/mentor-stats").json()
    assert (stats["can_mentor"], stats["want_mentor"]) == (1, 0)

    messages = client.get("/communities/42/messages").json()
    assert messages["total_messages"] == 0
    assert messages["resolution"] == "empty"


def test_skills_stats(client):
    response = client.get("/communities/42/skills-stats")
    assert response.status_code == 200
    assert response.json() == {
        "total_skills": 0,
        "users_with_skills": 0,
        "users_can_mentor": 1,
        "users_want_mentor": 0,
        "chart_consolidated": None,
        "resolution": "empty",
    }


def test_active_users(client):
    response = client.get("/communities/42/active-users", params={"start_date": "2024-03-01", "end_date": "2024-03-02"})
    assert response.status_code == 200
    assert response.json() == {"daily_active_users": 3, "weekly_active_users": 3, "resolution": "fallback"}


def test_unauthorized_backend(client, transport):
    transport.routes[MATCHES] = UnauthorizedError("forbidden", status=403)
    response = client.get("/communities/42/connections")
    assert response.status_code == 403


def test_cache_endpoints(client):
    client.get("/communities/42/magic-intros")

    stats = client.get("/cache/stats").json()
    assert stats["backend"] == "InMemoryResultStore"
    assert stats["entries"]["matches"] == 1

    assert client.post("/cache/sweep").json()["removed"] == 0
    cleared = client.delete("/cache").json()
    assert cleared["success"] is True
    assert cleared["removed"] >= 1
