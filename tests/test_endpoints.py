"""
HTTP tests for the public page and the admin API.

Usage:
    pytest tests/test_endpoints.py -v
"""
import pytest

import main
from conftest import PASSWORD
from errors import AuthError


# ============================================================================
# SERVICE
# ============================================================================

class TestServiceEndpoints:

    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_database_diagnostic(self, client):
        data = client.get("/test").json()
        assert data["connection_status"] == "Connected"

    def test_unconfigured_store(self, client):
        main.app.dependency_overrides[main.get_optional_store] = lambda: None
        assert client.get("/test").json()["connection_status"] == "Not Connected"
        page = client.get("/")
        assert page.status_code == 200
        assert "NA Senior High School" in page.text
        response = client.post("/admin/login", json={"email": "coach@example.com", "password": PASSWORD})
        assert response.status_code == 503


# ============================================================================
# LOGIN
# ============================================================================

class TestLogin:

    def test_login_returns_token_and_ready_state(self, client):
        response = client.post("/admin/login", json={"email": "coach@example.com", "password": PASSWORD})
        data = response.json()
        assert response.status_code == 200
        assert data["token"]
        assert data["state"] == "ready"

    def test_wrong_password(self, client):
        response = client.post("/admin/login", json={"email": "coach@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password. Please try again."

    def test_rate_limited(self, client, authenticator):
        authenticator.error = AuthError(AuthError.RATE_LIMITED, "TOO_MANY_ATTEMPTS_TRY_LATER")
        response = client.post("/admin/login", json={"email": "coach@example.com", "password": PASSWORD})
        assert response.status_code == 429
        assert "wait" in response.json()["detail"]

    def test_admin_requires_session(self, client):
        assert client.get("/admin/news").status_code == 401
        assert client.get("/admin/news", headers={"X-Admin-Session": "bogus"}).status_code == 401

    def test_logout_ends_session(self, client, admin_headers):
        client.post("/admin/logout", headers=admin_headers)
        assert client.get("/admin/session", headers=admin_headers).status_code == 401

    def test_idle_session_expires(self, client, admin_headers):
        token = admin_headers["X-Admin-Session"]
        session = main.app.state.sessions[token]
        session.last_seen -= main.settings.SESSION_TTL + 1
        assert client.get("/admin/session", headers=admin_headers).status_code == 401
        assert token not in main.app.state.sessions
        assert session.user is None

    def test_new_login_evicts_idle_sessions(self, client, admin_headers):
        token = admin_headers["X-Admin-Session"]
        main.app.state.sessions[token].last_seen -= main.settings.SESSION_TTL + 1
        response = client.post("/admin/login", json={"email": "coach@example.com", "password": PASSWORD})
        assert response.status_code == 200
        assert list(main.app.state.sessions) == [response.json()["token"]]

    def test_active_session_is_refreshed(self, client, admin_headers):
        session = main.app.state.sessions[admin_headers["X-Admin-Session"]]
        session.last_seen -= main.settings.SESSION_TTL - 60
        assert client.get("/admin/session", headers=admin_headers).status_code == 200
        assert not session.expired(main.settings.SESSION_TTL)


# ============================================================================
# ADMIN FLOWS
# ============================================================================

def _save(client, headers, collection, values, doc_id=None):
    client.post(f"/admin/{collection}/form", json={"id": doc_id}, headers=headers)
    return client.post(f"/admin/{collection}/save", json=values, headers=headers)


class TestAdminFlows:

    def test_schedule_order_end_to_end(self, client, admin_headers):
        slot = {"day": "Tuesday", "startTime": "20:00", "endTime": "21:00"}
        _save(client, admin_headers, "schedule", dict(slot, location="Order One", order=1))
        response = _save(client, admin_headers, "schedule", dict(slot, location="Order Zero", order=0))
        assert response.status_code == 200
        rows = response.json()["rows"]
        assert [r["location"] for r in rows] == ["Order Zero", "Order One"]

        grid = client.get("/api/sections").json()["regions"]["scheduleGrid"]
        assert grid.index("Order Zero") < grid.index("Order One")

    def test_draft_news_hidden_publicly_but_listed_in_admin(self, client, admin_headers):
        _save(client, admin_headers, "news", {"title": "Secret plans", "content": "wip", "published": False})
        rows = client.get("/admin/news", headers=admin_headers).json()["rows"]
        assert rows[0]["title"] == "Secret plans"
        assert rows[0]["status"] == "Draft"
        assert "Secret plans" not in client.get("/").text

    def test_flyer_delete_declined_then_confirmed(self, client, admin_headers):
        saved = _save(client, admin_headers, "flyers", {"title": "Clinic Day", "imageUrl": "https://example.com/c.png"})
        flyer_id = saved.json()["id"]
        assert "Clinic Day" in client.get("/").text

        declined = client.delete(f"/admin/flyers/{flyer_id}", params={"confirm": "false"}, headers=admin_headers)
        assert declined.json()["deleted"] is False
        assert declined.json()["prompt"] == "Delete this flyer? This cannot be undone."
        assert len(client.get("/admin/flyers", headers=admin_headers).json()["rows"]) == 1
        assert "Clinic Day" in client.get("/").text

        confirmed = client.delete(f"/admin/flyers/{flyer_id}", params={"confirm": "true"}, headers=admin_headers)
        assert confirmed.json()["deleted"] is True
        assert client.get("/admin/flyers", headers=admin_headers).json()["rows"] == []
        assert "Clinic Day" not in client.get("/").text

    def test_validation_error_before_write(self, client, admin_headers, mongo_db):
        response = _save(client, admin_headers, "competitions", {"name": "", "date": ""})
        assert response.status_code == 422
        assert "name: required" in response.json()["problems"]
        assert mongo_db["competitions"].count_documents({}) == 0

    def test_save_without_open_form_conflicts(self, client, admin_headers):
        client.post("/admin/news/cancel", headers=admin_headers)
        response = client.post("/admin/news/save", json={"title": "t", "content": "c"}, headers=admin_headers)
        assert response.status_code == 409

    def test_edit_existing_competition(self, client, admin_headers):
        saved = _save(client, admin_headers, "competitions", {"name": "Open", "date": "2030-06-01"})
        event_id = saved.json()["id"]
        form = client.post("/admin/competitions/form", json={"id": event_id}, headers=admin_headers).json()
        assert form["form"]["name"] == "Open"
        assert form["state"] == "editing"
        client.post("/admin/competitions/save", json={"endDate": "2030-06-03"}, headers=admin_headers)
        competitions = client.get("/api/sections").json()["regions"]["compList"]
        assert "Jun 1, 2030 – Jun 3, 2030" in competitions

    def test_missing_record(self, client, admin_headers):
        response = client.post("/admin/news/form", json={"id": "64b7f0c2a1b2c3d4e5f60718"}, headers=admin_headers)
        assert response.status_code == 404

    def test_unknown_collection(self, client, admin_headers):
        assert client.get("/admin/members", headers=admin_headers).status_code == 404

    @pytest.mark.parametrize("collection", ["schedule", "news", "flyers", "competitions", "sponsors"])
    def test_empty_lists(self, client, admin_headers, collection):
        data = client.get(f"/admin/{collection}", headers=admin_headers).json()
        assert data["rows"] == []
        assert "empty-state" in data["html"]
        assert data["state"] == "list"
