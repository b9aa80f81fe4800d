"""
Unit tests for team invite API routes.
"""

from fastapi.testclient import TestClient

from scoutlete.api.main import app
from scoutlete.services import auth_service, user_service, team_invite_service
from scoutlete.services.team_service import TeamNotFoundError, TeamPermissionError


def make_client_with_auth(monkeypatch, user_id=1):
    """Create a test client with mocked authentication."""

    def fake_verify_token(token):
        return {"user_id": user_id}

    async def fake_get_user_by_id(session, uid):
        return {"id": user_id, "display_name": f"User {user_id}", "is_active": True}

    monkeypatch.setattr(auth_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)

    return TestClient(app), {"Authorization": "Bearer dummy"}


def test_list_invites_requires_auth():
    response = TestClient(app).get("/api/team-invites")
    assert response.status_code == 401


def test_create_join_request(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=2)
    captured = {}

    async def fake_create_request(session, user_id, **kwargs):
        captured["user_id"] = user_id
        captured.update(kwargs)
        return {"id": 1, "team_id": 10, "status": "pending", "type": "join_request"}

    monkeypatch.setattr(team_invite_service, "create_request", fake_create_request, raising=True)

    response = client.post(
        "/api/team-invites",
        json={"team_code": "abcd1234", "message": "Let me in"},
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body == {"data": {"id": 1, "team_id": 10, "status": "pending", "type": "join_request"}}
    assert captured["user_id"] == 2
    assert captured["team_code"] == "abcd1234"
    assert captured["type"] == "join_request"
    assert captured["role"] == "member"


def test_invitation_without_invitee_is_400(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    response = client.post(
        "/api/team-invites", json={"team_id": 10, "type": "invitation"}, headers=headers
    )

    assert response.status_code == 400
    assert "invitee_id is required for invitations" in response.json()["error"]


def test_create_request_duplicate_is_400(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_create_request(session, user_id, **kwargs):
        raise ValueError("You already have a pending request for this team")

    monkeypatch.setattr(team_invite_service, "create_request", fake_create_request, raising=True)

    response = client.post("/api/team-invites", json={"team_id": 10}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "You already have a pending request for this team"}


def test_create_request_unknown_team_is_404(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_create_request(session, user_id, **kwargs):
        raise TeamNotFoundError("Team not found")

    monkeypatch.setattr(team_invite_service, "create_request", fake_create_request, raising=True)

    response = client.post("/api/team-invites", json={"team_id": 999}, headers=headers)
    assert response.status_code == 404


def test_respond_not_captain_is_403(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=5)

    async def fake_respond(session, invite_id, user_id, status, response_message=None):
        raise TeamPermissionError("Only team captain can respond to join requests")

    monkeypatch.setattr(team_invite_service, "respond", fake_respond, raising=True)

    response = client.put(
        "/api/team-invites", json={"invite_id": 1, "status": "accepted"}, headers=headers
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Only team captain can respond to join requests"


def test_respond_accept(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=1)
    captured = {}

    async def fake_respond(session, invite_id, user_id, status, response_message=None):
        captured.update(
            invite_id=invite_id, user_id=user_id, status=status, response_message=response_message
        )
        return {"id": invite_id, "status": status, "response_message": response_message}

    monkeypatch.setattr(team_invite_service, "respond", fake_respond, raising=True)

    response = client.put(
        "/api/team-invites",
        json={"invite_id": 7, "status": "accepted", "response_message": "Welcome"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json() == {
        "data": {"id": 7, "status": "accepted", "response_message": "Welcome"}
    }
    assert captured == {
        "invite_id": 7,
        "user_id": 1,
        "status": "accepted",
        "response_message": "Welcome",
    }


def test_list_invites_rejects_unknown_type(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    response = client.get("/api/team-invites?type=everything", headers=headers)
    assert response.status_code == 400


def test_list_invites_passes_filters(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=3)
    captured = {}

    async def fake_list_invites(session, user_id, type=None, team_id=None, status=None):
        captured.update(user_id=user_id, type=type, team_id=team_id, status=status)
        return {"data": [], "count": 0}

    monkeypatch.setattr(team_invite_service, "list_invites", fake_list_invites, raising=True)

    response = client.get(
        "/api/team-invites?type=team_requests&team_id=10&status=pending", headers=headers
    )

    assert response.status_code == 200
    assert response.json() == {"data": [], "count": 0}
    assert captured == {"user_id": 3, "type": "team_requests", "team_id": 10, "status": "pending"}
