"""
Unit tests for notification API routes.
"""

from fastapi.testclient import TestClient

from scoutlete.api.main import app
from scoutlete.services import auth_service, user_service, notification_service


def make_client_with_auth(monkeypatch, user_id=1):
    """Create a test client with mocked authentication."""

    def fake_verify_token(token):
        return {"user_id": user_id}

    async def fake_get_user_by_id(session, uid):
        return {"id": user_id, "display_name": "Test User", "is_active": True}

    monkeypatch.setattr(auth_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)

    return TestClient(app), {"Authorization": "Bearer dummy"}


def _notification(notification_id=1, user_id=1, is_read=False):
    return {
        "id": notification_id,
        "user_id": user_id,
        "type": "team_join_request",
        "title": "New Team Join Request",
        "message": "Alex wants to join Falcons",
        "data": {"team_id": 10},
        "priority": "high",
        "action_url": "/teams/10/requests",
        "related_entity_type": "team_invite",
        "related_entity_id": 4,
        "is_read": is_read,
        "read_at": None,
        "created_at": "2026-01-01T00:00:00+00:00",
    }


def test_get_notifications_requires_auth():
    response = TestClient(app).get("/api/notifications")
    assert response.status_code == 401


def test_get_notifications(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=1)
    captured = {}

    async def fake_get_user_notifications(session, user_id, **kwargs):
        captured["user_id"] = user_id
        captured.update(kwargs)
        return {"notifications": [_notification()], "total_count": 1, "has_more": False}

    monkeypatch.setattr(
        notification_service, "get_user_notifications", fake_get_user_notifications, raising=True
    )

    response = client.get("/api/notifications?limit=10&unread_only=true", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 1
    assert body["notifications"][0]["type"] == "team_join_request"
    assert captured["limit"] == 10
    assert captured["unread_only"] is True


def test_get_unread_count(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_get_unread_count(session, user_id):
        return 3

    monkeypatch.setattr(notification_service, "get_unread_count", fake_get_unread_count, raising=True)

    response = client.get("/api/notifications/unread-count", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"count": 3}


def test_mark_notification_as_read(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=1)

    async def fake_mark_as_read(session, notification_id, user_id):
        notification = _notification(notification_id, user_id, is_read=True)
        notification["read_at"] = "2026-01-02T00:00:00+00:00"
        return notification

    monkeypatch.setattr(notification_service, "mark_as_read", fake_mark_as_read, raising=True)

    response = client.put("/api/notifications/5/read", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True


def test_mark_someone_elses_notification_is_404(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=2)

    async def fake_mark_as_read(session, notification_id, user_id):
        raise ValueError("Notification not found or access denied")

    monkeypatch.setattr(notification_service, "mark_as_read", fake_mark_as_read, raising=True)

    response = client.put("/api/notifications/5/read", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Notification not found or access denied"}


def test_mark_all_read(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_mark_all_as_read(session, user_id):
        return 4

    monkeypatch.setattr(notification_service, "mark_all_as_read", fake_mark_all_as_read, raising=True)

    response = client.put("/api/notifications/mark-all-read", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 4}
