"""
Unit tests for notification service.
"""

import pytest
import pytest_asyncio

from scoutlete.services import notification_service
from scoutlete.database.models import User, NotificationType


@pytest_asyncio.fixture
async def user_ids(db_session):
    """Create two users and return their ids."""
    first = User(display_name="Recipient", email="recipient@example.com")
    second = User(display_name="Bystander", email="bystander@example.com")
    db_session.add_all([first, second])
    await db_session.flush()
    return first.id, second.id


@pytest.mark.asyncio
async def test_create_notification(db_session, user_ids):
    user_id, _ = user_ids
    notification = await notification_service.create_notification(
        db_session,
        user_id=user_id,
        type=NotificationType.TEAM_JOIN_REQUEST.value,
        title="New Team Join Request",
        message="Someone wants to join",
        data={"team_id": 1},
        action_url="/teams/1/requests",
        priority="high",
        related_entity_type="team_invite",
        related_entity_id=5,
    )

    assert notification["id"] > 0
    assert notification["is_read"] is False
    assert notification["read_at"] is None
    assert notification["data"] == {"team_id": 1}
    assert notification["priority"] == "high"
    assert notification["related_entity_id"] == 5


@pytest.mark.asyncio
async def test_create_notification_validates_fields(db_session, user_ids):
    user_id, _ = user_ids
    with pytest.raises(ValueError, match="title is required"):
        await notification_service.create_notification(
            db_session, user_id=user_id, type="team_join_request", title="", message="x"
        )
    with pytest.raises(ValueError, match="Invalid priority"):
        await notification_service.create_notification(
            db_session, user_id=user_id, type="team_join_request", title="t", message="m",
            priority="critical",
        )


@pytest.mark.asyncio
async def test_notify_safely_swallows_validation_errors(db_session, user_ids):
    """Workflow notifications never raise to the caller."""
    result = await notification_service.notify_safely(
        db_session, user_id=user_ids[0], type="team_join_request", title="", message="m"
    )
    assert result is None
    assert await notification_service.get_unread_count(db_session, user_ids[0]) == 0


@pytest.mark.asyncio
async def test_get_user_notifications_filters_and_pagination(db_session, user_ids):
    user_id, other_id = user_ids
    for i in range(3):
        await notification_service.create_notification(
            db_session, user_id=user_id, type="team_join_request", title=f"Request {i}", message="m"
        )
    await notification_service.create_notification(
        db_session, user_id=user_id, type="team_request_accepted", title="Accepted", message="m",
        priority="low",
    )
    await notification_service.create_notification(
        db_session, user_id=other_id, type="team_join_request", title="Not yours", message="m"
    )

    page = await notification_service.get_user_notifications(db_session, user_id, limit=2)
    assert page["total_count"] == 4
    assert len(page["notifications"]) == 2
    assert page["has_more"] is True
    assert page["notifications"][0]["title"] == "Accepted"

    by_type = await notification_service.get_user_notifications(
        db_session, user_id, type="team_join_request"
    )
    assert by_type["total_count"] == 3

    by_priority = await notification_service.get_user_notifications(
        db_session, user_id, priority="low"
    )
    assert [n["title"] for n in by_priority["notifications"]] == ["Accepted"]


@pytest.mark.asyncio
async def test_mark_as_read_and_unread_count(db_session, user_ids):
    user_id, other_id = user_ids
    first = await notification_service.create_notification(
        db_session, user_id=user_id, type="team_join_request", title="One", message="m"
    )
    await notification_service.create_notification(
        db_session, user_id=user_id, type="team_join_request", title="Two", message="m"
    )
    assert await notification_service.get_unread_count(db_session, user_id) == 2

    updated = await notification_service.mark_as_read(db_session, first["id"], user_id)
    assert updated["is_read"] is True
    assert updated["read_at"] is not None
    assert await notification_service.get_unread_count(db_session, user_id) == 1

    unread = await notification_service.get_user_notifications(db_session, user_id, unread_only=True)
    assert [n["title"] for n in unread["notifications"]] == ["Two"]

    with pytest.raises(ValueError, match="Notification not found or access denied"):
        await notification_service.mark_as_read(db_session, first["id"], other_id)


@pytest.mark.asyncio
async def test_mark_all_as_read(db_session, user_ids):
    user_id, other_id = user_ids
    for title in ("One", "Two"):
        await notification_service.create_notification(
            db_session, user_id=user_id, type="team_join_request", title=title, message="m"
        )
    await notification_service.create_notification(
        db_session, user_id=other_id, type="team_join_request", title="Other", message="m"
    )

    count = await notification_service.mark_all_as_read(db_session, user_id)

    assert count == 2
    assert await notification_service.get_unread_count(db_session, user_id) == 0
    assert await notification_service.get_unread_count(db_session, other_id) == 1
