"""
Notification service for managing user notifications.

Handles creation, retrieval, and status updates for in-app notifications,
plus the team workflow helpers that decide who hears about what.
"""

from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_
from scoutlete.database.models import (
    Notification,
    NotificationType,
    NotificationPriority,
    InviteStatus,
    InviteType,
)
from scoutlete.utils.datetime_utils import utcnow
import logging

logger = logging.getLogger(__name__)

VALID_PRIORITIES = {p.value for p in NotificationPriority}


def _format_notification(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "priority": notification.priority,
        "action_url": notification.action_url,
        "related_entity_type": notification.related_entity_type,
        "related_entity_id": notification.related_entity_id,
        "is_read": notification.is_read,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict] = None,
    action_url: Optional[str] = None,
    priority: str = NotificationPriority.MEDIUM.value,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> Dict:
    """
    Create a single notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        title: Notification title
        message: Notification message text
        data: Optional JSON metadata
        action_url: Optional URL for navigation when notification is clicked
        priority: low, medium, high or urgent
        related_entity_type: Optional kind of the entity this is about (e.g. team_invite)
        related_entity_id: Optional id of that entity

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing or invalid
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not type:
        raise ValueError("type is required")
    if not title:
        raise ValueError("title is required")
    if not message:
        raise ValueError("message is required")
    if priority not in VALID_PRIORITIES:
        raise ValueError(f"Invalid priority: {priority}")

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data,
        priority=priority,
        action_url=action_url,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        is_read=False,
    )

    session.add(notification)
    await session.flush()
    await session.refresh(notification)

    return _format_notification(notification)


async def notify_safely(session: AsyncSession, **kwargs) -> Optional[Dict]:
    """
    Emit a notification without letting a failure affect the caller.

    The insert runs in a savepoint so a failed write is rolled back on its
    own and the surrounding workflow transaction stays usable.
    """
    try:
        async with session.begin_nested():
            return await create_notification(session, **kwargs)
    except Exception as e:
        logger.warning(f"Failed to create {kwargs.get('type')} notification for user {kwargs.get('user_id')}: {e}")
        return None


async def get_user_notifications(
    session: AsyncSession,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
    unread_only: bool = False,
    type: Optional[str] = None,
    priority: Optional[str] = None,
) -> Dict:
    """
    Fetch user notifications with pagination.

    Args:
        session: Database session
        user_id: ID of the user
        limit: Maximum number of notifications to return (default: 50)
        offset: Number of notifications to skip (default: 0)
        unread_only: If True, only return unread notifications (default: False)
        type: Optional notification type filter
        priority: Optional priority filter

    Returns:
        Dict containing:
            - notifications: List of notification dicts (ordered by created_at DESC)
            - total_count: Total number of notifications matching the criteria
            - has_more: Boolean indicating if there are more notifications
    """
    query = select(Notification).where(Notification.user_id == user_id)

    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    if type:
        query = query.where(Notification.type == type)
    if priority:
        query = query.where(Notification.priority == priority)

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await session.execute(count_query)
    total_count = total_result.scalar_one() or 0

    query = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(query)
    notifications = [_format_notification(n) for n in result.scalars().all()]

    return {
        "notifications": notifications,
        "total_count": total_count,
        "has_more": (offset + len(notifications)) < total_count,
    }


async def get_unread_count(session: AsyncSession, user_id: int) -> int:
    """Get count of unread notifications for a user."""
    result = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
        )
    )
    return result.scalar_one() or 0


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: int) -> Dict:
    """
    Mark a single notification as read.

    Raises:
        ValueError: If notification not found or doesn't belong to user
    """
    result = await session.execute(
        select(Notification).where(
            and_(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
    )
    notification = result.scalar_one_or_none()

    if not notification:
        raise ValueError("Notification not found or access denied")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        await session.flush()
        await session.refresh(notification)

    return _format_notification(notification)


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    """
    Mark all user notifications as read.

    Returns:
        Count of notifications marked as read
    """
    result = await session.execute(
        update(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
        )
        .values(is_read=True, read_at=utcnow())
        .returning(Notification.id)
    )
    count = len(result.scalars().all())
    await session.flush()
    return count


#
# Business logic helpers for the team workflow.
# Each one is fire-and-forget from the caller's point of view.
#

async def notify_captain_of_join_request(
    session: AsyncSession,
    captain_id: int,
    requester_id: int,
    requester_name: str,
    team_id: int,
    team_name: str,
    invite_id: int,
) -> Optional[Dict]:
    """Tell the team captain someone asked to join."""
    return await notify_safely(
        session,
        user_id=captain_id,
        type=NotificationType.TEAM_JOIN_REQUEST.value,
        title="New Team Join Request",
        message=f"{requester_name} wants to join {team_name}",
        data={"team_id": team_id, "invite_id": invite_id, "requester_id": requester_id},
        priority=NotificationPriority.MEDIUM.value,
        action_url=f"/teams/{team_id}/requests",
        related_entity_type="team_invite",
        related_entity_id=invite_id,
    )


async def notify_invitee_of_invitation(
    session: AsyncSession,
    invitee_id: int,
    inviter_id: int,
    inviter_name: str,
    team_id: int,
    team_name: str,
    invite_id: int,
) -> Optional[Dict]:
    """Tell an athlete a captain invited them."""
    return await notify_safely(
        session,
        user_id=invitee_id,
        type=NotificationType.TEAM_INVITATION.value,
        title="Team Invitation",
        message=f"{inviter_name} invited you to join {team_name}",
        data={"team_id": team_id, "invite_id": invite_id, "inviter_id": inviter_id},
        priority=NotificationPriority.MEDIUM.value,
        action_url="/teams/invites",
        related_entity_type="team_invite",
        related_entity_id=invite_id,
    )


async def notify_invite_resolution(
    session: AsyncSession,
    recipient_id: int,
    decision: str,
    team_id: int,
    team_name: str,
    invite_id: int,
    invite_type: str = InviteType.JOIN_REQUEST.value,
    invitee_name: Optional[str] = None,
) -> Optional[Dict]:
    """
    Tell the other side how an invite was resolved.

    For a join request that is the requester; for an invitation it is the
    captain who sent it, so the message names the invitee instead.
    """
    accepted = decision == InviteStatus.ACCEPTED.value
    verb = "accepted" if accepted else "declined"
    if invite_type == InviteType.JOIN_REQUEST.value:
        message = f"Your request to join {team_name} has been {verb}" + ("!" if accepted else ".")
    else:
        message = f"{invitee_name or 'A user'} {verb} your invitation to {team_name}"

    if accepted:
        notification_type = NotificationType.TEAM_REQUEST_ACCEPTED.value
        title = "Team Request Accepted"
        action_url = f"/teams/{team_id}"
    else:
        notification_type = NotificationType.TEAM_REQUEST_DECLINED.value
        title = "Team Request Declined"
        action_url = "/teams"

    return await notify_safely(
        session,
        user_id=recipient_id,
        type=notification_type,
        title=title,
        message=message,
        data={"team_id": team_id, "invite_id": invite_id, "status": decision},
        priority=NotificationPriority.MEDIUM.value,
        action_url=action_url,
        related_entity_type="team_invite",
        related_entity_id=invite_id,
    )
