"""
Team join-request and invitation workflow.

A join request is raised by an athlete (inviter == invitee == requester) and
answered by the team captain; it is deleted once resolved and the resolved
row is echoed back to the caller. An invitation is raised by the captain for
another user and answered by that user; it is kept and updated in place.
"""

import logging
import os
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from scoutlete.database.models import (
    Team,
    TeamInvite,
    User,
    TeamStatus,
    TeamRole,
    InviteType,
    InviteStatus,
)
from scoutlete.services import notification_service
from scoutlete.services.team_service import (
    TeamNotFoundError,
    TeamPermissionError,
    add_member,
    count_active_members,
    get_active_membership,
    get_team_row,
    normalize_join_code,
    sync_member_count,
)
from scoutlete.services.user_service import display_name_for, get_users_by_ids, user_summary
from scoutlete.utils.datetime_utils import utcnow, ensure_utc, isoformat_or_none

logger = logging.getLogger(__name__)

INVITE_EXPIRY_DAYS = int(os.getenv("TEAM_INVITE_EXPIRY_DAYS", "7"))

RESPONSE_STATUSES = {InviteStatus.ACCEPTED.value, InviteStatus.DECLINED.value}
INVITABLE_ROLES = {TeamRole.MEMBER.value, TeamRole.CO_CAPTAIN.value}

LIST_FILTER_SENT = "sent"
LIST_FILTER_RECEIVED = "received"
LIST_FILTER_TEAM_REQUESTS = "team_requests"


def _format_invite(
    invite: TeamInvite,
    team: Optional[Team] = None,
    inviter: Optional[User] = None,
    invitee: Optional[User] = None,
) -> Dict:
    return {
        "id": invite.id,
        "team_id": invite.team_id,
        "inviter_id": invite.inviter_id,
        "invitee_id": invite.invitee_id,
        "type": invite.type,
        "message": invite.message,
        "status": invite.status,
        "role": invite.role,
        "expires_at": isoformat_or_none(invite.expires_at),
        "responded_at": isoformat_or_none(invite.responded_at),
        "response_message": invite.response_message,
        "created_at": isoformat_or_none(invite.created_at),
        "updated_at": isoformat_or_none(invite.updated_at),
        "team": {"id": team.id, "name": team.name, "created_by": team.created_by} if team else None,
        "inviter": user_summary(inviter),
        "invitee": user_summary(invitee),
    }


def is_expired(invite: TeamInvite) -> bool:
    return ensure_utc(invite.expires_at) <= utcnow()


async def _resolve_team(
    session: AsyncSession, team_id: Optional[int], team_code: Optional[str]
) -> Team:
    """Find the target team by join code (case-insensitive) or id and lock it."""
    code = normalize_join_code(team_code)
    if code:
        result = await session.execute(
            select(Team)
            .where(Team.join_code == code, Team.status == TeamStatus.ACTIVE.value)
            .order_by(Team.created_at, Team.id)
            .limit(1)
            .with_for_update()
        )
        team = result.scalar_one_or_none()
        if not team:
            raise TeamNotFoundError("Invalid team code")
        return team

    if not team_id:
        raise ValueError("Team ID or team code is required")
    return await get_team_row(session, team_id, for_update=True)


async def _find_pending(
    session: AsyncSession, team_id: int, invitee_id: int, invite_type: InviteType
) -> Optional[TeamInvite]:
    result = await session.execute(
        select(TeamInvite)
        .where(
            TeamInvite.team_id == team_id,
            TeamInvite.invitee_id == invitee_id,
            TeamInvite.type == invite_type.value,
            TeamInvite.status == InviteStatus.PENDING.value,
        )
        .order_by(TeamInvite.created_at.desc(), TeamInvite.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_request(
    session: AsyncSession,
    user_id: int,
    team_id: Optional[int] = None,
    team_code: Optional[str] = None,
    type: str = InviteType.JOIN_REQUEST.value,
    message: Optional[str] = None,
    invitee_id: Optional[int] = None,
    role: str = TeamRole.MEMBER.value,
) -> Dict:
    """
    Create a join request (default) or a captain's invitation.

    Args:
        session: Database session
        user_id: Acting user
        team_id: Target team id
        team_code: Target team join code, takes precedence over team_id
        type: ``join_request`` or ``invitation``
        message: Optional note; a default is generated when omitted
        invitee_id: Required for invitations
        role: Role granted on acceptance (invitations only)

    Returns:
        The created invite dict

    Raises:
        ValueError: For validation failures (full team, existing member, duplicate pending request)
        TeamNotFoundError: If the team, code or invitee cannot be found
        TeamPermissionError: If a non-captain sends an invitation
    """
    try:
        invite_type = InviteType(type)
    except ValueError:
        raise ValueError(f"Invalid invite type: {type}")

    team = await _resolve_team(session, team_id, team_code)

    if invite_type is InviteType.JOIN_REQUEST:
        return await _create_join_request(session, team, user_id, message)
    return await _create_invitation(session, team, user_id, invitee_id, message, role)


async def _create_join_request(
    session: AsyncSession, team: Team, user_id: int, message: Optional[str]
) -> Dict:
    if await count_active_members(session, team.id) >= team.max_members:
        raise ValueError("Team is full")
    if await get_active_membership(session, team.id, user_id):
        raise ValueError("You are already a member of this team")

    existing = await _find_pending(session, team.id, user_id, InviteType.JOIN_REQUEST)
    if existing:
        if not is_expired(existing):
            raise ValueError("You already have a pending request for this team")
        # Expired requests can never be answered; clear it so the user can ask again
        await session.delete(existing)
        await session.flush()

    requester = await session.get(User, user_id)
    requester_name = display_name_for(requester)

    invite = TeamInvite(
        team_id=team.id,
        inviter_id=user_id,
        invitee_id=user_id,
        type=InviteType.JOIN_REQUEST.value,
        message=message or f"{requester_name} wants to join your team",
        status=InviteStatus.PENDING.value,
        role=TeamRole.MEMBER.value,
        expires_at=utcnow() + timedelta(days=INVITE_EXPIRY_DAYS),
    )
    session.add(invite)
    await session.flush()
    await session.refresh(invite)

    await notification_service.notify_captain_of_join_request(
        session,
        captain_id=team.created_by,
        requester_id=user_id,
        requester_name=requester_name,
        team_id=team.id,
        team_name=team.name,
        invite_id=invite.id,
    )

    logger.info(f"User {user_id} requested to join team {team.id} (invite {invite.id})")
    return _format_invite(invite, team, requester, requester)


async def _create_invitation(
    session: AsyncSession,
    team: Team,
    user_id: int,
    invitee_id: Optional[int],
    message: Optional[str],
    role: str,
) -> Dict:
    if team.created_by != user_id:
        raise TeamPermissionError("Only team captain can send invitations")
    if not invitee_id:
        raise ValueError("Invitee ID is required")
    if invitee_id == user_id:
        raise ValueError("You cannot invite yourself")
    if role not in INVITABLE_ROLES:
        raise ValueError(f"Invalid role: {role}")

    invitee = await session.get(User, invitee_id)
    if not invitee:
        raise TeamNotFoundError("User not found")

    if await count_active_members(session, team.id) >= team.max_members:
        raise ValueError("Team is full")
    if await get_active_membership(session, team.id, invitee_id):
        raise ValueError("User is already a team member")

    existing = await _find_pending(session, team.id, invitee_id, InviteType.INVITATION)
    if existing and not is_expired(existing):
        raise ValueError("User already has a pending invitation to this team")

    inviter = await session.get(User, user_id)
    inviter_name = display_name_for(inviter)

    invite = TeamInvite(
        team_id=team.id,
        inviter_id=user_id,
        invitee_id=invitee_id,
        type=InviteType.INVITATION.value,
        message=message or f"{inviter_name} invited you to join {team.name}",
        status=InviteStatus.PENDING.value,
        role=role,
        expires_at=utcnow() + timedelta(days=INVITE_EXPIRY_DAYS),
    )
    session.add(invite)
    await session.flush()
    await session.refresh(invite)

    await notification_service.notify_invitee_of_invitation(
        session,
        invitee_id=invitee_id,
        inviter_id=user_id,
        inviter_name=inviter_name,
        team_id=team.id,
        team_name=team.name,
        invite_id=invite.id,
    )

    logger.info(f"User {user_id} invited user {invitee_id} to team {team.id} (invite {invite.id})")
    return _format_invite(invite, team, inviter, invitee)


async def respond(
    session: AsyncSession,
    invite_id: int,
    user_id: int,
    status: str,
    response_message: Optional[str] = None,
) -> Dict:
    """
    Accept or decline a pending invite.

    Join requests are answered by the team creator, invitations by their
    invitee. Accepting re-checks capacity against the membership ledger with
    the team row locked; a full team leaves the invite pending.

    Returns:
        The resolved invite dict. Join requests are deleted once answered, so
        the returned dict is the last state of the row.

    Raises:
        ValueError: Invalid status, invite not pending, expired, team full, already a member
        TeamNotFoundError: If the invite or its team no longer exists
        TeamPermissionError: If the user may not answer this invite
    """
    if status not in RESPONSE_STATUSES:
        raise ValueError("Invalid status")

    invite = await session.get(TeamInvite, invite_id)
    if not invite:
        raise TeamNotFoundError("Invite not found")

    team = await get_team_row(session, invite.team_id, active_only=False, for_update=True)
    await session.refresh(invite, with_for_update=True)

    invite_type = InviteType(invite.type)
    responder_id = team.created_by if invite_type is InviteType.JOIN_REQUEST else invite.invitee_id
    if responder_id != user_id:
        raise TeamPermissionError("Not authorized to respond to this invite")
    if invite.status != InviteStatus.PENDING.value:
        raise ValueError("Invite is no longer pending")
    if is_expired(invite):
        raise ValueError("Invite has expired")

    if status == InviteStatus.ACCEPTED.value:
        if team.status != TeamStatus.ACTIVE.value:
            raise ValueError("Team is no longer active")
        if await count_active_members(session, team.id) >= team.max_members:
            raise ValueError("Team is now full")
        if await get_active_membership(session, team.id, invite.invitee_id):
            raise ValueError("User is already a team member")
        await add_member(session, team.id, invite.invitee_id, invite.role)
        await sync_member_count(session, team)

    users = await get_users_by_ids(session, [invite.inviter_id, invite.invitee_id])
    recipient_id = invite.invitee_id if invite_type is InviteType.JOIN_REQUEST else invite.inviter_id
    invitee = users.get(invite.invitee_id)

    invite.status = status
    invite.responded_at = utcnow()
    invite.response_message = response_message
    invite.updated_at = utcnow()

    if invite_type.consumed_on_resolution:
        resolved = _format_invite(invite, team, users.get(invite.inviter_id), invitee)
        await session.delete(invite)
        await session.flush()
    else:
        await session.flush()
        await session.refresh(invite)
        resolved = _format_invite(invite, team, users.get(invite.inviter_id), invitee)

    await notification_service.notify_invite_resolution(
        session,
        recipient_id=recipient_id,
        decision=status,
        team_id=team.id,
        team_name=team.name,
        invite_id=invite_id,
        invite_type=invite_type.value,
        invitee_name=display_name_for(invitee),
    )

    logger.info(f"User {user_id} {status} invite {invite_id} for team {team.id}")
    return resolved


async def list_invites(
    session: AsyncSession,
    user_id: int,
    type: Optional[str] = None,
    team_id: Optional[int] = None,
    status: Optional[str] = None,
) -> Dict:
    """
    List invites visible to the user, newest first.

    Args:
        type: ``sent`` (raised by the user), ``received`` (addressed to the user
            by someone else), ``team_requests`` (join requests for teams the
            user created), or None for everything the user sent or received
        team_id: Optional team filter
        status: Optional status filter

    Returns:
        Dict with ``data`` and ``count``
    """
    query = select(TeamInvite)

    if type == LIST_FILTER_SENT:
        query = query.where(TeamInvite.inviter_id == user_id)
    elif type == LIST_FILTER_RECEIVED:
        query = query.where(TeamInvite.invitee_id == user_id, TeamInvite.inviter_id != user_id)
    elif type == LIST_FILTER_TEAM_REQUESTS:
        result = await session.execute(select(Team.id).where(Team.created_by == user_id))
        owned_team_ids = result.scalars().all()
        if not owned_team_ids:
            return {"data": [], "count": 0}
        query = query.where(
            TeamInvite.team_id.in_(owned_team_ids),
            TeamInvite.type == InviteType.JOIN_REQUEST.value,
        )
    elif type is None:
        query = query.where(
            or_(TeamInvite.inviter_id == user_id, TeamInvite.invitee_id == user_id)
        )
    else:
        raise ValueError(f"Invalid invite filter: {type}")

    if team_id is not None:
        query = query.where(TeamInvite.team_id == team_id)
    if status:
        query = query.where(TeamInvite.status == status)

    result = await session.execute(
        query.order_by(TeamInvite.created_at.desc(), TeamInvite.id.desc())
    )
    invites = result.scalars().all()

    team_ids = {invite.team_id for invite in invites}
    teams = {}
    if team_ids:
        team_result = await session.execute(select(Team).where(Team.id.in_(team_ids)))
        teams = {team.id: team for team in team_result.scalars().all()}
    users = await get_users_by_ids(
        session, [uid for invite in invites for uid in (invite.inviter_id, invite.invitee_id)]
    )

    data = [
        _format_invite(
            invite,
            teams.get(invite.team_id),
            users.get(invite.inviter_id),
            users.get(invite.invitee_id),
        )
        for invite in invites
    ]
    return {"data": data, "count": len(data)}
