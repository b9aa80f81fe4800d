"""Team join-request and invitation route handlers."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scoutlete.database.db import get_db_session
from scoutlete.services import team_invite_service
from scoutlete.api.auth_dependencies import require_user
from scoutlete.api.routes import limiter, team_error_to_http
from scoutlete.models.schemas import TeamInviteCreate, TeamInviteRespond

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/team-invites")
async def list_team_invites(
    type: Optional[Literal["sent", "received", "team_requests"]] = None,
    team_id: Optional[int] = None,
    status: Optional[str] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List invites the user sent, received, or that target teams they captain."""
    try:
        return await team_invite_service.list_invites(
            session, user["id"], type=type, team_id=team_id, status=status
        )
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error fetching team invites: {e}")
        raise HTTPException(status_code=500, detail="Error fetching team invites")


@router.post("/api/team-invites", status_code=201)
@limiter.limit("30/hour")
async def create_team_invite(
    request: Request,
    payload: TeamInviteCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Request to join a team (by id or join code) or invite another user as captain."""
    try:
        invite = await team_invite_service.create_request(
            session,
            user["id"],
            team_id=payload.team_id,
            team_code=payload.team_code,
            type=payload.type.value,
            message=payload.message,
            invitee_id=payload.invitee_id,
            role=payload.role.value,
        )
        return {"data": invite}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error creating team invite: {e}")
        raise HTTPException(status_code=500, detail="Failed to send request")


@router.put("/api/team-invites")
async def respond_to_team_invite(
    payload: TeamInviteRespond,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Accept or decline a pending invite."""
    try:
        invite = await team_invite_service.respond(
            session,
            payload.invite_id,
            user["id"],
            payload.status,
            response_message=payload.response_message,
        )
        return {"data": invite}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error responding to invite {payload.invite_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to respond to invite")
