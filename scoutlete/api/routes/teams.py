"""Team registry and membership route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scoutlete.database.db import get_db_session
from scoutlete.services import team_service
from scoutlete.api.auth_dependencies import require_user, get_current_user_optional
from scoutlete.api.routes import limiter, team_error_to_http
from scoutlete.models.schemas import (
    TeamCreate,
    TeamUpdate,
    JoinTeamRequest,
    RemoveMemberRequest,
    MessageResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/teams")
async def list_teams(
    page: int = Query(1, ge=1),
    limit: int = Query(team_service.DEFAULT_PAGE_SIZE, ge=1, le=team_service.MAX_PAGE_SIZE),
    sport: Optional[str] = None,
    location: Optional[str] = None,
    experience_level: Optional[str] = None,
    exclude_user_teams: bool = False,
    user: Optional[dict] = Depends(get_current_user_optional),
    session: AsyncSession = Depends(get_db_session),
):
    """Browse public teams with optional filters."""
    try:
        return await team_service.list_teams(
            session,
            page=page,
            limit=limit,
            sport=sport,
            location=location,
            experience_level=experience_level,
            exclude_user_teams=exclude_user_teams,
            user_id=user["id"] if user else None,
        )
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error listing teams: {e}")
        raise HTTPException(status_code=500, detail="Error fetching teams")


@router.post("/api/teams", status_code=201)
@limiter.limit("20/hour")
async def create_team(
    request: Request,
    payload: TeamCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a team; the requester becomes its captain."""
    try:
        team = await team_service.create_team(
            session,
            user["id"],
            name=payload.name,
            description=payload.description,
            sport_category_id=payload.sport_category_id,
            max_members=payload.max_members,
            is_public=payload.is_public,
            required_skills=payload.required_skills,
            requirements=payload.requirements,
            experience_level=payload.experience_level.value if payload.experience_level else None,
            location_city=payload.location_city,
            location_state=payload.location_state,
        )
        return {"data": team}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error creating team: {e}")
        raise HTTPException(status_code=500, detail="Failed to create team")


@router.get("/api/teams/my-teams")
async def list_my_teams(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Teams the current user is an active member of."""
    try:
        return await team_service.list_my_teams(session, user["id"])
    except Exception as e:
        logger.error(f"Error fetching teams for user {user.get('id')}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching your teams")


@router.get("/api/teams/{team_id}")
async def get_team(
    team_id: int,
    user: Optional[dict] = Depends(get_current_user_optional),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a team with its members."""
    try:
        team = await team_service.get_team(session, team_id, user["id"] if user else None)
        return {"data": team}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error fetching team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching team")


@router.put("/api/teams/{team_id}")
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a team's name, description, requirements or required skills."""
    try:
        team = await team_service.update_team(
            session,
            team_id,
            user["id"],
            name=payload.name,
            description=payload.description,
            requirements=payload.requirements,
            required_skills=payload.required_skills,
        )
        return {"data": team}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error updating team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update team")


@router.delete("/api/teams/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a team with its memberships and invites."""
    try:
        return await team_service.delete_team(session, team_id, user["id"])
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error deleting team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete team")


@router.get("/api/teams/{team_id}/members")
async def list_members(
    team_id: int,
    user: Optional[dict] = Depends(get_current_user_optional),
    session: AsyncSession = Depends(get_db_session),
):
    """Active members of a team."""
    try:
        members = await team_service.list_members(session, team_id, user["id"] if user else None)
        return {"data": members, "count": len(members)}
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error fetching members for team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching team members")


@router.post("/api/teams/{team_id}/join")
async def join_team(
    team_id: int,
    payload: Optional[JoinTeamRequest] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Join a team directly, with its join code when private."""
    try:
        return await team_service.join_team(
            session, team_id, user["id"], join_code=payload.join_code if payload else None
        )
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error joining team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to join team")


@router.delete("/api/teams/{team_id}/leave", response_model=MessageResponse)
async def leave_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Leave a team. Captains must delete the team instead."""
    try:
        return await team_service.leave_team(session, team_id, user["id"])
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error leaving team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to leave team")


@router.delete("/api/teams/{team_id}/members", response_model=MessageResponse)
async def remove_member(
    team_id: int,
    payload: RemoveMemberRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a member from a team (captain only)."""
    try:
        return await team_service.remove_member(session, team_id, payload.member_id, user["id"])
    except ValueError as e:
        raise team_error_to_http(e)
    except Exception as e:
        logger.error(f"Error removing member from team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove member")
