"""
Team registry and membership ledger.

Team rows carry a cached ``current_members`` counter; the active rows in
``team_members`` are the source of truth. Every write that changes the
ledger recomputes the counter inside the same transaction, and capacity
checks always count the ledger after locking the team row.
"""

import logging
import math
import secrets
import string
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, func, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from scoutlete.database.models import (
    Team,
    TeamMember,
    TeamInvite,
    SportCategory,
    User,
    TeamStatus,
    TeamRole,
    MemberStatus,
    ExperienceLevel,
)
from scoutlete.services.user_service import user_summary, get_users_by_ids
from scoutlete.utils.datetime_utils import utcnow, isoformat_or_none

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 8

DEFAULT_MAX_MEMBERS = 4
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50

VALID_EXPERIENCE_LEVELS = {level.value for level in ExperienceLevel}


class TeamNotFoundError(ValueError):
    """Raised when a team, member or invite does not exist."""


class TeamPermissionError(ValueError):
    """Raised when the acting user is not allowed to perform the operation."""


def generate_join_code() -> str:
    """Random 8-character uppercase alphanumeric join code."""
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_join_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


# ──────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────


def format_sport_category(category: Optional[SportCategory]) -> Optional[Dict]:
    if category is None:
        return None
    return {
        "id": category.id,
        "sport_name": category.sport_name,
        "category": category.category,
        "description": category.description,
        "measurement_unit": category.measurement_unit,
    }


def format_member(member: TeamMember, user: Optional[User] = None) -> Dict:
    return {
        "id": member.id,
        "team_id": member.team_id,
        "user_id": member.user_id,
        "role": member.role,
        "status": member.status,
        "joined_at": isoformat_or_none(member.joined_at),
        "user": user_summary(user),
    }


def format_team(
    team: Team,
    sport_category: Optional[SportCategory] = None,
    members: Optional[List[Tuple[TeamMember, User]]] = None,
    creator: Optional[User] = None,
    include_join_code: bool = True,
) -> Dict:
    """
    Serialize a team for API responses.

    ``members`` is a list of (TeamMember, User) pairs; when omitted the
    ``members`` key is left out. The join code is only exposed to people who
    are allowed to share it.
    """
    data = {
        "id": team.id,
        "name": team.name,
        "description": team.description,
        "sport_category_id": team.sport_category_id,
        "sport_category": format_sport_category(sport_category),
        "max_members": team.max_members,
        "current_members": team.current_members,
        "is_public": team.is_public,
        "status": team.status,
        "required_skills": team.required_skills or [],
        "requirements": team.requirements or [],
        "experience_level": team.experience_level,
        "location_city": team.location_city,
        "location_state": team.location_state,
        "created_by": team.created_by,
        "creator": user_summary(creator),
        "created_at": isoformat_or_none(team.created_at),
        "updated_at": isoformat_or_none(team.updated_at),
    }
    if include_join_code:
        data["join_code"] = team.join_code
    if members is not None:
        data["members"] = [format_member(member, user) for member, user in members]
    return data


# ──────────────────────────────────────────────────────────────
# Ledger primitives
# ──────────────────────────────────────────────────────────────


async def get_team_row(
    session: AsyncSession,
    team_id: int,
    active_only: bool = True,
    for_update: bool = False,
) -> Team:
    """
    Load a team row or raise TeamNotFoundError.

    With ``for_update`` the row is locked until the transaction ends, which
    serializes concurrent capacity decisions for the same team.
    """
    query = select(Team).where(Team.id == team_id)
    if active_only:
        query = query.where(Team.status == TeamStatus.ACTIVE.value)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    team = result.scalar_one_or_none()
    if not team:
        raise TeamNotFoundError("Team not found")
    return team


async def count_active_members(session: AsyncSession, team_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(TeamMember)
        .where(
            TeamMember.team_id == team_id,
            TeamMember.status == MemberStatus.ACTIVE.value,
        )
    )
    return result.scalar_one() or 0


async def get_active_membership(
    session: AsyncSession, team_id: int, user_id: int
) -> Optional[TeamMember]:
    result = await session.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE.value,
        )
    )
    return result.scalar_one_or_none()


async def sync_member_count(session: AsyncSession, team: Team) -> int:
    """Write the ledger's active member count into the team's cached counter."""
    count = await count_active_members(session, team.id)
    if team.current_members != count:
        team.current_members = count
        await session.flush()
        await session.refresh(team)
    return count


async def _get_active_members(
    session: AsyncSession, team_id: int
) -> List[Tuple[TeamMember, User]]:
    result = await session.execute(
        select(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .where(
            TeamMember.team_id == team_id,
            TeamMember.status == MemberStatus.ACTIVE.value,
        )
        .order_by(TeamMember.joined_at, TeamMember.id)
    )
    return [(member, user) for member, user in result.all()]


async def _get_sport_category(
    session: AsyncSession, sport_category_id: Optional[int]
) -> Optional[SportCategory]:
    if sport_category_id is None:
        return None
    return await session.get(SportCategory, sport_category_id)


async def _load_team_context(session: AsyncSession, teams: Iterable[Team]):
    """Batch load categories, active members and creators for a page of teams."""
    teams = list(teams)
    team_ids = [team.id for team in teams]
    category_ids = {team.sport_category_id for team in teams if team.sport_category_id}

    categories: Dict[int, SportCategory] = {}
    if category_ids:
        result = await session.execute(
            select(SportCategory).where(SportCategory.id.in_(category_ids))
        )
        categories = {category.id: category for category in result.scalars().all()}

    members_by_team: Dict[int, List[Tuple[TeamMember, User]]] = {team_id: [] for team_id in team_ids}
    if team_ids:
        result = await session.execute(
            select(TeamMember, User)
            .join(User, User.id == TeamMember.user_id)
            .where(
                TeamMember.team_id.in_(team_ids),
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
            .order_by(TeamMember.joined_at, TeamMember.id)
        )
        for member, user in result.all():
            members_by_team[member.team_id].append((member, user))

    creators = await get_users_by_ids(session, [team.created_by for team in teams])
    return categories, members_by_team, creators


async def _can_view(session: AsyncSession, team: Team, user_id: Optional[int]) -> bool:
    if team.is_public:
        return True
    if user_id is None:
        return False
    if team.created_by == user_id:
        return True
    return await get_active_membership(session, team.id, user_id) is not None


async def add_member(
    session: AsyncSession,
    team_id: int,
    user_id: int,
    role: str = TeamRole.MEMBER.value,
) -> TeamMember:
    """
    Add an active membership row.

    Callers are responsible for capacity and permission checks. A stale
    inactive or removed row for the same user is reactivated instead of
    duplicated.

    Raises:
        ValueError: If the user already has an active membership
    """
    result = await session.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    member = result.scalar_one_or_none()
    if member and member.status == MemberStatus.ACTIVE.value:
        raise ValueError("User is already a team member")

    if member:
        member.role = role
        member.status = MemberStatus.ACTIVE.value
        member.joined_at = utcnow()
    else:
        member = TeamMember(
            team_id=team_id,
            user_id=user_id,
            role=role,
            status=MemberStatus.ACTIVE.value,
        )
        session.add(member)
    await session.flush()
    await session.refresh(member)
    return member


# ──────────────────────────────────────────────────────────────
# Team registry
# ──────────────────────────────────────────────────────────────


async def create_team(
    session: AsyncSession,
    user_id: int,
    name: str,
    description: Optional[str] = None,
    sport_category_id: Optional[int] = None,
    max_members: int = DEFAULT_MAX_MEMBERS,
    is_public: bool = True,
    required_skills: Optional[List[str]] = None,
    requirements: Optional[List[str]] = None,
    experience_level: Optional[str] = None,
    location_city: Optional[str] = None,
    location_state: Optional[str] = None,
) -> Dict:
    """
    Create a team with the requester as its captain.

    The team row and the captain's membership are written in one savepoint:
    either both exist afterwards or neither does.

    Returns:
        Team dict including members and the join code

    Raises:
        ValueError: If the name is blank, max_members < 1, or the category/level is unknown
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Team name is required")
    if max_members is None or max_members < 1:
        raise ValueError("max_members must be at least 1")
    if experience_level and experience_level not in VALID_EXPERIENCE_LEVELS:
        raise ValueError(f"Invalid experience level: {experience_level}")

    sport_category = await _get_sport_category(session, sport_category_id)
    if sport_category_id is not None and sport_category is None:
        raise ValueError("Sport category not found")

    async with session.begin_nested():
        team = Team(
            name=name,
            description=description,
            sport_category_id=sport_category_id,
            max_members=max_members,
            current_members=1,
            is_public=is_public,
            join_code=generate_join_code(),
            status=TeamStatus.ACTIVE.value,
            required_skills=required_skills or [],
            requirements=requirements or [],
            experience_level=experience_level,
            location_city=location_city,
            location_state=location_state,
            created_by=user_id,
        )
        session.add(team)
        await session.flush()

        session.add(
            TeamMember(
                team_id=team.id,
                user_id=user_id,
                role=TeamRole.CAPTAIN.value,
                status=MemberStatus.ACTIVE.value,
            )
        )
        await session.flush()

    await session.refresh(team)
    logger.info(f"User {user_id} created team {team.id} ({team.name})")

    members = await _get_active_members(session, team.id)
    creator = await session.get(User, user_id)
    return format_team(team, sport_category, members, creator)


async def get_team(session: AsyncSession, team_id: int, user_id: Optional[int] = None) -> Dict:
    """
    Get an active team with its members.

    Reconciles the cached member counter against the ledger and persists the
    correction. A team whose ledger has lost every row gets its creator
    restored as captain.

    Raises:
        TeamNotFoundError: If the team does not exist or is not active
        TeamPermissionError: If the team is private and the user is neither creator nor member
    """
    team = await get_team_row(session, team_id)

    if not await _can_view(session, team, user_id):
        raise TeamPermissionError("Access denied")

    members = await _get_active_members(session, team.id)

    if not members and team.created_by:
        logger.warning(f"Team {team.id} has no active members, restoring creator as captain")
        await add_member(session, team.id, team.created_by, TeamRole.CAPTAIN.value)
        members = await _get_active_members(session, team.id)

    if team.current_members != len(members):
        logger.info(
            f"Reconciling member count for team {team.id}: {team.current_members} -> {len(members)}"
        )
        team.current_members = len(members)
        await session.flush()
        # updated_at is set server-side on flush
        await session.refresh(team)

    sport_category = await _get_sport_category(session, team.sport_category_id)
    creator = await session.get(User, team.created_by)
    is_insider = user_id is not None and (
        team.created_by == user_id or any(member.user_id == user_id for member, _ in members)
    )
    return format_team(team, sport_category, members, creator, include_join_code=is_insider)


async def update_team(
    session: AsyncSession,
    team_id: int,
    user_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    requirements: Optional[List[str]] = None,
    required_skills: Optional[List[str]] = None,
) -> Dict:
    """
    Update the editable details of a team. Only fields passed as non-None change.

    Raises:
        TeamNotFoundError: If the team does not exist
        TeamPermissionError: If the user is not the team creator
        ValueError: If the new name is blank
    """
    team = await get_team_row(session, team_id, active_only=False)
    if team.created_by != user_id:
        raise TeamPermissionError("Only team captain can edit team details")

    if name is not None:
        name = name.strip()
        if not name:
            raise ValueError("Team name is required")
        team.name = name
    if description is not None:
        team.description = description
    if requirements is not None:
        team.requirements = requirements
    if required_skills is not None:
        team.required_skills = required_skills
    team.updated_at = utcnow()

    await session.flush()
    await session.refresh(team)

    sport_category = await _get_sport_category(session, team.sport_category_id)
    return format_team(team, sport_category)


async def delete_team(session: AsyncSession, team_id: int, user_id: int) -> Dict:
    """
    Delete a team along with its memberships and invites.

    Raises:
        TeamNotFoundError: If the team does not exist
        TeamPermissionError: If the user is not the team creator
    """
    team = await get_team_row(session, team_id, active_only=False, for_update=True)
    if team.created_by != user_id:
        raise TeamPermissionError("Only team captain can delete the team")
    team_name = team.name

    await session.execute(delete(TeamInvite).where(TeamInvite.team_id == team_id))
    await session.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
    result = await session.execute(
        delete(Team).where(Team.id == team_id, Team.created_by == user_id)
    )
    if result.rowcount == 0:
        raise TeamNotFoundError("Team not found")

    logger.info(f"User {user_id} deleted team {team_id} ({team_name})")
    return {"message": f'Team "{team_name}" has been deleted successfully'}


async def list_teams(
    session: AsyncSession,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sport: Optional[str] = None,
    location: Optional[str] = None,
    experience_level: Optional[str] = None,
    exclude_user_teams: bool = False,
    user_id: Optional[int] = None,
) -> Dict:
    """
    Browse public, active teams newest first.

    Args:
        sport: Sport name, matched case-insensitively against the team's category
        location: Substring matched case-insensitively against city or state
        experience_level: Exact experience level
        exclude_user_teams: Hide teams the user created or belongs to

    Returns:
        Dict with ``data`` (list of teams) and ``pagination``
    """
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

    query = select(Team).where(
        Team.is_public == True,  # noqa: E712
        Team.status == TeamStatus.ACTIVE.value,
    )

    if sport:
        query = query.join(SportCategory, SportCategory.id == Team.sport_category_id).where(
            func.lower(SportCategory.sport_name) == sport.strip().lower()
        )
    if location:
        pattern = f"%{location.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Team.location_city).like(pattern),
                func.lower(Team.location_state).like(pattern),
            )
        )
    if experience_level:
        query = query.where(Team.experience_level == experience_level)
    if exclude_user_teams and user_id is not None:
        my_team_ids = select(TeamMember.team_id).where(
            and_(
                TeamMember.user_id == user_id,
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
        )
        query = query.where(Team.created_by != user_id, Team.id.not_in(my_team_ids))

    count_result = await session.execute(select(func.count()).select_from(query.subquery()))
    total_count = count_result.scalar_one() or 0

    result = await session.execute(
        query.order_by(Team.created_at.desc(), Team.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    teams = result.scalars().all()

    categories, members_by_team, creators = await _load_team_context(session, teams)
    data = [
        format_team(
            team,
            categories.get(team.sport_category_id),
            members_by_team.get(team.id, []),
            creators.get(team.created_by),
            include_join_code=False,
        )
        for team in teams
    ]

    total_pages = math.ceil(total_count / limit) if total_count else 0
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "count": total_count,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


async def list_my_teams(session: AsyncSession, user_id: int) -> Dict:
    """Every active team the user has an active membership in."""
    result = await session.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(
            TeamMember.user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE.value,
            Team.status == TeamStatus.ACTIVE.value,
        )
        .order_by(Team.created_at.desc(), Team.id.desc())
    )
    teams = result.scalars().all()

    categories, members_by_team, creators = await _load_team_context(session, teams)
    data = []
    for team in teams:
        members = members_by_team.get(team.id, [])
        team_dict = format_team(
            team, categories.get(team.sport_category_id), members, creators.get(team.created_by)
        )
        team_dict["current_members"] = len(members)
        data.append(team_dict)

    return {"data": data, "count": len(data)}


# ──────────────────────────────────────────────────────────────
# Membership ledger
# ──────────────────────────────────────────────────────────────


async def list_members(
    session: AsyncSession, team_id: int, user_id: Optional[int] = None
) -> List[Dict]:
    """
    Active members of a team with their display info.

    Raises:
        TeamNotFoundError: If the team does not exist or is not active
        TeamPermissionError: If the team is private and the user cannot see it
    """
    team = await get_team_row(session, team_id)
    if not await _can_view(session, team, user_id):
        raise TeamPermissionError("Access denied")
    members = await _get_active_members(session, team_id)
    return [format_member(member, user) for member, user in members]


async def join_team(
    session: AsyncSession,
    team_id: int,
    user_id: int,
    join_code: Optional[str] = None,
) -> Dict:
    """
    Join a team directly, optionally presenting its join code.

    Raises:
        TeamNotFoundError: If the team does not exist or is not active
        ValueError: On a wrong or missing join code, a full team, or an existing membership
    """
    team = await get_team_row(session, team_id, for_update=True)

    code = normalize_join_code(join_code)
    if code and code != team.join_code:
        raise ValueError("Invalid join code")
    if not team.is_public and not code:
        raise ValueError("Join code required for this team")

    if await count_active_members(session, team.id) >= team.max_members:
        raise ValueError("Team is full")
    if await get_active_membership(session, team.id, user_id):
        raise ValueError("You are already a member of this team")

    member = await add_member(session, team.id, user_id, TeamRole.MEMBER.value)
    await sync_member_count(session, team)
    user = await session.get(User, user_id)

    logger.info(f"User {user_id} joined team {team.id}")
    return {"message": f"Successfully joined {team.name}!", "member": format_member(member, user)}


async def leave_team(session: AsyncSession, team_id: int, user_id: int) -> Dict:
    """
    Leave a team. The captain cannot leave their own team.

    Raises:
        TeamNotFoundError: If the team does not exist or the user is not a member
        ValueError: If the user is the team captain
    """
    team = await get_team_row(session, team_id, active_only=False, for_update=True)
    if team.created_by == user_id:
        raise ValueError(
            "Team captains cannot leave their own team. "
            "Transfer leadership or delete the team instead."
        )

    membership = await get_active_membership(session, team.id, user_id)
    if not membership:
        raise TeamNotFoundError("You are not a member of this team")

    await session.delete(membership)
    await session.flush()
    await sync_member_count(session, team)

    logger.info(f"User {user_id} left team {team.id}")
    return {"message": f"Successfully left {team.name}"}


async def remove_member(
    session: AsyncSession, team_id: int, member_id: Optional[int], user_id: int
) -> Dict:
    """
    Remove a membership row. Only the team creator may do this, and never to
    the captain's own row.

    Args:
        member_id: ID of the team_members row (not the user id)
        user_id: Acting user

    Raises:
        ValueError: If member_id is missing or targets the captain
        TeamNotFoundError: If the team or member does not exist
        TeamPermissionError: If the acting user is not the team creator
    """
    if not member_id:
        raise ValueError("Member ID is required")

    team = await get_team_row(session, team_id, active_only=False, for_update=True)
    if team.created_by != user_id:
        raise TeamPermissionError("Only team captain can remove members")

    result = await session.execute(
        select(TeamMember).where(TeamMember.id == member_id, TeamMember.team_id == team_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise TeamNotFoundError("Member not found")
    if member.role == TeamRole.CAPTAIN.value or member.user_id == user_id:
        raise ValueError("Cannot remove team captain")

    removed_user_id = member.user_id
    await session.delete(member)
    await session.flush()
    await sync_member_count(session, team)

    logger.info(f"User {user_id} removed user {removed_user_id} from team {team.id}")
    return {"message": "Member removed successfully"}
