"""
User lookups. Accounts themselves are provisioned by the identity provider.
"""

from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from scoutlete.database.models import User


def display_name_for(user: Optional[User]) -> str:
    """Best human-readable name for a user row."""
    if user is None:
        return "A user"
    if user.display_name:
        return user.display_name
    full_name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return full_name or user.email or "A user"


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "display_name": display_name_for(user),
        "avatar_url": user.avatar_url,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def user_summary(user: Optional[User]) -> Optional[Dict]:
    """Compact user shape embedded in team, member and invite payloads."""
    if user is None:
        return None
    return {
        "id": user.id,
        "display_name": display_name_for(user),
        "avatar_url": user.avatar_url,
    }


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_users_by_ids(session: AsyncSession, user_ids: Iterable[int]) -> Dict[int, User]:
    """Batch load users keyed by id."""
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}
