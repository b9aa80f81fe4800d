"""Sport category lookups used by team creation and browsing."""

from typing import Dict, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from scoutlete.database.models import SportCategory
from scoutlete.services.team_service import format_sport_category


async def list_sports_categories(session: AsyncSession, include_inactive: bool = False) -> Dict:
    """
    List sport categories ordered by sport then category.

    Returns:
        Dict with ``data`` (flat list), ``grouped`` (sport name -> categories) and ``count``
    """
    query = select(SportCategory)
    if not include_inactive:
        query = query.where(SportCategory.is_active == True)  # noqa: E712
    result = await session.execute(
        query.order_by(SportCategory.sport_name, SportCategory.category)
    )
    data = [format_sport_category(category) for category in result.scalars().all()]

    grouped: Dict[str, List[Dict]] = {}
    for category in data:
        grouped.setdefault(category["sport_name"], []).append(category)

    return {"data": data, "grouped": grouped, "count": len(data)}
