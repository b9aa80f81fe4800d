"""
Tests for sport category listing.
"""

import pytest

from scoutlete.database.models import SportCategory
from scoutlete.services import sports_category_service


@pytest.mark.asyncio
async def test_list_groups_active_categories(db_session):
    db_session.add_all(
        [
            SportCategory(sport_name="Soccer", category="5-a-side"),
            SportCategory(sport_name="Basketball", category="3x3"),
            SportCategory(sport_name="Basketball", category="5x5"),
            SportCategory(sport_name="Cricket", category="T20", is_active=False),
        ]
    )
    await db_session.flush()

    result = await sports_category_service.list_sports_categories(db_session)

    assert result["count"] == 3
    assert [c["category"] for c in result["data"]] == ["3x3", "5x5", "5-a-side"]
    assert sorted(result["grouped"]) == ["Basketball", "Soccer"]
    assert len(result["grouped"]["Basketball"]) == 2


@pytest.mark.asyncio
async def test_include_inactive(db_session):
    db_session.add(SportCategory(sport_name="Cricket", category="T20", is_active=False))
    await db_session.flush()

    result = await sports_category_service.list_sports_categories(db_session, include_inactive=True)

    assert result["count"] == 1
    assert result["grouped"]["Cricket"][0]["category"] == "T20"
