"""Sport category route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from scoutlete.database.db import get_db_session
from scoutlete.services import sports_category_service
from scoutlete.models.schemas import SportCategoryListResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/sports-categories", response_model=SportCategoryListResponse)
async def list_sports_categories(session: AsyncSession = Depends(get_db_session)):
    """All active sport categories, flat and grouped by sport."""
    try:
        return await sports_category_service.list_sports_categories(session)
    except Exception as e:
        logger.error(f"Error fetching sports categories: {e}")
        raise HTTPException(status_code=500, detail="Error fetching sports categories")
