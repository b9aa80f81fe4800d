"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from scoutlete.services.team_service import TeamNotFoundError, TeamPermissionError

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Shared error translation
# ---------------------------------------------------------------------------
def team_error_to_http(e: ValueError) -> HTTPException:
    """Map a service ValueError onto the matching HTTP status."""
    if isinstance(e, TeamNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, TeamPermissionError):
        return HTTPException(status_code=403, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from scoutlete.api.routes.teams import router as teams_router  # noqa: E402
from scoutlete.api.routes.team_invites import router as team_invites_router  # noqa: E402
from scoutlete.api.routes.notifications import router as notifications_router  # noqa: E402
from scoutlete.api.routes.sports_categories import router as sports_categories_router  # noqa: E402

router = APIRouter()
router.include_router(teams_router)
router.include_router(team_invites_router)
router.include_router(notifications_router)
router.include_router(sports_categories_router)
