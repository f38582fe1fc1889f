"""Stats router: network statistics for the current user."""
import logging

from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_current_user
from app.users.schemas import User

from .service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/network")
async def network_stats(user: User = Depends(get_current_user)) -> dict:
    return {
        "success": True,
        "message": "Network statistics retrieved successfully",
        "data": StatsService().network_stats(user),
    }


@router.get("/activity")
async def activity(
    days: int = Query(7, ge=1, le=365),
    user: User = Depends(get_current_user),
) -> dict:
    return {
        "success": True,
        "message": "User activity retrieved successfully",
        "data": StatsService().activity(user, days),
    }
