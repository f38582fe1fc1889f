"""Match router: AI match suggestions and public profiles.

Endpoints:
    GET  /api/match-users                     - AI-ranked suggestions
    POST /api/match-users/{userId}/message    - AI intro message for a user
    GET  /api/match-users/profile/{userId}    - Public profile (no email)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.errors import NotFoundError
from app.users.schemas import User
from app.users.service import UserService

from .schemas import IntroMessageRequest
from .service import MatchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/match-users", tags=["matches"])


@router.get("")
async def get_matches(user: User = Depends(get_current_user)) -> dict:
    candidates = UserService().list_candidates(exclude_id=user.id)
    if not candidates:
        return {
            "success": True,
            "message": "No other users found for matching",
            "data": {"matches": [], "totalUsers": 0, "matchesFound": 0},
        }

    matches = await MatchService().generate_matches(user, candidates)
    return {
        "success": True,
        "message": "Matches generated successfully",
        "data": {
            "matches": matches,
            "totalUsers": len(candidates),
            "matchesFound": len(matches),
        },
    }


@router.post("/{user_id}/message")
async def intro_message(
    user_id: str,
    req: Optional[IntroMessageRequest] = None,
    user: User = Depends(get_current_user),
) -> dict:
    target = UserService().get(user_id)
    if target is None:
        raise NotFoundError("User not found")

    connection_type = req.connectionType if req is not None else "professional"
    message = await MatchService().intro_message(user, target, connection_type)
    return {
        "success": True,
        "message": "Connection message generated successfully",
        "data": {
            "message": message,
            "targetUser": {"id": target.id, "username": target.username, "name": target.name},
        },
    }


@router.get("/profile/{user_id}")
async def public_profile(user_id: str, user: User = Depends(get_current_user)) -> dict:
    target = UserService().get(user_id)
    if target is None:
        raise NotFoundError("User not found")
    return {"success": True, "data": {"user": target.to_public(include_email=False)}}
