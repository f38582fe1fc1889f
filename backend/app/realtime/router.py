"""REST surface over the realtime hub.

Endpoints:
    GET  /api/socket/connected-users      - Online principal ids
    GET  /api/socket/user/{userId}/online - Presence check for one user
    POST /api/socket/notify/{userId}      - Push a notification to one user
    POST /api/socket/broadcast            - Push an event to every session
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.auth.dependencies import get_current_user
from app.database import isoformat, utcnow
from app.errors import NotFoundError, ServiceUnavailableError
from app.users.schemas import User

from . import protocol
from .hub import RealtimeHub, get_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/socket", tags=["socket"])


class NotifyRequest(BaseModel):
    message: str
    type: str = "info"
    data: Optional[Any] = None


class BroadcastRequest(BaseModel):
    event: str = Field(..., min_length=1)
    data: Optional[Any] = None


def _hub() -> RealtimeHub:
    hub = get_hub()
    if hub is None:
        raise ServiceUnavailableError("Socket service not available")
    return hub


@router.get("/connected-users")
async def connected_users(user: User = Depends(get_current_user)) -> dict:
    ids = _hub().registry.connected_principals()
    return {"success": True, "data": {"connectedUsers": len(ids), "userIds": ids}}


@router.get("/user/{user_id}/online")
async def user_online(user_id: str, user: User = Depends(get_current_user)) -> dict:
    return {
        "success": True,
        "data": {"userId": user_id, "isOnline": _hub().registry.is_online(user_id)},
    }


@router.post("/notify/{user_id}")
async def notify(
    user_id: str,
    req: NotifyRequest,
    user: User = Depends(get_current_user),
) -> dict:
    sent = await _hub().registry.send(
        user_id,
        protocol.NOTIFICATION,
        {
            "message": req.message,
            "type": req.type,
            "data": req.data,
            "timestamp": isoformat(utcnow()),
        },
    )
    if not sent:
        raise NotFoundError("User not online")
    return {"success": True, "message": "Notification sent successfully"}


@router.post("/broadcast")
async def broadcast(req: BroadcastRequest, user: User = Depends(get_current_user)) -> dict:
    await _hub().presence.broadcast(req.event, req.data)
    return {"success": True, "message": "Broadcast sent successfully"}
