"""Connections router: requests between users.

Endpoints:
    POST /api/connections/send                - Send a connection request
    PUT  /api/connections/{id}/respond        - Accept or decline a request
    GET  /api/connections                     - Paged list of my connections
    GET  /api/connections/{id}                - One connection
"""
import logging

from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_current_user
from app.errors import NotFoundError, ValidationFailedError
from app.pagination import pagination_info
from app.realtime import protocol
from app.realtime.hub import get_hub
from app.users.schemas import User
from app.users.service import UserService

from .schemas import Connection, RespondRequest, SendConnectionRequest, StatusFilter
from .service import ConnectionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connections", tags=["connections"])


def _service() -> ConnectionService:
    return ConnectionService()


def _expand(connection: Connection) -> dict:
    users = UserService().get_many(connection.participants + [connection.initiator])
    return connection.to_dict(users)


@router.post("/send", status_code=201)
async def send_request(
    req: SendConnectionRequest,
    user: User = Depends(get_current_user),
) -> dict:
    """Ask another user to connect.

    The receiver gets a ``notification`` event if they are online; the
    request is stored either way.
    """
    if not req.receiverId:
        raise ValidationFailedError("Receiver ID is required")
    if UserService().get(req.receiverId) is None:
        raise NotFoundError("User not found")

    connection = _service().create(user.id, req.receiverId, req.message)

    hub = get_hub()
    if hub is not None:
        await hub.registry.send(
            req.receiverId,
            protocol.NOTIFICATION,
            {
                "message": f"{user.name} wants to connect with you",
                "type": "connection_request",
                "data": {"connectionId": connection.id, "from": user.summary()},
            },
        )

    return {
        "success": True,
        "message": "Connection request sent successfully",
        "data": {"connection": _expand(connection)},
    }


@router.put("/{connection_id}/respond")
async def respond(
    connection_id: str,
    req: RespondRequest,
    user: User = Depends(get_current_user),
) -> dict:
    connection = _service().respond(connection_id, user.id, req.status)
    return {
        "success": True,
        "message": f"Connection request {req.status} successfully",
        "data": {"connection": _expand(connection)},
    }


@router.get("")
async def list_connections(
    status: StatusFilter = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
) -> dict:
    connections, total = _service().list_for(user.id, status, page, limit)

    ids = set()
    for c in connections:
        ids.update(c.participants)
        ids.add(c.initiator)
    users = UserService().get_many(ids)

    return {
        "success": True,
        "message": "Connections retrieved successfully",
        "data": {
            "connections": [c.to_dict(users) for c in connections],
            "pagination": pagination_info(page, limit, total),
        },
    }


@router.get("/{connection_id}")
async def get_connection(connection_id: str, user: User = Depends(get_current_user)) -> dict:
    connection = _service().get_for_participant(connection_id, user.id)
    return {
        "success": True,
        "message": "Connection retrieved successfully",
        "data": {"connection": _expand(connection)},
    }
