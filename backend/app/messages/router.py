"""Messages router: direct messages between connected users.

Endpoints:
    POST /api/messages/send                 - Store a message
    GET  /api/messages/unread               - Unread counts per connection
    GET  /api/messages/{connectionId}       - Paged history (oldest first)
    PUT  /api/messages/{connectionId}/read  - Mark messages read
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_current_user
from app.connections.service import ConnectionService
from app.errors import ValidationFailedError
from app.pagination import pagination_info
from app.realtime import protocol
from app.realtime.hub import get_hub
from app.realtime.unread import UnreadCounter
from app.users.schemas import User
from app.users.service import UserService

from .schemas import MarkReadRequest, SendMessageRequest
from .service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _service() -> MessageService:
    return MessageService()


@router.post("/send", status_code=201)
async def send_message(req: SendMessageRequest, user: User = Depends(get_current_user)) -> dict:
    if not req.connectionId or not req.content:
        raise ValidationFailedError("Connection ID and content are required")

    connections = ConnectionService()
    connection = connections.get_for_participant(
        req.connectionId, user.id, "Not authorized to send messages in this connection"
    )
    message = _service().send(connection, user.id, req.content, req.messageType)
    connections.touch_last_message(connection.id)

    users = UserService().get_many([message.sender_id, message.receiver_id])
    return {
        "success": True,
        "message": "Message sent successfully",
        "data": {"message": message.to_dict(users)},
    }


@router.get("/unread")
async def unread_counts(user: User = Depends(get_current_user)) -> dict:
    """Same summary the ``get-unread-counts`` socket event returns."""
    hub = get_hub()
    counter = hub.unread if hub is not None else UnreadCounter(_service())
    return {"success": True, "data": counter.unread_summary(user.id)}


@router.get("/{connection_id}")
async def list_messages(
    connection_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    before: Optional[str] = None,
    user: User = Depends(get_current_user),
) -> dict:
    ConnectionService().get_for_participant(
        connection_id, user.id, "Not authorized to view messages in this connection"
    )
    messages, total = _service().list_page(connection_id, page, limit, before)

    ids = set()
    for m in messages:
        ids.update((m.sender_id, m.receiver_id))
    users = UserService().get_many(ids)

    return {
        "success": True,
        "message": "Messages retrieved successfully",
        "data": {
            "messages": [m.to_dict(users) for m in messages],
            "pagination": pagination_info(page, limit, total),
        },
    }


@router.put("/{connection_id}/read")
async def mark_read(
    connection_id: str,
    req: Optional[MarkReadRequest] = None,
    user: User = Depends(get_current_user),
) -> dict:
    """Mark messages read and tell the room's live members."""
    ConnectionService().get_for_participant(
        connection_id, user.id, "Not authorized to mark messages as read in this connection"
    )
    message_ids = req.messageIds if req is not None else None
    modified = _service().mark_read(connection_id, user.id, message_ids)

    hub = get_hub()
    if modified > 0 and hub is not None:
        await hub.relay.relay(
            connection_id,
            protocol.MESSAGE_READ,
            {"connectionId": connection_id, "messageIds": message_ids or [], "readBy": user.id},
        )

    return {
        "success": True,
        "message": "Messages marked as read successfully",
        "data": {"modifiedCount": modified},
    }
