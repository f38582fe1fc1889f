"""Pydantic schemas for direct messages."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.database import isoformat

MessageType = Literal["text", "image", "file", "system"]
MessageStatus = Literal["sent", "delivered", "read"]

MAX_CONTENT_LENGTH = 2000


class SendMessageRequest(BaseModel):
    """Request body for POST /api/messages/send."""
    connectionId: str = ""
    content: str = ""
    messageType: MessageType = "text"


class MarkReadRequest(BaseModel):
    """Request body for PUT /api/messages/{connectionId}/read.

    With no ids, every unread message addressed to the caller is marked.
    """
    messageIds: Optional[List[str]] = None


class Message(BaseModel):
    """Stored direct message."""
    id: str
    connection_id: str
    sender_id: str
    receiver_id: str
    content: str
    message_type: MessageType = "text"
    status: MessageStatus = "sent"
    created_at: datetime
    read_at: Optional[datetime] = None

    def to_dict(self, users: Optional[Dict[str, object]] = None) -> dict:
        users = users or {}

        def expand(user_id: str):
            user = users.get(user_id)
            return user.summary() if user is not None else {"id": user_id}

        return {
            "id": self.id,
            "connectionId": self.connection_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "sender": expand(self.sender_id),
            "receiver": expand(self.receiver_id),
            "content": self.content,
            "messageType": self.message_type,
            "status": self.status,
            "createdAt": isoformat(self.created_at),
            "readAt": isoformat(self.read_at),
        }
