"""Pydantic schemas for the networking assistant."""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from app.database import isoformat

ReplyType = Literal["text", "suggestion", "action", "profile_analysis"]
SenderType = Literal["user", "ai"]

ASSISTANT_SENDER_ID = "ai-assistant"


class AssistantReply(BaseModel):
    """What a handler produces for one user message."""
    message: str
    messageType: ReplyType = "text"
    metadata: Optional[Dict[str, Any]] = None


class ChatRequest(BaseModel):
    """Request body for POST /api/chatbot/message."""
    message: str = ""
    conversationId: Optional[str] = None


class CreateConversationRequest(BaseModel):
    """Request body for POST /api/chatbot/conversation."""
    title: Optional[str] = Field(default=None, max_length=200)


class AssistantConversation(BaseModel):
    conversation_id: str
    user_id: str
    title: Optional[str] = None
    last_message: Optional[str] = None
    last_message_at: datetime
    message_count: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "conversationId": self.conversation_id,
            "userId": self.user_id,
            "title": self.title,
            "lastMessage": self.last_message,
            "lastMessageAt": isoformat(self.last_message_at),
            "messageCount": self.message_count,
            "isActive": self.is_active,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class AssistantMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_type: SenderType
    message: str
    message_type: ReplyType = "text"
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime
    is_read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "senderId": self.sender_id,
            "senderType": self.sender_type,
            "message": self.message,
            "messageType": self.message_type,
            "metadata": self.metadata,
            "timestamp": isoformat(self.timestamp),
            "isRead": self.is_read,
        }
