"""Chatbot router: the networking assistant.

Endpoints:
    POST /api/chatbot/message                  - Ask the assistant
    GET  /api/chatbot/conversation/{id}        - Conversation history
    GET  /api/chatbot/conversations            - My active conversations
    POST /api/chatbot/conversation             - Start a conversation
    GET  /api/chatbot/suggestions              - Connection + profile suggestions
    PUT  /api/chatbot/message/{id}/read        - Mark an assistant message read
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.errors import ValidationFailedError
from app.users.schemas import User

from .schemas import ChatRequest, CreateConversationRequest
from .service import AssistantService, profile_report
from .store import DEFAULT_TITLE, ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chatbot", tags=["chatbot"])


@router.post("/message")
async def send_message(req: ChatRequest, user: User = Depends(get_current_user)) -> dict:
    text = req.message.strip()
    if not text:
        raise ValidationFailedError("Message is required")

    store = ConversationStore()
    if req.conversationId:
        conversation_id = store.get_owned(req.conversationId, user.id).conversation_id
    else:
        conversation_id = store.create(user.id).conversation_id

    reply = await AssistantService(store=store).process_message(user, text, conversation_id)
    return {
        "success": True,
        "data": {"response": reply.model_dump(exclude_none=True), "conversationId": conversation_id},
    }


@router.get("/conversation/{conversation_id}")
async def conversation_history(conversation_id: str, user: User = Depends(get_current_user)) -> dict:
    store = ConversationStore()
    store.get_owned(conversation_id, user.id)
    messages = store.history(conversation_id)
    return {
        "success": True,
        "data": {"messages": [m.to_dict() for m in messages], "conversationId": conversation_id},
    }


@router.get("/conversations")
async def list_conversations(user: User = Depends(get_current_user)) -> dict:
    conversations = ConversationStore().list_active(user.id)
    return {"success": True, "data": {"conversations": [c.to_dict() for c in conversations]}}


@router.post("/conversation", status_code=201)
async def create_conversation(
    req: Optional[CreateConversationRequest] = None,
    user: User = Depends(get_current_user),
) -> dict:
    title = req.title if req is not None else None
    conversation = ConversationStore().create(user.id, title)
    return {
        "success": True,
        "data": {
            "conversationId": conversation.conversation_id,
            "title": conversation.title or DEFAULT_TITLE,
        },
    }


@router.get("/suggestions")
async def suggestions(user: User = Depends(get_current_user)) -> dict:
    """Connection and profile suggestions without recording a conversation."""
    connection = await AssistantService().handle_connection_request(user)
    profile = profile_report(user)
    return {
        "success": True,
        "data": {
            "connectionSuggestions": connection.model_dump(exclude_none=True),
            "profileSuggestions": profile.model_dump(exclude_none=True),
        },
    }


@router.put("/message/{message_id}/read")
async def mark_read(message_id: str, user: User = Depends(get_current_user)) -> dict:
    ConversationStore().mark_read(message_id, user.id)
    return {"success": True, "message": "Message marked as read"}
