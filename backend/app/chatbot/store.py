"""ConversationStore: persistence for assistant conversations and turns."""
import json
import logging
import secrets
import time
import uuid
from typing import List, Optional

from app.database import Database, utcnow
from app.errors import ForbiddenError, NotFoundError

from .schemas import AssistantConversation, AssistantMessage, AssistantReply

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200
HISTORY_LIMIT = 50
DEFAULT_TITLE = "New Conversation"


def new_conversation_id() -> str:
    """``conv_<epoch ms>_<9 random chars>``."""
    return f"conv_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class ConversationStore:
    """Reads and writes assistant conversation rows."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db or Database.get_instance()

    # -----------------------------------------------------------------------
    # Conversations
    # -----------------------------------------------------------------------

    def create(self, user_id: str, title: Optional[str] = None) -> AssistantConversation:
        conversation_id = new_conversation_id()
        now = utcnow()
        self._db.execute(
            """
            INSERT INTO assistant_conversations
              (conversation_id, user_id, title, last_message, last_message_at,
               message_count, is_active, created_at, updated_at)
            VALUES (?, ?, ?, NULL, ?, 0, TRUE, ?, ?)
            """,
            [conversation_id, user_id, title or DEFAULT_TITLE, now, now, now],
        )
        logger.info("[chatbot] Created conversation %s for %s", conversation_id, user_id)
        return self.get(conversation_id)

    def get(self, conversation_id: str) -> Optional[AssistantConversation]:
        row = self._db.fetch_dict(
            "SELECT * FROM assistant_conversations WHERE conversation_id = ?",
            [conversation_id],
        )
        return AssistantConversation(**row) if row else None

    def get_owned(self, conversation_id: str, user_id: str) -> AssistantConversation:
        """Fetch a conversation belonging to ``user_id``.

        Raises:
            NotFoundError: No such conversation.
            ForbiddenError: It belongs to someone else.
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if conversation.user_id != user_id:
            raise ForbiddenError("Not authorized to view this conversation")
        return conversation

    def list_active(self, user_id: str) -> List[AssistantConversation]:
        rows = self._db.fetch_dicts(
            """
            SELECT * FROM assistant_conversations
            WHERE user_id = ? AND is_active
            ORDER BY last_message_at DESC
            """,
            [user_id],
        )
        return [AssistantConversation(**r) for r in rows]

    def record_exchange(self, conversation_id: str, last_message: str, added: int) -> None:
        now = utcnow()
        self._db.execute(
            """
            UPDATE assistant_conversations
            SET last_message = ?, last_message_at = ?, updated_at = ?,
                message_count = message_count + ?
            WHERE conversation_id = ?
            """,
            [last_message[:PREVIEW_LENGTH], now, now, added, conversation_id],
        )

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------

    def add_user_message(self, conversation_id: str, user_id: str, text: str) -> AssistantMessage:
        return self._insert(conversation_id, user_id, "user", text, "text", None)

    def add_reply(self, conversation_id: str, sender_id: str, reply: AssistantReply) -> AssistantMessage:
        return self._insert(
            conversation_id, sender_id, "ai", reply.message, reply.messageType, reply.metadata
        )

    def history(self, conversation_id: str, limit: int = HISTORY_LIMIT) -> List[AssistantMessage]:
        rows = self._db.fetch_dicts(
            """
            SELECT * FROM assistant_messages WHERE conversation_id = ?
            ORDER BY timestamp ASC
            LIMIT ?
            """,
            [conversation_id, limit],
        )
        return [self._row_to_message(r) for r in rows]

    def mark_read(self, message_id: str, user_id: str) -> AssistantMessage:
        """Mark one assistant message read, if it sits in the user's conversation.

        Raises:
            NotFoundError: No such message, or not in one of the user's conversations.
        """
        row = self._db.fetch_dict(
            """
            SELECT m.* FROM assistant_messages m
            JOIN assistant_conversations c ON c.conversation_id = m.conversation_id
            WHERE m.id = ? AND c.user_id = ?
            """,
            [message_id, user_id],
        )
        if row is None:
            raise NotFoundError("Message not found")
        self._db.execute("UPDATE assistant_messages SET is_read = TRUE WHERE id = ?", [message_id])
        row["is_read"] = True
        return self._row_to_message(row)

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    def _insert(self, conversation_id, sender_id, sender_type, text, message_type, metadata):
        message_id = uuid.uuid4().hex
        self._db.execute(
            """
            INSERT INTO assistant_messages
              (id, conversation_id, sender_id, sender_type, message, message_type,
               metadata, timestamp, is_read)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, FALSE)
            """,
            [
                message_id,
                conversation_id,
                sender_id,
                sender_type,
                text,
                message_type,
                json.dumps(metadata) if metadata is not None else None,
                utcnow(),
            ],
        )
        row = self._db.fetch_dict("SELECT * FROM assistant_messages WHERE id = ?", [message_id])
        return self._row_to_message(row)

    @staticmethod
    def _row_to_message(row: dict) -> AssistantMessage:
        data = dict(row)
        data["metadata"] = json.loads(data["metadata"]) if data.get("metadata") else None
        return AssistantMessage(**data)
