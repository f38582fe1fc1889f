"""MessageService: direct messages inside accepted connections.

Also the unread source for the realtime layer: :meth:`unread_counts` is what
the :class:`~app.realtime.unread.UnreadCounter` scans on every request.
"""
import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from app.connections.schemas import Connection
from app.database import Database, utcnow
from app.errors import ValidationFailedError
from app.pagination import offset_for

from .schemas import MAX_CONTENT_LENGTH, Message

logger = logging.getLogger(__name__)


class MessageService:
    """Reads and writes message rows."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db or Database.get_instance()

    def send(
        self,
        connection: Connection,
        sender_id: str,
        content: str,
        message_type: str = "text",
    ) -> Message:
        """Store a message from ``sender_id`` to the other participant.

        Raises:
            ValidationFailedError: Connection not accepted, or content empty
                or too long after trimming.
        """
        if connection.status != "accepted":
            raise ValidationFailedError("Cannot send messages to pending or declined connections")

        content = content.strip()
        if not content:
            raise ValidationFailedError("Connection ID and content are required")
        if len(content) > MAX_CONTENT_LENGTH:
            raise ValidationFailedError(
                f"Message content cannot exceed {MAX_CONTENT_LENGTH} characters"
            )

        receiver_id = connection.other_participant(sender_id)
        if receiver_id is None:
            raise ValidationFailedError("Invalid connection participants")

        message_id = uuid.uuid4().hex
        self._db.execute(
            """
            INSERT INTO messages
              (id, connection_id, sender_id, receiver_id, content, message_type,
               status, created_at, read_at)
            VALUES (?, ?, ?, ?, ?, ?, 'sent', ?, NULL)
            """,
            [message_id, connection.id, sender_id, receiver_id, content, message_type, utcnow()],
        )
        logger.debug("[messages] %s in %s from %s", message_id, connection.id, sender_id)
        return self.get(message_id)

    def get(self, message_id: str) -> Optional[Message]:
        row = self._db.fetch_dict("SELECT * FROM messages WHERE id = ?", [message_id])
        return Message(**row) if row else None

    def list_page(
        self,
        connection_id: str,
        page: int = 1,
        limit: int = 50,
        before: Optional[str] = None,
    ) -> Tuple[List[Message], int]:
        """A page of messages, newest page first but returned oldest-first.

        ``before`` is a message id; when it exists only older messages are
        considered. ``total`` always counts the whole conversation.
        """
        where = "connection_id = ?"
        params: list = [connection_id]
        if before:
            anchor = self.get(before)
            if anchor is not None:
                where += " AND created_at < ?"
                params.append(anchor.created_at)

        rows = self._db.fetch_dicts(
            f"""
            SELECT * FROM messages WHERE {where}
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            params + [limit, offset_for(page, limit)],
        )
        total = self._db.scalar(
            "SELECT COUNT(*) FROM messages WHERE connection_id = ?", [connection_id]
        )
        messages = [Message(**r) for r in rows]
        messages.reverse()
        return messages, int(total or 0)

    def mark_read(
        self,
        connection_id: str,
        reader_id: str,
        message_ids: Optional[Sequence[str]] = None,
    ) -> int:
        """Mark unread messages addressed to ``reader_id`` as read.

        Returns:
            Number of messages whose status changed.
        """
        where = "connection_id = ? AND receiver_id = ? AND status != 'read'"
        params: list = [connection_id, reader_id]
        if message_ids:
            placeholders = ", ".join("?" for _ in message_ids)
            where += f" AND id IN ({placeholders})"
            params.extend(message_ids)

        modified = self._db.scalar(f"SELECT COUNT(*) FROM messages WHERE {where}", params)
        if modified:
            self._db.execute(
                f"UPDATE messages SET status = 'read', read_at = ? WHERE {where}",
                [utcnow()] + params,
            )
        return int(modified or 0)

    def unread_counts(self, receiver_id: str) -> List[Tuple[str, int]]:
        rows = self._db.execute(
            """
            SELECT connection_id, COUNT(*) FROM messages
            WHERE receiver_id = ? AND status != 'read'
            GROUP BY connection_id
            ORDER BY connection_id
            """,
            [receiver_id],
        ).fetchall()
        return [(connection_id, int(count)) for connection_id, count in rows]
