"""ConnectionService: connection requests and their lifecycle.

A connection starts ``pending`` when one user asks another, and the
non-initiating participant moves it to ``accepted`` or ``declined``. Only
accepted connections carry direct messages.
"""
import logging
import uuid
from typing import List, Optional, Tuple

from app.database import Database, utcnow
from app.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from app.pagination import offset_for

from .schemas import Connection

logger = logging.getLogger(__name__)

RESPONSE_STATUSES = ("accepted", "declined")


class ConnectionService:
    """Reads and writes connection rows."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db or Database.get_instance()

    # -----------------------------------------------------------------------
    # Create / respond
    # -----------------------------------------------------------------------

    def create(self, sender_id: str, receiver_id: str, message: Optional[str] = None) -> Connection:
        """Open a pending request from ``sender_id`` to ``receiver_id``.

        Raises:
            ValidationFailedError: Sender and receiver are the same user.
            ConflictError: The two users already share a connection.
        """
        if sender_id == receiver_id:
            raise ValidationFailedError("Cannot send a connection request to yourself")
        if self.find_between(sender_id, receiver_id) is not None:
            raise ConflictError("Connection already exists")

        a, b = sorted([sender_id, receiver_id])
        connection_id = uuid.uuid4().hex
        now = utcnow()
        self._db.execute(
            """
            INSERT INTO connections
              (id, participant_a, participant_b, initiator, status, initial_message,
               created_at, updated_at, last_message_at)
            VALUES (?, ?, ?, ?, 'pending', ?, ?, ?, NULL)
            """,
            [connection_id, a, b, sender_id, message, now, now],
        )
        logger.info("[connections] %s -> %s (%s)", sender_id, receiver_id, connection_id)
        return self.get(connection_id)

    def respond(self, connection_id: str, user_id: str, status: str) -> Connection:
        """Accept or decline a pending request addressed to ``user_id``.

        Raises:
            ValidationFailedError: ``status`` is not accepted/declined, or the
                request was already answered.
            NotFoundError: No such connection.
            ForbiddenError: Caller is not the receiving participant.
        """
        if status not in RESPONSE_STATUSES:
            raise ValidationFailedError('Status must be either "accepted" or "declined"')

        connection = self.get_for_participant(
            connection_id, user_id, "Not authorized to respond to this connection"
        )
        if connection.initiator == user_id:
            raise ForbiddenError("Not authorized to respond to this connection")
        if connection.status != "pending":
            raise ValidationFailedError("Connection request has already been responded to")

        self._db.execute(
            "UPDATE connections SET status = ?, updated_at = ? WHERE id = ?",
            [status, utcnow(), connection_id],
        )
        logger.info("[connections] %s %s by %s", connection_id, status, user_id)
        return self.get(connection_id)

    def touch_last_message(self, connection_id: str) -> None:
        now = utcnow()
        self._db.execute(
            "UPDATE connections SET last_message_at = ?, updated_at = ? WHERE id = ?",
            [now, now, connection_id],
        )

    # -----------------------------------------------------------------------
    # Read
    # -----------------------------------------------------------------------

    def get(self, connection_id: str) -> Optional[Connection]:
        row = self._db.fetch_dict("SELECT * FROM connections WHERE id = ?", [connection_id])
        return self._row_to_connection(row) if row else None

    def get_for_participant(
        self,
        connection_id: str,
        user_id: str,
        forbidden_message: str = "Not authorized to view this connection",
    ) -> Connection:
        """Fetch a connection the caller takes part in.

        Raises:
            NotFoundError: No such connection.
            ForbiddenError: Caller is not one of the two participants.
        """
        connection = self.get(connection_id)
        if connection is None:
            raise NotFoundError("Connection not found")
        if not connection.has_participant(user_id):
            raise ForbiddenError(forbidden_message)
        return connection

    def find_between(self, user_a: str, user_b: str) -> Optional[Connection]:
        a, b = sorted([user_a, user_b])
        row = self._db.fetch_dict(
            "SELECT * FROM connections WHERE participant_a = ? AND participant_b = ?",
            [a, b],
        )
        return self._row_to_connection(row) if row else None

    def list_for(
        self,
        user_id: str,
        status: str = "all",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Connection], int]:
        """One page of the user's connections, most recently active first."""
        where = "(participant_a = ? OR participant_b = ?)"
        params: list = [user_id, user_id]
        if status != "all":
            where += " AND status = ?"
            params.append(status)

        total = self._db.scalar(f"SELECT COUNT(*) FROM connections WHERE {where}", params)
        rows = self._db.fetch_dicts(
            f"""
            SELECT * FROM connections WHERE {where}
            ORDER BY last_message_at DESC NULLS LAST, updated_at DESC
            LIMIT ? OFFSET ?
            """,
            params + [limit, offset_for(page, limit)],
        )
        return [self._row_to_connection(r) for r in rows], int(total or 0)

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    @staticmethod
    def _row_to_connection(row: dict) -> Connection:
        return Connection(
            id=row["id"],
            participants=[row["participant_a"], row["participant_b"]],
            initiator=row["initiator"],
            status=row["status"],
            initial_message=row["initial_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            last_message_at=row["last_message_at"],
        )
