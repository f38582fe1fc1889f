"""StatsService: per-user network statistics and activity timeline."""
import logging
from datetime import timedelta
from typing import List, Optional

from app.database import Database, isoformat, utcnow
from app.users.schemas import User

logger = logging.getLogger(__name__)

MAX_SCORE = 100
RECENT_DAYS = 7

_PARTICIPANT = "(participant_a = ? OR participant_b = ?)"


def activity_score(user: User, connection_count: int, message_count: int) -> int:
    """Profile (40) + connections (30) + messaging (30), capped at 100."""
    score = 0

    # Profile completeness
    if user.name:
        score += 10
    if user.bio and len(user.bio) > 20:
        score += 10
    if user.interests:
        score += 10
    if user.profession:
        score += 10

    # Network size
    if connection_count > 0:
        score += 10
    if connection_count >= 5:
        score += 10
    if connection_count >= 10:
        score += 10

    # Messaging
    if message_count > 0:
        score += 10
    if message_count >= 10:
        score += 10
    if message_count >= 50:
        score += 10

    return min(score, MAX_SCORE)


class StatsService:
    """Aggregate queries over connections and messages."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db or Database.get_instance()

    def _count(self, sql: str, params: list) -> int:
        return int(self._db.scalar(sql, params) or 0)

    def network_stats(self, user: User) -> dict:
        uid = user.id
        accepted = self._count(
            f"SELECT COUNT(*) FROM connections WHERE {_PARTICIPANT} AND status = 'accepted'",
            [uid, uid],
        )
        pending_received = self._count(
            f"""
            SELECT COUNT(*) FROM connections
            WHERE {_PARTICIPANT} AND status = 'pending' AND initiator != ?
            """,
            [uid, uid, uid],
        )
        recent = self._count(
            f"""
            SELECT COUNT(*) FROM connections
            WHERE {_PARTICIPANT} AND status = 'accepted' AND updated_at >= ?
            """,
            [uid, uid, utcnow() - timedelta(days=RECENT_DAYS)],
        )
        sent = self._count("SELECT COUNT(*) FROM messages WHERE sender_id = ?", [uid])
        received = self._count("SELECT COUNT(*) FROM messages WHERE receiver_id = ?", [uid])
        unread = self._count(
            "SELECT COUNT(*) FROM messages WHERE receiver_id = ? AND status != 'read'", [uid]
        )

        return {
            "connections": {"total": accepted, "pending": pending_received, "recent": recent},
            "messages": {
                "sent": sent,
                "received": received,
                "total": sent + received,
                "unread": unread,
            },
            "matchScore": activity_score(user, accepted, sent + received),
            "lastUpdated": isoformat(utcnow()),
        }

    def activity(self, user: User, days: int = 7) -> dict:
        """Per-day message and accepted-connection counts over the last ``days``."""
        end = utcnow()
        start = end - timedelta(days=days)
        uid = user.id

        messages = self._daily(
            """
            SELECT strftime(created_at, '%Y-%m-%d') AS day, COUNT(*) AS count
            FROM messages
            WHERE (sender_id = ? OR receiver_id = ?) AND created_at >= ?
            GROUP BY day ORDER BY day
            """,
            [uid, uid, start],
        )
        connections = self._daily(
            f"""
            SELECT strftime(updated_at, '%Y-%m-%d') AS day, COUNT(*) AS count
            FROM connections
            WHERE {_PARTICIPANT} AND status = 'accepted' AND updated_at >= ?
            GROUP BY day ORDER BY day
            """,
            [uid, uid, start],
        )
        return {
            "messages": messages,
            "connections": connections,
            "period": {"start": isoformat(start), "end": isoformat(end), "days": days},
        }

    def _daily(self, sql: str, params: list) -> List[dict]:
        return [
            {"date": row["day"], "count": int(row["count"])}
            for row in self._db.fetch_dicts(sql, params)
        ]
