"""DuckDB-backed document store shared by all feature services.

One embedded DuckDB connection holds every table the API needs. The service
follows the singleton pattern so that routers, the socket gateway and the
lifespan hook all share the same connection.

Tables:
    users                    - accounts and profile fields
    connections              - connection requests between two users
    messages                 - direct messages inside an accepted connection
    assistant_conversations  - chat-assistant conversation headers
    assistant_messages       - chat-assistant turns (user and AI)

List- and object-valued fields (``interests``, assistant ``metadata``) are
stored as JSON text and decoded by the owning service.

Thread Safety:
    The DuckDB connection is NOT thread-safe. All endpoints are ``async def``
    and therefore run on the event loop thread, which is the only caller.

Usage:
    db = Database.get_instance()
    rows = db.execute("SELECT * FROM users WHERE id = ?", [user_id]).fetchall()
"""
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import duckdb

logger = logging.getLogger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id            VARCHAR PRIMARY KEY,
        username      VARCHAR NOT NULL,
        email         VARCHAR NOT NULL,
        password_hash VARCHAR NOT NULL,
        name          VARCHAR NOT NULL,
        phone         VARCHAR,
        bio           VARCHAR,
        profession    VARCHAR,
        interests     VARCHAR NOT NULL DEFAULT '[]',
        avatar        VARCHAR NOT NULL DEFAULT '',
        socket_id     VARCHAR,
        verified      BOOLEAN NOT NULL DEFAULT FALSE,
        last_active   TIMESTAMP NOT NULL,
        created_at    TIMESTAMP NOT NULL,
        updated_at    TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)",
    "CREATE INDEX IF NOT EXISTS idx_users_username ON users(username)",
    """
    CREATE TABLE IF NOT EXISTS connections (
        id              VARCHAR PRIMARY KEY,
        participant_a   VARCHAR NOT NULL,
        participant_b   VARCHAR NOT NULL,
        initiator       VARCHAR NOT NULL,
        status          VARCHAR NOT NULL DEFAULT 'pending',
        initial_message VARCHAR,
        created_at      TIMESTAMP NOT NULL,
        updated_at      TIMESTAMP NOT NULL,
        last_message_at TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_connections_a ON connections(participant_a)",
    "CREATE INDEX IF NOT EXISTS idx_connections_b ON connections(participant_b)",
    """
    CREATE TABLE IF NOT EXISTS messages (
        id            VARCHAR PRIMARY KEY,
        connection_id VARCHAR NOT NULL,
        sender_id     VARCHAR NOT NULL,
        receiver_id   VARCHAR NOT NULL,
        content       VARCHAR NOT NULL,
        message_type  VARCHAR NOT NULL DEFAULT 'text',
        status        VARCHAR NOT NULL DEFAULT 'sent',
        created_at    TIMESTAMP NOT NULL,
        read_at       TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_connection ON messages(connection_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_receiver ON messages(receiver_id)",
    """
    CREATE TABLE IF NOT EXISTS assistant_conversations (
        conversation_id VARCHAR PRIMARY KEY,
        user_id         VARCHAR NOT NULL,
        title           VARCHAR,
        last_message    VARCHAR,
        last_message_at TIMESTAMP NOT NULL,
        message_count   INTEGER NOT NULL DEFAULT 0,
        is_active       BOOLEAN NOT NULL DEFAULT TRUE,
        created_at      TIMESTAMP NOT NULL,
        updated_at      TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_assistant_conv_user ON assistant_conversations(user_id)",
    """
    CREATE TABLE IF NOT EXISTS assistant_messages (
        id              VARCHAR PRIMARY KEY,
        conversation_id VARCHAR NOT NULL,
        sender_id       VARCHAR NOT NULL,
        sender_type     VARCHAR NOT NULL,
        message         VARCHAR NOT NULL,
        message_type    VARCHAR NOT NULL DEFAULT 'text',
        metadata        VARCHAR,
        timestamp       TIMESTAMP NOT NULL,
        is_read         BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_assistant_msg_conv ON assistant_messages(conversation_id)",
]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form DuckDB TIMESTAMP columns hold."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else value


class Database:
    """Singleton owner of the DuckDB connection.

    Attributes:
        _instance: Singleton instance of the database.
        _db_path: Path to the DuckDB database file.
    """

    _instance: Optional["Database"] = None
    _db_path: str = "networking.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Open the database and create the schema if it doesn't exist.

        Args:
            db_path: Path to DuckDB file, or ":memory:".
        """
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()
        logger.info("[Database] Initialized with db=%s", self._db_path)

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "Database":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
                Falls back to ``database.path`` from the app config.
        """
        if cls._instance is None:
            if db_path is None:
                from app.config import get_config
                db_path = get_config().database.path
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and clear the instance (used by tests)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    @property
    def path(self) -> str:
        return self._db_path

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create all tables and indexes (idempotent)."""
        conn = self._get_connection()
        for statement in _SCHEMA:
            conn.execute(statement)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None):
        """Run one statement and return the DuckDB result for fetching."""
        conn = self._get_connection()
        if params is None:
            return conn.execute(sql)
        return conn.execute(sql, list(params))

    def fetch_dicts(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[dict]:
        """Run a SELECT and return rows as column-name keyed dicts."""
        result = self.execute(sql, params)
        columns = [col[0] for col in result.description]
        return [dict(zip(columns, row)) for row in result.fetchall()]

    def fetch_dict(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[dict]:
        rows = self.fetch_dicts(sql, params)
        return rows[0] if rows else None

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        row = self.execute(sql, params).fetchone()
        return row[0] if row else None

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
