"""UserService: DuckDB-backed account and profile storage."""
import json
import logging
import uuid
from typing import Iterable, List, Optional

from app.database import Database, utcnow

from .schemas import User

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = {"name", "phone", "bio", "profession", "interests", "avatar"}


class UserService:
    """Reads and writes user rows.

    Also serves as the realtime layer's profile store: ``set_socket_id`` and
    ``touch_last_active`` are the bookkeeping writes the socket gateway makes
    on connect/disconnect.
    """

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db or Database.get_instance()

    # -----------------------------------------------------------------------
    # Create / read
    # -----------------------------------------------------------------------

    def create(
        self,
        username: str,
        name: str,
        email: str,
        password_hash: str,
        verified: bool = True,
        **profile,
    ) -> User:
        user_id = uuid.uuid4().hex
        now = utcnow()
        interests = profile.get("interests") or []
        self._db.execute(
            """
            INSERT INTO users
              (id, username, email, password_hash, name, phone, bio, profession,
               interests, avatar, socket_id, verified, last_active, created_at,
               updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?, ?, ?)
            """,
            [
                user_id,
                username,
                email.strip().lower(),
                password_hash,
                name.strip(),
                profile.get("phone"),
                profile.get("bio"),
                profile.get("profession"),
                json.dumps(list(interests)),
                profile.get("avatar") or "",
                verified,
                now,
                now,
                now,
            ],
        )
        logger.info("[users] Created user %s (@%s)", user_id, username)
        return self.get(user_id)

    def get(self, user_id: str) -> Optional[User]:
        row = self._db.fetch_dict("SELECT * FROM users WHERE id = ?", [user_id])
        return self._row_to_user(row) if row else None

    def get_many(self, user_ids: Iterable[str]) -> dict:
        """Fetch several users at once, keyed by id (missing ids are absent)."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self._db.fetch_dicts(
            f"SELECT * FROM users WHERE id IN ({placeholders})", ids
        )
        return {row["id"]: self._row_to_user(row) for row in rows}

    def get_by_email(self, email: str) -> Optional[User]:
        row = self._db.fetch_dict(
            "SELECT * FROM users WHERE email = ?", [email.strip().lower()]
        )
        return self._row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        row = self._db.fetch_dict("SELECT * FROM users WHERE username = ?", [username])
        return self._row_to_user(row) if row else None

    def list_candidates(self, exclude_id: str, limit: Optional[int] = None) -> List[User]:
        """Verified users other than ``exclude_id``, oldest accounts first."""
        sql = "SELECT * FROM users WHERE id != ? AND verified ORDER BY created_at ASC"
        params: list = [exclude_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._row_to_user(r) for r in self._db.fetch_dicts(sql, params)]

    def search(self, terms: List[str], exclude_id: str, limit: int = 10) -> List[User]:
        """Case-insensitive match of any term against profession, bio or interests."""
        if not terms:
            return []
        clauses = []
        params: list = [exclude_id]
        for term in terms:
            clauses.append(
                "(profession ILIKE ? OR bio ILIKE ? OR lower(interests) LIKE ?)"
            )
            params.extend([f"%{term}%", f"%{term}%", f'%"{term.lower()}"%'])
        params.append(limit)
        rows = self._db.fetch_dicts(
            f"""
            SELECT * FROM users
            WHERE id != ? AND verified AND ({' OR '.join(clauses)})
            ORDER BY created_at ASC
            LIMIT ?
            """,
            params,
        )
        return [self._row_to_user(r) for r in rows]

    # -----------------------------------------------------------------------
    # Update
    # -----------------------------------------------------------------------

    def update_profile(self, user_id: str, **kwargs) -> Optional[User]:
        fields = {k: v for k, v in kwargs.items() if k in _PROFILE_FIELDS and v is not None}
        if not fields:
            return self.get(user_id)

        if "interests" in fields:
            fields["interests"] = json.dumps([i.strip() for i in fields["interests"]])
        if "name" in fields:
            fields["name"] = fields["name"].strip()

        now = utcnow()
        fields["updated_at"] = now
        fields["last_active"] = now
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        values = list(fields.values()) + [user_id]
        self._db.execute(f"UPDATE users SET {set_clause} WHERE id = ?", values)
        return self.get(user_id)

    def touch_last_active(self, user_id: str) -> None:
        self._db.execute(
            "UPDATE users SET last_active = ? WHERE id = ?", [utcnow(), user_id]
        )

    def set_socket_id(self, user_id: str, socket_id: Optional[str]) -> None:
        self._db.execute(
            "UPDATE users SET socket_id = ? WHERE id = ?", [socket_id, user_id]
        )

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    @staticmethod
    def _row_to_user(row: dict) -> User:
        data = dict(row)
        data["interests"] = json.loads(data.get("interests") or "[]")
        return User(**data)
