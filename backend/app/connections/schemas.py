"""Pydantic schemas for connection requests."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.database import isoformat

ConnectionStatus = Literal["pending", "accepted", "declined", "blocked"]
StatusFilter = Literal["all", "pending", "accepted", "declined", "blocked"]


class SendConnectionRequest(BaseModel):
    """Request body for POST /api/connections/send."""
    receiverId: str = ""
    message: Optional[str] = Field(default=None, max_length=500)


class RespondRequest(BaseModel):
    """Request body for PUT /api/connections/{id}/respond."""
    status: str = ""


class Connection(BaseModel):
    """Stored connection between two users.

    ``participants`` is always the sorted pair, so a lookup by the two ids
    hits the same row whichever side initiated.
    """
    id: str
    participants: List[str]
    initiator: str
    status: ConnectionStatus = "pending"
    initial_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_message_at: Optional[datetime] = None

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def other_participant(self, user_id: str) -> Optional[str]:
        for participant in self.participants:
            if participant != user_id:
                return participant
        return None

    def to_dict(self, users: Optional[Dict[str, object]] = None) -> dict:
        """API shape; participants/initiator are expanded when ``users`` is given."""
        users = users or {}

        def expand(user_id: str):
            user = users.get(user_id)
            return user.summary() if user is not None else {"id": user_id}

        return {
            "id": self.id,
            "participants": [expand(p) for p in self.participants],
            "initiator": expand(self.initiator),
            "status": self.status,
            "initialMessage": self.initial_message,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "lastMessageAt": isoformat(self.last_message_at),
        }
