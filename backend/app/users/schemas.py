"""Pydantic schemas for user accounts and profiles."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.database import isoformat


class User(BaseModel):
    """Full user record as stored (includes the password hash).

    Never returned to clients directly; use :meth:`to_public` or
    :meth:`summary` to shape API output.
    """
    id: str
    username: str
    email: str
    password_hash: str = Field(repr=False)
    name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    profession: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    avatar: str = ""
    socket_id: Optional[str] = None
    verified: bool = False
    last_active: datetime
    created_at: datetime
    updated_at: datetime

    def to_public(self, include_email: bool = True) -> dict:
        """Profile shape used by the auth and match endpoints."""
        data = {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "phone": self.phone,
            "avatar": self.avatar,
            "bio": self.bio,
            "profession": self.profession,
            "interests": list(self.interests),
            "verified": self.verified,
            "lastActive": isoformat(self.last_active),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_email:
            data["email"] = self.email
        return data

    def summary(self) -> dict:
        """Compact shape embedded in connections and messages."""
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "avatar": self.avatar,
            "verified": self.verified,
        }


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""
    username: str = ""
    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""
    email: str = ""
    password: str = ""


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/auth/profile (all fields optional).

    Empty values are ignored so a client can send a partially filled form.
    """
    name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    profession: Optional[str] = None
    interests: Optional[List[str]] = None
    avatar: Optional[str] = None

    def changes(self) -> dict:
        return {
            key: value
            for key, value in self.model_dump().items()
            if value not in (None, "", [])
        }
