"""Pydantic schemas for AI match suggestions."""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ConnectionType = Literal["professional", "social", "both"]


class MatchSuggestion(BaseModel):
    """One entry of the model's JSON reply."""
    model_config = ConfigDict(extra="ignore")

    userId: str
    matchScore: float = Field(..., ge=0, le=100)
    reason: str = ""
    connectionType: ConnectionType = "both"


class IntroMessageRequest(BaseModel):
    """Request body for POST /api/match-users/{userId}/message."""
    connectionType: ConnectionType = "professional"
