"""Socket event names and inbound payload schemas.

Every inbound event is validated against its model before dispatch. Unknown
event names and payloads that fail validation raise :class:`ProtocolError`,
which the gateway turns into an ``error`` event for the offending connection.
"""
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# =============================================================================
# Event names
# =============================================================================

# Inbound
USER_ONLINE = "user:online"
JOIN_CONNECTION = "join-connection"
LEAVE_CONNECTION = "leave-connection"
TYPING = "typing"
STOP_TYPING = "stop-typing"
SEND_MESSAGE = "send-message"
MESSAGE_READ = "message-read"
GET_UNREAD_COUNTS = "get-unread-counts"
PROFILE_UPDATE = "profile:update"
LOCATION_UPDATE = "location:update"

# Outbound (USER_ONLINE and MESSAGE_READ are shared with inbound)
USER_OFFLINE = "user:offline"
USER_TYPING = "user-typing"
USER_STOPPED_TYPING = "user-stopped-typing"
NEW_MESSAGE = "new-message"
UNREAD_COUNTS = "unread-counts"
PROFILE_UPDATED = "user:profile:updated"
USER_LOCATION = "user:location"
NOTIFICATION = "notification"
ERROR = "error"


# =============================================================================
# Inbound payloads
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NoPayload(_Payload):
    """Events that carry nothing (any body sent is ignored)."""


class ConnectionRef(_Payload):
    """Payload naming one conversation room."""
    connectionId: str = Field(..., min_length=1)


class SendMessagePayload(ConnectionRef):
    """A message already persisted over REST, relayed to the room."""
    message: Dict[str, Any]


class MessageReadPayload(ConnectionRef):
    messageIds: List[str] = Field(default_factory=list)


class ProfileUpdatePayload(_Payload):
    interests: Optional[List[str]] = None
    profession: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class LocationUpdatePayload(_Payload):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)

    def location(self) -> Dict[str, Any]:
        return self.model_dump()


INBOUND_EVENTS: Dict[str, Type[_Payload]] = {
    USER_ONLINE: NoPayload,
    JOIN_CONNECTION: ConnectionRef,
    LEAVE_CONNECTION: ConnectionRef,
    TYPING: ConnectionRef,
    STOP_TYPING: ConnectionRef,
    SEND_MESSAGE: SendMessagePayload,
    MESSAGE_READ: MessageReadPayload,
    GET_UNREAD_COUNTS: NoPayload,
    PROFILE_UPDATE: ProfileUpdatePayload,
    LOCATION_UPDATE: LocationUpdatePayload,
}


class ProtocolError(Exception):
    """Raised for an unknown event or a payload that fails validation.

    Attributes:
        event: Inbound event name.
        message: Human-readable summary.
        details: Per-field validation errors, if any.
    """
    def __init__(self, event: str, message: str, details: Optional[list] = None):
        self.event = event
        self.message = message
        self.details = details or []
        super().__init__(message)

    def to_payload(self) -> dict:
        return {"event": self.event, "message": self.message, "details": self.details}


def parse_event(event: str, payload: Any) -> _Payload:
    """Validate an inbound payload against the model for ``event``."""
    model = INBOUND_EVENTS.get(event)
    if model is None:
        raise ProtocolError(event, f"Unknown event '{event}'")

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ProtocolError(event, "Payload must be an object")

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ProtocolError(event, "Invalid payload", details) from exc
