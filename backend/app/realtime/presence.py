"""Presence broadcaster: global online/offline, profile-change and location events."""
import logging
from typing import Any, Dict, Optional

from app.database import isoformat, utcnow

from . import protocol
from .fanout import fan_out
from .registry import SessionRegistry
from .transport import Transport

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Announces presence transitions to every other live session.

    Registered as a listener on the :class:`SessionRegistry`, so online and
    offline announcements follow each register/unregister automatically.
    """

    def __init__(self, registry: SessionRegistry, transport: Transport) -> None:
        self._registry = registry
        self._transport = transport
        registry.add_listener(self)

    async def on_online(self, principal_id: str) -> None:
        await fan_out(
            self._transport,
            self._registry.handles(exclude=principal_id),
            protocol.USER_ONLINE,
            {"userId": principal_id},
        )

    async def on_offline(self, principal_id: str) -> None:
        await fan_out(
            self._transport,
            self._registry.handles(exclude=principal_id),
            protocol.USER_OFFLINE,
            {"userId": principal_id, "lastActive": isoformat(utcnow())},
        )

    async def announce_profile_update(
        self,
        principal_id: str,
        fields: Dict[str, Any],
        user_name: Optional[str] = None,
    ) -> None:
        """Send the changed fields, unfiltered, to everyone but the owner."""
        await fan_out(
            self._transport,
            self._registry.handles(exclude=principal_id),
            protocol.PROFILE_UPDATED,
            {
                "userId": principal_id,
                "userName": user_name,
                "updates": fields,
                "timestamp": isoformat(utcnow()),
            },
        )

    async def announce_location(
        self, principal_id: str, user_name: Optional[str], location: Dict[str, Any]
    ) -> None:
        await fan_out(
            self._transport,
            self._registry.handles(exclude=principal_id),
            protocol.USER_LOCATION,
            {
                "userId": principal_id,
                "userName": user_name,
                "location": location,
                "timestamp": isoformat(utcnow()),
            },
        )

    async def broadcast(self, event: str, payload: Any) -> int:
        """Send an arbitrary event to every session. Returns the delivered count."""
        handles = self._registry.handles()
        failed = await fan_out(self._transport, handles, event, payload)
        logger.info("[realtime] Broadcast %s to %d session(s)", event, len(handles) - len(failed))
        return len(handles) - len(failed)
