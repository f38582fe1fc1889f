"""RealtimeHub: the one object owning all realtime state.

The hub is built once during application startup and registered with
:func:`set_hub`; routers and the socket gateway read it back with
:func:`get_hub`. Nothing else in the realtime package holds module-level
state.
"""
import logging
from typing import Optional

from .presence import PresenceBroadcaster
from .registry import ProfileStore, SessionRegistry
from .relay import RoomRelay
from .transport import Transport
from .unread import UnreadCounter, UnreadSource

logger = logging.getLogger(__name__)


class RealtimeHub:
    """Composes the session registry, presence, room relay and unread counter.

    Attributes:
        transport: Outbound delivery used by every component.
        registry: principal -> connection handle.
        presence: Global online/offline/profile announcements.
        relay: Room membership and room-scoped fan-out.
        unread: Unread-count queries.
    """

    def __init__(
        self,
        transport: Transport,
        unread_source: UnreadSource,
        profile_store: Optional[ProfileStore] = None,
    ) -> None:
        self.transport = transport
        self.registry = SessionRegistry(transport, profile_store)
        self.presence = PresenceBroadcaster(self.registry, transport)
        self.relay = RoomRelay(transport)
        self.unread = UnreadCounter(unread_source)

    async def connect(self, principal_id: str, handle: str) -> None:
        await self.registry.register(principal_id, handle)

    async def disconnect(self, principal_id: str, handle: str) -> bool:
        """Tear down a closed connection.

        The handle always leaves its rooms. The principal only goes offline
        (and loses its active room) if this handle is still its session.
        """
        removed = await self.registry.unregister(principal_id, handle)
        self.relay.drop(handle, principal_id if removed else None)
        return removed


# Global hub instance (set during app startup)
_hub: Optional[RealtimeHub] = None


def get_hub() -> Optional[RealtimeHub]:
    """Get the global realtime hub instance."""
    return _hub


def set_hub(hub: Optional[RealtimeHub]) -> None:
    """Set the global realtime hub instance."""
    global _hub
    _hub = hub
    if hub is not None:
        logger.info("Realtime hub ready: transport=%s", type(hub.transport).__name__)
