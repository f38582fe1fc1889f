"""Room-scoped relay for conversation events.

A room is a connection (conversation) id. Each connection handle may sit in
any number of rooms; each principal additionally has at most one *active*
room, the conversation it has open right now.

The relay never persists anything. Messages are stored by the REST layer and
only echoed here, so a message can be stored and never delivered live; the
recipient then finds it through the unread counts or on page load.
"""
import logging
from typing import Any, Dict, List, Optional, Set

from .fanout import fan_out
from .transport import Transport

logger = logging.getLogger(__name__)


class RoomRelay:
    """Room membership plus fan-out to room members.

    Attributes:
        _rooms: room_id -> set of handles currently joined.
        _active: principal_id -> room_id the principal last joined.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._rooms: Dict[str, Set[str]] = {}
        self._active: Dict[str, str] = {}

    # -----------------------------------------------------------------------
    # Membership
    # -----------------------------------------------------------------------

    def join(self, handle: str, room_id: str, principal_id: Optional[str] = None) -> None:
        """Add the handle to the room and make it the principal's active room."""
        self._rooms.setdefault(room_id, set()).add(handle)
        if principal_id is not None:
            self._active[principal_id] = room_id
        logger.debug("[relay] %s joined %s", handle, room_id)

    def leave(self, handle: str, room_id: str, principal_id: Optional[str] = None) -> None:
        """Remove the handle from the room.

        The principal's active room is cleared only when it is this room.
        """
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(handle)
            if not members:
                del self._rooms[room_id]
        if principal_id is not None and self._active.get(principal_id) == room_id:
            del self._active[principal_id]
        logger.debug("[relay] %s left %s", handle, room_id)

    def drop(self, handle: str, principal_id: Optional[str] = None) -> None:
        """Remove a closed connection from every room it had joined."""
        for room_id in self.rooms_for(handle):
            self.leave(handle, room_id)
        if principal_id is not None:
            self._active.pop(principal_id, None)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def members(self, room_id: str) -> Set[str]:
        return set(self._rooms.get(room_id, ()))

    def rooms_for(self, handle: str) -> List[str]:
        return [room_id for room_id, members in self._rooms.items() if handle in members]

    def active_room(self, principal_id: str) -> Optional[str]:
        return self._active.get(principal_id)

    # -----------------------------------------------------------------------
    # Delivery
    # -----------------------------------------------------------------------

    async def relay(
        self,
        room_id: str,
        event: str,
        payload: Any,
        sender: Optional[str] = None,
        exclude_self: bool = False,
    ) -> int:
        """Deliver an event to the room's current members.

        Args:
            room_id: Target room.
            event: Outbound event name.
            payload: Event body.
            sender: Handle of the originating connection, if any.
            exclude_self: Skip ``sender`` when True.

        Returns:
            Number of handles the event was delivered to.
        """
        targets = self.members(room_id)
        if exclude_self and sender is not None:
            targets.discard(sender)
        failed = await fan_out(self._transport, targets, event, payload)
        return len(targets) - len(failed)
