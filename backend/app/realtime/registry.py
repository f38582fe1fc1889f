"""Session registry: which principal is online, and on which connection.

Exactly one entry exists per online principal. A later connection for the
same principal overwrites the earlier handle (last connect wins). There is no
heartbeat or timeout; only an explicit disconnect removes an entry.

Thread Safety:
    Plain dicts mutated from the event loop thread only. Running several
    worker processes would need an external pub/sub broker.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

from .best_effort import BestEffortResult, best_effort
from .transport import Transport

logger = logging.getLogger(__name__)


class ProfileStore(Protocol):
    """Durable profile writes the registry performs on connect/disconnect."""

    def set_socket_id(self, user_id: str, socket_id: Optional[str]) -> None:
        ...


class PresenceListener(Protocol):
    async def on_online(self, principal_id: str) -> None:
        ...

    async def on_offline(self, principal_id: str) -> None:
        ...


class SessionRegistry:
    """Maps principal id to its active connection handle.

    Attributes:
        _sessions: principal_id -> handle.
        _listeners: Notified after every online/offline transition.
        last_persist: Outcome of the most recent ``socket_id`` write.
    """

    def __init__(
        self,
        transport: Transport,
        profile_store: Optional[ProfileStore] = None,
    ) -> None:
        self._transport = transport
        self._profile_store = profile_store
        self._sessions: Dict[str, str] = {}
        self._listeners: List[PresenceListener] = []
        self.last_persist: Optional[BestEffortResult] = None

    def add_listener(self, listener: PresenceListener) -> None:
        self._listeners.append(listener)

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    async def register(self, principal_id: str, handle: str) -> None:
        """Store or overwrite the principal's handle and announce it online."""
        previous = self._sessions.get(principal_id)
        self._sessions[principal_id] = handle
        if previous and previous != handle:
            logger.info(
                "[realtime] %s reconnected (%s replaces %s)", principal_id, handle, previous
            )
        else:
            logger.info("[realtime] %s online via %s", principal_id, handle)

        self._persist_handle(principal_id, handle)
        for listener in self._listeners:
            await listener.on_online(principal_id)

    async def unregister(self, principal_id: str, handle: Optional[str] = None) -> bool:
        """Remove the principal's entry and announce it offline.

        Args:
            principal_id: Principal to remove.
            handle: When given, only remove the entry if it still points at
                this handle. A disconnect from a connection that was already
                replaced by a newer one leaves the newer session alone.

        Returns:
            True if an entry was removed. Unknown principals are a no-op with
            no broadcast.
        """
        current = self._sessions.get(principal_id)
        if current is None:
            return False
        if handle is not None and current != handle:
            logger.debug(
                "[realtime] Ignoring stale disconnect of %s for %s", handle, principal_id
            )
            return False

        del self._sessions[principal_id]
        logger.info("[realtime] %s offline", principal_id)

        self._persist_handle(principal_id, None)
        for listener in self._listeners:
            await listener.on_offline(principal_id)
        return True

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def is_online(self, principal_id: str) -> bool:
        return principal_id in self._sessions

    def handle_for(self, principal_id: str) -> Optional[str]:
        return self._sessions.get(principal_id)

    def principal_for(self, handle: str) -> Optional[str]:
        for principal_id, current in self._sessions.items():
            if current == handle:
                return principal_id
        return None

    def connected_principals(self) -> List[str]:
        return list(self._sessions)

    def handles(self, exclude: Optional[str] = None) -> List[str]:
        """Every live handle, optionally without the given principal's."""
        return [h for pid, h in self._sessions.items() if pid != exclude]

    # -----------------------------------------------------------------------
    # Delivery
    # -----------------------------------------------------------------------

    async def send(self, principal_id: str, event: str, payload: Any) -> bool:
        """Emit an event to one principal's connection.

        Returns:
            False when the principal is not online or delivery failed.
        """
        handle = self._sessions.get(principal_id)
        if handle is None:
            return False
        try:
            await self._transport.emit(event, payload, to=handle)
            return True
        except Exception as e:
            logger.debug(f"Failed to send {event} to {principal_id}: {e}")
            return False

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    def _persist_handle(self, principal_id: str, handle: Optional[str]) -> None:
        if self._profile_store is None:
            return
        self.last_persist = best_effort(
            f"persist socket id for {principal_id}",
            self._profile_store.set_socket_id,
            principal_id,
            handle,
        )
