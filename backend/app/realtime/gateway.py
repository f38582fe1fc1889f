"""Socket.IO gateway: handshake authentication and inbound event dispatch.

Handshake:
    The bearer token may arrive as ``auth.token``, an ``Authorization:
    Bearer <token>`` header, or a ``token`` query parameter. A connection
    whose token does not resolve to a user is refused with
    ``Authentication error: <reason>``.

Inbound events are validated by :func:`app.realtime.protocol.parse_event`;
anything malformed is answered with an ``error`` event to that connection
only, and the connection stays open. The same goes for a handler that fails.

Room events (join, typing, send, read) are only accepted from a participant
of the connection they name. A handle that already joined the room has been
checked; any other caller is looked up once per event.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs

import socketio
from socketio.exceptions import ConnectionRefusedError

from app.auth.security import TokenExpiredError, decode_access_token
from app.connections.service import ConnectionService
from app.errors import AuthenticationError, ForbiddenError, NotFoundError
from app.users.service import UserService

from . import protocol
from .best_effort import best_effort
from .hub import RealtimeHub, get_hub

logger = logging.getLogger(__name__)

# Events that name a conversation room and need a participant
ROOM_EVENTS = frozenset({
    protocol.JOIN_CONNECTION,
    protocol.TYPING,
    protocol.STOP_TYPING,
    protocol.SEND_MESSAGE,
    protocol.MESSAGE_READ,
})


@dataclass(frozen=True)
class Principal:
    """Identity resolved once per handshake and held for the connection."""
    id: str
    name: str
    username: str = ""
    email: str = ""


def _extract_token(environ: Dict[str, Any], auth: Any = None) -> Optional[str]:
    """Pull the bearer token out of the handshake.

    Checks ``auth.token`` first, then the Authorization header, then the
    ``token`` query parameter.
    """
    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    header = environ.get("HTTP_AUTHORIZATION", "") if isinstance(environ, dict) else ""
    if isinstance(header, str) and header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token

    scope: Any = environ
    if isinstance(environ, dict) and isinstance(environ.get("asgi.scope"), dict):
        scope = environ["asgi.scope"]

    query_string: Any = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(environ, dict):
        query_string = environ.get("QUERY_STRING", "")
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return None


class SocketGateway:
    """Binds socket events to the :class:`RealtimeHub`.

    The gateway keeps its own ``sid -> Principal`` map for the lifetime of
    each connection. Handlers take plain ``(sid, data)`` arguments so they
    can be driven directly in tests without a running Socket.IO server.
    """

    def __init__(
        self,
        hub_provider: Callable[[], Optional[RealtimeHub]] = get_hub,
        users_factory: Callable[[], UserService] = UserService,
        connections_factory: Callable[[], ConnectionService] = ConnectionService,
    ) -> None:
        self._hub_provider = hub_provider
        self._users_factory = users_factory
        self._connections_factory = connections_factory
        self._principals: Dict[str, Principal] = {}
        self._handlers = {
            protocol.USER_ONLINE: self._on_user_online,
            protocol.JOIN_CONNECTION: self._on_join,
            protocol.LEAVE_CONNECTION: self._on_leave,
            protocol.TYPING: self._on_typing,
            protocol.STOP_TYPING: self._on_stop_typing,
            protocol.SEND_MESSAGE: self._on_send_message,
            protocol.MESSAGE_READ: self._on_message_read,
            protocol.GET_UNREAD_COUNTS: self._on_get_unread_counts,
            protocol.PROFILE_UPDATE: self._on_profile_update,
            protocol.LOCATION_UPDATE: self._on_location_update,
        }

    @property
    def hub(self) -> RealtimeHub:
        hub = self._hub_provider()
        if hub is None:
            raise RuntimeError("Realtime hub is not initialised")
        return hub

    def principal_for(self, sid: str) -> Optional[Principal]:
        return self._principals.get(sid)

    def attach(self, sio: socketio.AsyncServer) -> None:
        """Register connect/disconnect and every inbound event on ``sio``."""
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        for event in self._handlers:
            sio.on(event, self._make_handler(event))

    def _make_handler(self, event: str):
        async def handler(sid: str, data: Any = None) -> None:
            await self.dispatch(event, sid, data)
        return handler

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def authenticate(self, token: Optional[str]) -> Principal:
        """Resolve a token to a principal or raise ``ConnectionRefusedError``."""
        if not token:
            raise ConnectionRefusedError("Authentication error: No token provided")
        try:
            claims = decode_access_token(token)
        except TokenExpiredError as exc:
            raise ConnectionRefusedError("Authentication error: Token expired") from exc
        except AuthenticationError as exc:
            raise ConnectionRefusedError("Authentication error: Invalid token") from exc

        user = self._users_factory().get(claims["userId"])
        if user is None:
            raise ConnectionRefusedError("Authentication error: User not found")
        return Principal(id=user.id, name=user.name, username=user.username, email=user.email)

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Any = None) -> None:
        principal = await self.authenticate(_extract_token(environ, auth))
        self._principals[sid] = principal
        await self.hub.connect(principal.id, sid)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        principal = self._principals.pop(sid, None)
        if principal is None:
            return
        await self.hub.disconnect(principal.id, sid)

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------

    async def dispatch(self, event: str, sid: str, data: Any = None) -> None:
        """Validate one inbound event and run its handler."""
        principal = self._principals.get(sid)
        if principal is None:
            logger.warning("[gateway] %s from unauthenticated sid %s", event, sid)
            return

        try:
            payload = protocol.parse_event(event, data)
        except protocol.ProtocolError as exc:
            logger.info("[gateway] Rejected %s from %s: %s", event, principal.id, exc.message)
            await self._emit_error(sid, exc)
            return

        try:
            if event in ROOM_EVENTS and not await self._authorize_room(
                event, sid, principal, payload.connectionId
            ):
                return
            await self._handlers[event](sid, principal, payload)
        except Exception:
            logger.exception("[gateway] %s handler failed for %s", event, principal.id)
            await self._emit_error(sid, protocol.ProtocolError(event, f"Failed to handle {event}"))

    async def _emit_error(self, sid: str, error: protocol.ProtocolError) -> None:
        await self.hub.transport.emit(protocol.ERROR, error.to_payload(), to=sid)

    async def _authorize_room(
        self, event: str, sid: str, principal: Principal, connection_id: str
    ) -> bool:
        """True when ``principal`` may use the room; otherwise answer with ``error``."""
        if sid in self.hub.relay.members(connection_id):
            return True
        try:
            self._connections_factory().get_for_participant(connection_id, principal.id)
        except (NotFoundError, ForbiddenError) as exc:
            logger.warning(
                "[gateway] %s on %s refused for %s: %s",
                event, connection_id, principal.id, exc.message,
            )
            await self._emit_error(sid, protocol.ProtocolError(event, exc.message))
            return False
        return True

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    async def _on_user_online(self, sid, principal, payload) -> None:
        best_effort(
            f"touch last active for {principal.id}",
            self._users_factory().touch_last_active,
            principal.id,
        )
        await self.hub.presence.on_online(principal.id)

    async def _on_join(self, sid, principal, payload) -> None:
        self.hub.relay.join(sid, payload.connectionId, principal.id)

    async def _on_leave(self, sid, principal, payload) -> None:
        self.hub.relay.leave(sid, payload.connectionId, principal.id)

    async def _on_typing(self, sid, principal, payload) -> None:
        await self.hub.relay.relay(
            payload.connectionId,
            protocol.USER_TYPING,
            {
                "userId": principal.id,
                "userName": principal.name,
                "connectionId": payload.connectionId,
            },
            sender=sid,
            exclude_self=True,
        )

    async def _on_stop_typing(self, sid, principal, payload) -> None:
        await self.hub.relay.relay(
            payload.connectionId,
            protocol.USER_STOPPED_TYPING,
            {"userId": principal.id, "connectionId": payload.connectionId},
            sender=sid,
            exclude_self=True,
        )

    async def _on_send_message(self, sid, principal, payload) -> None:
        # Echoes to the sender as well so the user's other views stay in sync
        await self.hub.relay.relay(
            payload.connectionId,
            protocol.NEW_MESSAGE,
            {
                "connectionId": payload.connectionId,
                "senderId": principal.id,
                "message": payload.message,
            },
            sender=sid,
        )

    async def _on_message_read(self, sid, principal, payload) -> None:
        await self.hub.relay.relay(
            payload.connectionId,
            protocol.MESSAGE_READ,
            {
                "connectionId": payload.connectionId,
                "messageIds": payload.messageIds,
                "readBy": principal.id,
            },
            sender=sid,
        )

    async def _on_get_unread_counts(self, sid, principal, payload) -> None:
        summary = self.hub.unread.unread_summary(principal.id)
        await self.hub.transport.emit(protocol.UNREAD_COUNTS, summary, to=sid)

    async def _on_profile_update(self, sid, principal, payload) -> None:
        changes = payload.changes()
        if not changes:
            return
        self._users_factory().update_profile(principal.id, **changes)
        await self.hub.presence.announce_profile_update(principal.id, changes, user_name=principal.name)

    async def _on_location_update(self, sid, principal, payload) -> None:
        await self.hub.presence.announce_location(principal.id, principal.name, payload.location())
