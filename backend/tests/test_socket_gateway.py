"""Tests for the Socket.IO gateway: handshake auth and inbound events."""
from datetime import timedelta

import pytest
import pytest_asyncio
from socketio.exceptions import ConnectionRefusedError

from app.auth.security import create_access_token
from app.connections.service import ConnectionService
from app.messages.service import MessageService
from app.realtime import protocol
from app.realtime.gateway import SocketGateway, _extract_token
from app.users.service import UserService


@pytest.fixture
def gateway(hub):
    return SocketGateway(hub_provider=lambda: hub)


@pytest.fixture
def alice(make_user):
    return make_user("alice", name="Alice Smith")


@pytest.fixture
def bob(make_user):
    return make_user("bob", name="Bob Jones")


def _refusal(excinfo) -> str:
    return excinfo.value.error_args["message"]


class TestExtractToken:
    def test_auth_payload_wins(self):
        environ = {"HTTP_AUTHORIZATION": "Bearer header-token", "QUERY_STRING": "token=query-token"}
        assert _extract_token(environ, {"token": "auth-token"}) == "auth-token"

    def test_authorization_header(self):
        assert _extract_token({"HTTP_AUTHORIZATION": "Bearer abc"}) == "abc"

    def test_query_string_from_asgi_scope(self):
        environ = {"asgi.scope": {"query_string": b"EIO=4&token=xyz"}}
        assert _extract_token(environ) == "xyz"

    def test_query_string_from_environ(self):
        assert _extract_token({"QUERY_STRING": "token=qs"}) == "qs"

    def test_missing(self):
        assert _extract_token({}, None) is None
        assert _extract_token({"HTTP_AUTHORIZATION": "Basic abc"}, {"token": ""}) is None


class TestHandshake:
    @pytest.mark.asyncio
    async def test_connect_registers_principal(self, gateway, hub, alice, db):
        user, token = alice
        await gateway.on_connect("sid-a", {}, {"token": token})

        assert hub.registry.handle_for(user.id) == "sid-a"
        assert gateway.principal_for("sid-a").name == "Alice Smith"
        assert UserService(db).get(user.id).socket_id == "sid-a"

    @pytest.mark.asyncio
    async def test_no_token_is_refused(self, gateway, hub):
        with pytest.raises(ConnectionRefusedError) as excinfo:
            await gateway.on_connect("sid-x", {}, None)
        assert _refusal(excinfo) == "Authentication error: No token provided"
        assert hub.registry.connected_principals() == []

    @pytest.mark.asyncio
    async def test_expired_token_is_refused(self, gateway, alice):
        user, _ = alice
        token = create_access_token(user.id, user.email, expires_delta=timedelta(seconds=-30))
        with pytest.raises(ConnectionRefusedError) as excinfo:
            await gateway.on_connect("sid-x", {}, {"token": token})
        assert _refusal(excinfo) == "Authentication error: Token expired"

    @pytest.mark.asyncio
    async def test_garbage_token_is_refused(self, gateway):
        with pytest.raises(ConnectionRefusedError) as excinfo:
            await gateway.on_connect("sid-x", {}, {"token": "not-a-jwt"})
        assert _refusal(excinfo) == "Authentication error: Invalid token"

    @pytest.mark.asyncio
    async def test_unknown_user_is_refused(self, gateway):
        token = create_access_token("deleted-user", "gone@example.com")
        with pytest.raises(ConnectionRefusedError) as excinfo:
            await gateway.on_connect("sid-x", {}, {"token": token})
        assert _refusal(excinfo) == "Authentication error: User not found"

    @pytest.mark.asyncio
    async def test_disconnect_announces_offline(self, gateway, hub, transport, alice, bob):
        a, a_token = alice
        b, b_token = bob
        await gateway.on_connect("sid-a", {}, {"token": a_token})
        await gateway.on_connect("sid-b", {"HTTP_AUTHORIZATION": f"Bearer {b_token}"})
        transport.clear()

        await gateway.on_disconnect("sid-b", "client disconnect")

        assert not hub.registry.is_online(b.id)
        [(payload, target)] = transport.named(protocol.USER_OFFLINE)
        assert (payload["userId"], target) == (b.id, "sid-a")
        assert gateway.principal_for("sid-b") is None

    @pytest.mark.asyncio
    async def test_disconnect_of_unknown_sid_is_ignored(self, gateway, transport):
        await gateway.on_disconnect("never-connected")
        assert transport.sent == []


class TestEvents:
    @pytest_asyncio.fixture
    async def online(self, gateway, transport, alice, bob):
        await gateway.on_connect("sid-a", {}, {"token": alice[1]})
        await gateway.on_connect("sid-b", {}, {"token": bob[1]})
        transport.clear()
        return alice[0], bob[0]

    @pytest.fixture
    def room(self, online, db):
        a, b = online
        connections = ConnectionService(db)
        conn = connections.create(a.id, b.id)
        return connections.respond(conn.id, b.id, "accepted").id

    @pytest_asyncio.fixture
    async def outsider(self, gateway, transport, make_user, online):
        carol, token = make_user("carol", name="Carol White")
        await gateway.on_connect("sid-c", {}, {"token": token})
        transport.clear()
        return carol

    @pytest.mark.asyncio
    async def test_send_message_reaches_only_room_members(self, gateway, transport, online, room):
        a, _ = online
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": room})
        await gateway.dispatch(
            protocol.SEND_MESSAGE, "sid-a", {"connectionId": room, "message": {"text": "hi"}}
        )

        assert transport.named(protocol.NEW_MESSAGE) == [
            ({"connectionId": room, "senderId": a.id, "message": {"text": "hi"}}, "sid-a")
        ]
        assert transport.to("sid-b") == []

    @pytest.mark.asyncio
    async def test_typing_goes_to_others_in_room(self, gateway, transport, online, room):
        a, _ = online
        for sid in ("sid-a", "sid-b"):
            await gateway.dispatch(protocol.JOIN_CONNECTION, sid, {"connectionId": room})

        await gateway.dispatch(protocol.TYPING, "sid-a", {"connectionId": room})
        await gateway.dispatch(protocol.STOP_TYPING, "sid-a", {"connectionId": room})

        assert transport.to("sid-b") == [
            (protocol.USER_TYPING, {"userId": a.id, "userName": "Alice Smith", "connectionId": room}),
            (protocol.USER_STOPPED_TYPING, {"userId": a.id, "connectionId": room}),
        ]
        assert transport.to("sid-a") == []

    @pytest.mark.asyncio
    async def test_leave_stops_delivery(self, gateway, hub, transport, online, room):
        _, b = online
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-b", {"connectionId": room})
        await gateway.dispatch(protocol.LEAVE_CONNECTION, "sid-b", {"connectionId": room})
        await gateway.dispatch(
            protocol.SEND_MESSAGE, "sid-a", {"connectionId": room, "message": {"text": "?"}}
        )

        assert transport.to("sid-b") == []
        assert hub.relay.active_room(b.id) is None

    @pytest.mark.asyncio
    async def test_message_read_relayed_with_reader(self, gateway, transport, online, room):
        _, b = online
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": room})
        await gateway.dispatch(
            protocol.MESSAGE_READ, "sid-b", {"connectionId": room, "messageIds": ["m1"]}
        )

        assert transport.to("sid-a") == [
            (protocol.MESSAGE_READ, {"connectionId": room, "messageIds": ["m1"], "readBy": b.id})
        ]

    @pytest.mark.asyncio
    async def test_outsider_cannot_join_room(self, gateway, hub, transport, online, room, outsider):
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-c", {"connectionId": room})
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": room})
        await gateway.dispatch(
            protocol.SEND_MESSAGE, "sid-a", {"connectionId": room, "message": {"text": "private"}}
        )

        [(event, payload)] = transport.to("sid-c")
        assert event == protocol.ERROR
        assert payload["event"] == protocol.JOIN_CONNECTION
        assert payload["message"] == "Not authorized to view this connection"
        assert hub.relay.members(room) == {"sid-a"}
        assert hub.relay.active_room(outsider.id) is None

    @pytest.mark.asyncio
    async def test_outsider_cannot_push_into_room(self, gateway, transport, online, room, outsider):
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": room})

        for event, data in (
            (protocol.SEND_MESSAGE, {"connectionId": room, "message": {"text": "spoof"}}),
            (protocol.TYPING, {"connectionId": room}),
            (protocol.STOP_TYPING, {"connectionId": room}),
            (protocol.MESSAGE_READ, {"connectionId": room, "messageIds": ["m1"]}),
        ):
            await gateway.dispatch(event, "sid-c", data)

        assert transport.to("sid-a") == []
        errors = transport.to("sid-c")
        assert [e for e, _ in errors] == [protocol.ERROR] * 4

    @pytest.mark.asyncio
    async def test_unknown_room_is_refused(self, gateway, hub, transport, online):
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": "conn_missing"})

        [(event, payload)] = transport.to("sid-a")
        assert event == protocol.ERROR
        assert payload["message"] == "Connection not found"
        assert hub.relay.members("conn_missing") == set()

    @pytest.mark.asyncio
    async def test_user_online_rebroadcasts_presence(self, gateway, transport, online):
        a, _ = online
        await gateway.dispatch(protocol.USER_ONLINE, "sid-a", None)
        assert transport.to("sid-b") == [(protocol.USER_ONLINE, {"userId": a.id})]

    @pytest.mark.asyncio
    async def test_unread_counts_go_to_requester_only(self, gateway, transport, online, db):
        a, b = online
        connections = ConnectionService(db)
        conn = connections.create(a.id, b.id)
        conn = connections.respond(conn.id, b.id, "accepted")
        messages = MessageService(db)
        messages.send(conn, a.id, "first")
        messages.send(conn, a.id, "second")

        await gateway.dispatch(protocol.GET_UNREAD_COUNTS, "sid-b", {})

        assert transport.sent == [
            (
                protocol.UNREAD_COUNTS,
                {"counts": [{"connectionId": conn.id, "count": 2}], "total": 2},
                "sid-b",
            )
        ]

    @pytest.mark.asyncio
    async def test_failing_handler_answers_with_error(self, gateway, hub, transport, online, monkeypatch):
        a, _ = online

        def store_down(user_id):
            raise RuntimeError("store down")

        monkeypatch.setattr(hub.unread, "unread_summary", store_down)

        await gateway.dispatch(protocol.GET_UNREAD_COUNTS, "sid-a", {})

        [(event, payload)] = transport.to("sid-a")
        assert event == protocol.ERROR
        assert payload["event"] == protocol.GET_UNREAD_COUNTS
        assert payload["message"] == "Failed to handle get-unread-counts"
        assert transport.to("sid-b") == []
        assert hub.registry.is_online(a.id)

    @pytest.mark.asyncio
    async def test_profile_update_persists_and_announces(self, gateway, transport, online, db):
        a, _ = online
        await gateway.dispatch(
            protocol.PROFILE_UPDATE, "sid-a", {"bio": "Loves distributed systems", "interests": ["go"]}
        )

        stored = UserService(db).get(a.id)
        assert stored.bio == "Loves distributed systems"
        assert stored.interests == ["go"]
        [(payload, target)] = transport.named(protocol.PROFILE_UPDATED)
        assert target == "sid-b"
        assert payload["userName"] == "Alice Smith"
        assert payload["updates"] == {"bio": "Loves distributed systems", "interests": ["go"]}

    @pytest.mark.asyncio
    async def test_empty_profile_update_is_noop(self, gateway, transport, online):
        await gateway.dispatch(protocol.PROFILE_UPDATE, "sid-a", {})
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_location_update_goes_to_everyone_else(self, gateway, transport, online):
        a, _ = online
        await gateway.dispatch(
            protocol.LOCATION_UPDATE, "sid-a", {"latitude": 51.5, "longitude": -0.12, "accuracy": 25}
        )

        [(payload, target)] = transport.named(protocol.USER_LOCATION)
        assert target == "sid-b"
        assert payload["userId"] == a.id
        assert payload["userName"] == "Alice Smith"
        assert payload["location"] == {"latitude": 51.5, "longitude": -0.12, "accuracy": 25.0}
        assert "timestamp" in payload

    @pytest.mark.asyncio
    async def test_out_of_range_location_is_rejected(self, gateway, transport, online):
        await gateway.dispatch(protocol.LOCATION_UPDATE, "sid-a", {"latitude": 91, "longitude": 0})

        [(event, payload)] = transport.to("sid-a")
        assert event == protocol.ERROR
        assert payload["details"][0]["field"] == "latitude"
        assert transport.to("sid-b") == []

    @pytest.mark.asyncio
    async def test_invalid_payload_answers_with_error(self, gateway, hub, transport, online):
        a, _ = online
        await gateway.dispatch(protocol.JOIN_CONNECTION, "sid-a", {"connectionId": ""})

        [(event, payload)] = transport.to("sid-a")
        assert event == protocol.ERROR
        assert payload["event"] == protocol.JOIN_CONNECTION
        assert payload["message"] == "Invalid payload"
        assert payload["details"][0]["field"] == "connectionId"
        assert transport.to("sid-b") == []
        assert hub.registry.is_online(a.id)

    @pytest.mark.asyncio
    async def test_non_object_payload_answers_with_error(self, gateway, transport, online):
        await gateway.dispatch(protocol.TYPING, "sid-a", "conn_1")
        [(event, payload)] = transport.to("sid-a")
        assert event == protocol.ERROR
        assert payload["message"] == "Payload must be an object"

    @pytest.mark.asyncio
    async def test_events_from_unknown_sid_are_dropped(self, gateway, transport):
        await gateway.dispatch(protocol.TYPING, "stranger", {"connectionId": "conn_1"})
        assert transport.sent == []


class TestProtocol:
    def test_unknown_event(self):
        with pytest.raises(protocol.ProtocolError) as excinfo:
            protocol.parse_event("self-destruct", {})
        assert excinfo.value.message == "Unknown event 'self-destruct'"

    def test_missing_payload_is_empty_object(self):
        assert isinstance(protocol.parse_event(protocol.GET_UNREAD_COUNTS, None), protocol.NoPayload)

    def test_profile_update_limits(self):
        with pytest.raises(protocol.ProtocolError) as excinfo:
            protocol.parse_event(protocol.PROFILE_UPDATE, {"bio": "x" * 501})
        assert excinfo.value.details[0]["field"] == "bio"

    def test_location_accuracy_is_optional(self):
        payload = protocol.parse_event(protocol.LOCATION_UPDATE, {"latitude": 0, "longitude": 180})
        assert payload.location() == {"latitude": 0.0, "longitude": 180.0, "accuracy": None}
