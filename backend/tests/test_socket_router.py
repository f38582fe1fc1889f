"""Tests for the REST surface over the realtime hub."""
import asyncio

from app.realtime import protocol

from conftest import auth_headers


class TestWithoutHub:
    def test_service_unavailable(self, api_client, make_user):
        _, token = make_user("alice")
        response = api_client.get("/api/socket/connected-users", headers=auth_headers(token))
        assert response.status_code == 503
        assert response.json()["message"] == "Socket service not available"


class TestSocketEndpoints:
    def test_requires_auth(self, api_client, hub):
        assert api_client.get("/api/socket/connected-users").status_code == 401

    def test_connected_users_and_presence(self, api_client, hub, make_user):
        alice, token = make_user("alice")
        bob, _ = make_user("bob")
        asyncio.run(hub.connect(bob.id, "sid-b"))

        connected = api_client.get(
            "/api/socket/connected-users", headers=auth_headers(token)
        ).json()["data"]
        assert connected == {"connectedUsers": 1, "userIds": [bob.id]}

        online = api_client.get(
            f"/api/socket/user/{bob.id}/online", headers=auth_headers(token)
        ).json()["data"]
        assert online == {"userId": bob.id, "isOnline": True}

        offline = api_client.get(
            f"/api/socket/user/{alice.id}/online", headers=auth_headers(token)
        ).json()["data"]
        assert offline["isOnline"] is False

    def test_notify_online_user(self, api_client, hub, transport, make_user):
        _, token = make_user("alice")
        bob, _ = make_user("bob")
        asyncio.run(hub.connect(bob.id, "sid-b"))
        transport.clear()

        response = api_client.post(
            f"/api/socket/notify/{bob.id}",
            json={"message": "Your match is live", "data": {"k": 1}},
            headers=auth_headers(token),
        )

        assert response.json()["message"] == "Notification sent successfully"
        [(event, payload)] = transport.to("sid-b")
        assert event == protocol.NOTIFICATION
        assert payload["type"] == "info"
        assert payload["data"] == {"k": 1}
        assert payload["timestamp"]

    def test_notify_offline_user(self, api_client, hub, make_user):
        _, token = make_user("alice")
        bob, _ = make_user("bob")
        response = api_client.post(
            f"/api/socket/notify/{bob.id}", json={"message": "hello"}, headers=auth_headers(token)
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User not online"

    def test_broadcast(self, api_client, hub, transport, make_user):
        _, token = make_user("alice")
        for name in ("bob", "carol"):
            user, _ = make_user(name)
            asyncio.run(hub.connect(user.id, f"sid-{name}"))
        transport.clear()

        response = api_client.post(
            "/api/socket/broadcast",
            json={"event": "maintenance", "data": {"at": "22:00"}},
            headers=auth_headers(token),
        )

        assert response.json()["message"] == "Broadcast sent successfully"
        assert {target for _, target in transport.named("maintenance")} == {"sid-bob", "sid-carol"}

    def test_broadcast_requires_event(self, api_client, hub, make_user):
        _, token = make_user("alice")
        response = api_client.post(
            "/api/socket/broadcast", json={"event": ""}, headers=auth_headers(token)
        )
        assert response.status_code == 400
