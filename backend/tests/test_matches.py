"""Tests for AI match suggestions and intro messages."""
import asyncio
import json

import pytest

from app.ai_provider import JSONParseError, ProviderNotAvailableError
from app.ai_provider.prompts import DEFAULT_INTRO_MESSAGE
from app.config import AISettings
from app.matches.service import MatchService
from app.users.service import UserService

from conftest import auth_headers


@pytest.fixture
def people(make_user):
    me = make_user("alice", profession="Engineer", interests=["python", "ai"])
    bob = make_user("bob", profession="Designer")
    carol = make_user("carol", profession="Data Scientist", interests=["ai"])
    dave = make_user("dave", profession="Sales")
    return me, bob, carol, dave


def _reply(*entries):
    return json.dumps(list(entries))


class TestMatchService:
    @pytest.mark.asyncio
    async def test_filters_sorts_and_caps(self, ai, people):
        (me, _), (bob, _), (carol, _), (dave, _) = people
        ai.queue(_reply(
            {"userId": bob.id, "matchScore": 70, "reason": "design", "connectionType": "professional"},
            {"userId": carol.id, "matchScore": 95, "reason": "ai overlap", "connectionType": "both"},
            {"userId": dave.id, "matchScore": 40, "reason": "weak", "connectionType": "social"},
            {"userId": "invented", "matchScore": 99, "reason": "hallucinated"},
            {"matchScore": 88},
        ))
        service = MatchService(AISettings(min_match_score=60, max_matches=5))

        matches = await service.generate_matches(me, [bob, carol, dave])

        assert [m["user"]["id"] for m in matches] == [carol.id, bob.id]
        assert matches[0]["matchScore"] == 95
        assert matches[0]["connectionType"] == "both"
        assert ai.calls[0]["max_tokens"] == 1500

    @pytest.mark.asyncio
    async def test_max_matches(self, ai, people):
        (me, _), (bob, _), (carol, _), (dave, _) = people
        ai.queue(_reply(
            {"userId": bob.id, "matchScore": 70},
            {"userId": carol.id, "matchScore": 80},
            {"userId": dave.id, "matchScore": 90},
        ))
        matches = await MatchService(AISettings(max_matches=2)).generate_matches(me, [bob, carol, dave])
        assert [m["user"]["id"] for m in matches] == [dave.id, carol.id]

    @pytest.mark.asyncio
    async def test_wrapped_list_and_code_fence(self, ai, people):
        (me, _), (bob, _), _, _ = people
        ai.queue("```json\n" + json.dumps({"matches": [{"userId": bob.id, "matchScore": 75}]}) + "\n```")
        matches = await MatchService().generate_matches(me, [bob])
        assert matches[0]["user"]["username"] == "bob"

    @pytest.mark.asyncio
    async def test_no_candidates_skips_model(self, ai, people):
        (me, _), _, _, _ = people
        assert await MatchService().generate_matches(me, []) == []
        assert ai.calls == []

    @pytest.mark.asyncio
    async def test_non_list_reply(self, ai, people):
        (me, _), (bob, _), _, _ = people
        ai.queue('"sorry"')
        with pytest.raises(JSONParseError):
            await MatchService().generate_matches(me, [bob])

    @pytest.mark.asyncio
    async def test_no_provider(self, people):
        (me, _), (bob, _), _, _ = people
        with pytest.raises(ProviderNotAvailableError):
            await MatchService().generate_matches(me, [bob])

    @pytest.mark.asyncio
    async def test_intro_falls_back(self, ai, people):
        (me, _), (bob, _), _, _ = people
        ai.queue(RuntimeError("rate limited"))
        assert await MatchService().intro_message(me, bob, "professional") == DEFAULT_INTRO_MESSAGE

    @pytest.mark.asyncio
    async def test_intro_keeps_event_loop_running(self, ai, people):
        (me, _), (bob, _), _, _ = people
        ai.delay = 0.5
        ai.queue("Hi Bob!")
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.05)

        task = asyncio.create_task(ticker())
        message = await MatchService().intro_message(me, bob, "professional")
        task.cancel()

        assert message == "Hi Bob!"
        assert ticks >= 5


class TestMatchEndpoints:
    def test_get_matches(self, api_client, ai, people):
        (me, token), (bob, _), (carol, _), (dave, _) = people
        ai.queue(_reply({"userId": carol.id, "matchScore": 91, "reason": "Both into AI"}))

        response = api_client.get("/api/match-users", headers=auth_headers(token))

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["totalUsers"] == 3
        assert data["matchesFound"] == 1
        assert data["matches"][0]["reason"] == "Both into AI"

    def test_no_other_users(self, api_client, ai, make_user):
        _, token = make_user("loner")
        body = api_client.get("/api/match-users", headers=auth_headers(token)).json()
        assert body["message"] == "No other users found for matching"
        assert body["data"]["matches"] == []
        assert ai.calls == []

    def test_unverified_users_are_not_candidates(self, api_client, ai, make_user):
        _, token = make_user("alice")
        make_user("pending_pat", verified=False)
        body = api_client.get("/api/match-users", headers=auth_headers(token)).json()
        assert body["data"]["totalUsers"] == 0

    def test_ai_unavailable_is_503(self, api_client, people):
        (_, token), _, _, _ = people
        response = api_client.get("/api/match-users", headers=auth_headers(token))
        assert response.status_code == 503
        assert response.json()["success"] is False

    def test_intro_message(self, api_client, ai, people):
        (_, token), (bob, _), _, _ = people
        ai.queue("Hi Bob, loved your design portfolio!")

        response = api_client.post(
            f"/api/match-users/{bob.id}/message",
            json={"connectionType": "social"},
            headers=auth_headers(token),
        )

        data = response.json()["data"]
        assert data["message"] == "Hi Bob, loved your design portfolio!"
        assert data["targetUser"] == {"id": bob.id, "username": "bob", "name": "Bob"}
        assert "social" in ai.calls[0]["prompt"]

    def test_intro_for_unknown_user(self, api_client, ai, people):
        (_, token), _, _, _ = people
        response = api_client.post("/api/match-users/ghost/message", headers=auth_headers(token))
        assert response.status_code == 404

    def test_public_profile_hides_email(self, api_client, people, db):
        (_, token), (bob, _), _, _ = people
        user = api_client.get(
            f"/api/match-users/profile/{bob.id}", headers=auth_headers(token)
        ).json()["data"]["user"]
        assert user["username"] == "bob"
        assert "email" not in user
        assert UserService(db).get(bob.id).email == "bob@example.com"
