"""Tests for the networking assistant."""
import json
import random
import re

import pytest

from app.chatbot.schemas import ASSISTANT_SENDER_ID
from app.chatbot.service import AssistantService, extract_search_terms, profile_report
from app.chatbot.store import ConversationStore, new_conversation_id

from conftest import auth_headers


def _intent(name: str) -> str:
    return json.dumps({"type": name, "confidence": 0.9})


class TestHelpers:
    def test_conversation_id_shape(self):
        assert re.fullmatch(r"conv_\d{13}_[0-9a-f]{9}", new_conversation_id())

    def test_search_terms(self):
        assert extract_search_terms("Any Python or React devs? python please") == ["python", "react"]
        assert extract_search_terms("someone kind") == []

    def test_profile_report_scores(self, make_user):
        bare, _ = make_user("bare")
        report = profile_report(bare)
        # name + username only
        assert report.metadata["profileScore"] == 35
        assert report.messageType == "profile_analysis"
        assert len(report.metadata["profileSuggestions"]) == 4

        full, _ = make_user(
            "full",
            profession="Engineer",
            bio="Backend engineer working on realtime systems and developer tooling.",
            interests=["python", "go", "rust"],
            avatar="https://example.com/a.png",
        )
        report = profile_report(full)
        assert report.metadata["profileScore"] == 100
        assert report.metadata["profileSuggestions"][0].startswith("Your profile looks great")


class TestAssistantService:
    @pytest.mark.asyncio
    async def test_unknown_intent_falls_back_to_general(self, ai, make_user):
        user, _ = make_user("alice")
        ai.queue(_intent("world_domination"), "Happy to help!")

        reply = await AssistantService().generate_reply(user, "hmm")

        assert reply.message == "Happy to help!"
        assert ai.calls[0]["json_mode"] is True
        assert ai.calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_greeting_uses_fixed_replies(self, ai, make_user):
        user, _ = make_user("alice")
        ai.queue(_intent("greeting"))
        reply = await AssistantService(rng=random.Random(0)).generate_reply(user, "hello")
        assert "network" in reply.message
        assert len(ai.calls) == 1

    @pytest.mark.asyncio
    async def test_search(self, ai, make_user):
        user, _ = make_user("alice")
        make_user("pyra", profession="Python Developer")
        make_user("sam", profession="Sales")
        ai.queue(_intent("search_help"))

        reply = await AssistantService().generate_reply(user, "find me a python person")

        assert reply.messageType == "suggestion"
        names = [s["username"] for s in reply.metadata["suggestedUsers"]]
        assert names == ["pyra"]
        assert reply.metadata["suggestedUsers"][0]["matchReason"] == "Matches your search for: python"

    @pytest.mark.asyncio
    async def test_connection_request_uses_top_three(self, ai, make_user):
        user, _ = make_user("alice")
        others = [make_user(f"user{i}")[0] for i in range(4)]
        ai.queue(
            _intent("connection_request"),
            json.dumps([{"userId": u.id, "matchScore": 60 + i * 10} for i, u in enumerate(others)]),
        )

        reply = await AssistantService().generate_reply(user, "who should I meet?")

        suggested = reply.metadata["suggestedUsers"]
        assert reply.message.startswith("I found 4 great connections")
        assert [s["userId"] for s in suggested] == [others[3].id, others[2].id, others[1].id]

    @pytest.mark.asyncio
    async def test_ai_down_everywhere_still_answers(self, make_user):
        user, _ = make_user("alice")
        reply = await AssistantService().generate_reply(user, "hello?")
        assert reply.message == "I'm here to help with your networking needs! What would you like to know?"

    @pytest.mark.asyncio
    async def test_process_message_records_both_turns(self, ai, db, make_user):
        user, _ = make_user("alice")
        store = ConversationStore(db)
        conversation = store.create(user.id)
        ai.queue(_intent("profile_help"))

        await AssistantService(store=store).process_message(user, "fix my profile", conversation.conversation_id)

        history = store.history(conversation.conversation_id)
        assert [(m.sender_type, m.sender_id) for m in history] == [
            ("user", user.id),
            ("ai", ASSISTANT_SENDER_ID),
        ]
        assert history[1].metadata["profileScore"] == 35
        updated = store.get(conversation.conversation_id)
        assert updated.message_count == 2
        assert updated.last_message.startswith("Your profile is")


class TestChatbotEndpoints:
    def test_message_creates_conversation(self, api_client, ai, make_user):
        _, token = make_user("alice")
        ai.queue(_intent("general_networking"), "Go to meetups.")

        body = api_client.post(
            "/api/chatbot/message", json={"message": "How do I network?"}, headers=auth_headers(token)
        ).json()

        conversation_id = body["data"]["conversationId"]
        assert body["data"]["response"] == {"message": "Go to meetups.", "messageType": "text"}

        history = api_client.get(
            f"/api/chatbot/conversation/{conversation_id}", headers=auth_headers(token)
        ).json()["data"]["messages"]
        assert [m["message"] for m in history] == ["How do I network?", "Go to meetups."]

    def test_empty_message(self, api_client, make_user):
        _, token = make_user("alice")
        response = api_client.post(
            "/api/chatbot/message", json={"message": "   "}, headers=auth_headers(token)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Message is required"

    def test_unknown_conversation(self, api_client, make_user):
        _, token = make_user("alice")
        response = api_client.post(
            "/api/chatbot/message",
            json={"message": "hi", "conversationId": "conv_0_missing"},
            headers=auth_headers(token),
        )
        assert response.status_code == 404

    def test_other_users_conversation_is_forbidden(self, api_client, make_user, db):
        alice, _ = make_user("alice")
        _, bob_token = make_user("bob")
        conversation = ConversationStore(db).create(alice.id)

        response = api_client.get(
            f"/api/chatbot/conversation/{conversation.conversation_id}",
            headers=auth_headers(bob_token),
        )
        assert response.status_code == 403

    def test_create_and_list_conversations(self, api_client, make_user):
        _, token = make_user("alice")
        created = api_client.post(
            "/api/chatbot/conversation", json={"title": "Job hunt"}, headers=auth_headers(token)
        )
        untitled = api_client.post("/api/chatbot/conversation", headers=auth_headers(token))

        assert created.status_code == 201
        assert untitled.json()["data"]["title"] == "New Conversation"

        conversations = api_client.get(
            "/api/chatbot/conversations", headers=auth_headers(token)
        ).json()["data"]["conversations"]
        assert {c["title"] for c in conversations} == {"Job hunt", "New Conversation"}

    def test_suggestions_do_not_persist(self, api_client, make_user, db):
        user, token = make_user("alice")
        data = api_client.get("/api/chatbot/suggestions", headers=auth_headers(token)).json()["data"]

        assert data["profileSuggestions"]["messageType"] == "profile_analysis"
        assert "message" in data["connectionSuggestions"]
        assert ConversationStore(db).list_active(user.id) == []

    def test_mark_message_read(self, api_client, ai, make_user, db):
        user, token = make_user("alice")
        _, bob_token = make_user("bob")
        store = ConversationStore(db)
        conversation = store.create(user.id)
        message = store.add_user_message(conversation.conversation_id, user.id, "hi")

        assert api_client.put(
            f"/api/chatbot/message/{message.id}/read", headers=auth_headers(bob_token)
        ).status_code == 404

        response = api_client.put(
            f"/api/chatbot/message/{message.id}/read", headers=auth_headers(token)
        )
        assert response.status_code == 200
        assert store.history(conversation.conversation_id)[0].is_read is True
