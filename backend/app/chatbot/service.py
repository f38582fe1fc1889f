"""AssistantService: the networking chat assistant.

Each user message is classified into one intent by the model, then handled:

    connection_request  - AI match suggestions (top 3)
    profile_help        - deterministic profile-completeness report
    search_help         - keyword search over other users
    general_networking  - short coaching answer from the model
    greeting            - one of a few fixed greetings
    general_query       - short general answer from the model

Every AI failure degrades to a fixed reply; the assistant itself never
surfaces provider errors.
"""
import logging
import random
import re
from typing import List, Optional

from app.ai_provider import AIProviderError, call_json, call_text
from app.ai_provider.prompts import (
    GENERAL_SYSTEM_PROMPT,
    INTENT_SYSTEM_PROMPT,
    INTENTS,
    NETWORKING_SYSTEM_PROMPT,
    get_general_prompt,
    get_intent_prompt,
    get_networking_prompt,
)
from app.matches.service import MatchService
from app.users.schemas import User
from app.users.service import UserService

from .schemas import ASSISTANT_SENDER_ID, AssistantReply
from .store import ConversationStore

logger = logging.getLogger(__name__)

FALLBACK_INTENT = "general_query"
MATCH_CANDIDATE_LIMIT = 20
SEARCH_LIMIT = 10

SKILL_KEYWORDS_RE = re.compile(
    r"\b(react|javascript|python|ai|design|marketing|sales|developer|manager|engineer)\b"
)

# Profile completeness weights (sum to 100)
PROFILE_WEIGHTS = {
    "name": 20,
    "username": 15,
    "profession": 20,
    "bio": 25,
    "interests": 20,
}
MIN_BIO_LENGTH = 50
MIN_INTERESTS = 3

NETWORKING_FALLBACK = "I'm here to help with your networking goals! What would you like to know?"
GENERAL_FALLBACK = "I'm here to help with your networking needs! What would you like to know?"


def greetings_for(user: User) -> List[str]:
    return [
        f"Hi {user.name or user.username}! I'm your AI networking assistant. "
        "How can I help you grow your professional network today?",
        "Hello! I'm here to help you find amazing connections and improve your "
        "networking game. What would you like to work on?",
        "Hey there! Ready to expand your professional network? I can help you find "
        "connections, improve your profile, or answer any networking questions!",
    ]


def profile_report(user: User) -> AssistantReply:
    """Score profile completeness and list what is missing."""
    score = 0
    if user.name:
        score += PROFILE_WEIGHTS["name"]
    if user.username:
        score += PROFILE_WEIGHTS["username"]
    if user.profession:
        score += PROFILE_WEIGHTS["profession"]
    if user.bio and len(user.bio) > MIN_BIO_LENGTH:
        score += PROFILE_WEIGHTS["bio"]
    if len(user.interests) >= MIN_INTERESTS:
        score += PROFILE_WEIGHTS["interests"]

    suggestions = []
    if not user.bio or len(user.bio) < MIN_BIO_LENGTH:
        suggestions.append("Add a compelling bio (50+ characters) to showcase your expertise")
    if len(user.interests) < MIN_INTERESTS:
        suggestions.append("Add at least 3 interests to help others find you")
    if not user.profession:
        suggestions.append("Add your profession to attract relevant connections")
    if not user.avatar:
        suggestions.append("Add a professional profile picture")
    if not suggestions:
        suggestions.append(
            "Your profile looks great! Consider adding more specific skills or recent projects."
        )

    return AssistantReply(
        message=f"Your profile is {score}% complete! Here's how to make it even better:",
        messageType="profile_analysis",
        metadata={
            "profileScore": score,
            "profileSuggestions": suggestions,
            "actionType": "improve_bio",
        },
    )


def extract_search_terms(message: str) -> List[str]:
    """Known skill keywords in the message, lowercase, first occurrence order."""
    return list(dict.fromkeys(SKILL_KEYWORDS_RE.findall(message.lower())))


class AssistantService:
    """Classifies, answers and records assistant conversations."""

    def __init__(
        self,
        store: Optional[ConversationStore] = None,
        users: Optional[UserService] = None,
        matches: Optional[MatchService] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store or ConversationStore()
        self._users = users or UserService()
        self._matches = matches or MatchService()
        self._rng = rng or random.Random()

    async def process_message(self, user: User, text: str, conversation_id: str) -> AssistantReply:
        """Answer one message and store both turns in the conversation."""
        reply = await self.generate_reply(user, text)

        self._store.add_user_message(conversation_id, user.id, text)
        self._store.add_reply(conversation_id, ASSISTANT_SENDER_ID, reply)
        self._store.record_exchange(conversation_id, reply.message, added=2)
        return reply

    async def generate_reply(self, user: User, text: str) -> AssistantReply:
        intent = await self.classify(user, text)
        logger.info("[chatbot] Intent for %s: %s", user.id, intent)

        if intent == "connection_request":
            return await self.handle_connection_request(user)
        if intent == "profile_help":
            return profile_report(user)
        if intent == "search_help":
            return self.handle_search(user, text)
        if intent == "general_networking":
            return await self._ask(
                get_networking_prompt(user, text), NETWORKING_SYSTEM_PROMPT, 150, NETWORKING_FALLBACK
            )
        if intent == "greeting":
            return AssistantReply(message=self._rng.choice(greetings_for(user)))
        return await self._ask(get_general_prompt(user, text), GENERAL_SYSTEM_PROMPT, 100, GENERAL_FALLBACK)

    async def classify(self, user: User, text: str) -> str:
        try:
            result = await call_json(
                get_intent_prompt(user, text),
                max_tokens=100,
                system=INTENT_SYSTEM_PROMPT,
                temperature=0.3,
                json_mode=True,
            )
        except AIProviderError as exc:
            logger.info("[chatbot] Intent fallback: %s", exc.message)
            return FALLBACK_INTENT

        intent = result.get("type") if isinstance(result, dict) else None
        return intent if intent in INTENTS else FALLBACK_INTENT

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    async def handle_connection_request(self, user: User) -> AssistantReply:
        candidates = self._users.list_candidates(user.id, limit=MATCH_CANDIDATE_LIMIT)
        try:
            matches = await self._matches.generate_matches(user, candidates)
        except AIProviderError as exc:
            logger.warning("[chatbot] Match lookup failed: %s", exc.message)
            return AssistantReply(
                message="I'm having trouble finding connections right now. Please try again later!"
            )

        if not matches:
            return AssistantReply(
                message="I couldn't find any great matches for you right now. Try updating "
                        "your interests or bio to help me find better connections!"
            )

        suggested = [
            {
                "userId": m["user"]["id"],
                "name": m["user"]["name"] or m["user"]["username"],
                "username": m["user"]["username"],
                "profession": m["user"]["profession"],
                "bio": m["user"]["bio"],
                "avatar": m["user"]["avatar"],
                "matchScore": m["matchScore"],
                "reason": m["reason"],
                "connectionType": m["connectionType"],
            }
            for m in matches[:3]
        ]
        return AssistantReply(
            message=f"I found {len(matches)} great connections for you! "
                    "Here are my top recommendations:",
            messageType="suggestion",
            metadata={"suggestedUsers": suggested, "actionType": "view_profile"},
        )

    def handle_search(self, user: User, text: str) -> AssistantReply:
        terms = extract_search_terms(text)
        if not terms:
            return AssistantReply(
                message="I'd be happy to help you find people! What skills, interests, "
                        "or professions are you looking for?"
            )

        found = self._users.search(terms, exclude_id=user.id, limit=SEARCH_LIMIT)
        if not found:
            return AssistantReply(
                message="I couldn't find anyone with those specific skills right now. "
                        "Try broader terms or check back later!"
            )

        joined = ", ".join(terms)
        suggested = [
            {
                "userId": u.id,
                "name": u.name or u.username,
                "username": u.username,
                "profession": u.profession,
                "bio": u.bio,
                "avatar": u.avatar,
                "matchReason": f"Matches your search for: {joined}",
            }
            for u in found[:5]
        ]
        return AssistantReply(
            message=f'I found {len(found)} people matching "{joined}":',
            messageType="suggestion",
            metadata={"suggestedUsers": suggested, "actionType": "view_profile"},
        )

    async def _ask(self, prompt: str, system: str, max_tokens: int, fallback: str) -> AssistantReply:
        try:
            return AssistantReply(message=await call_text(prompt, max_tokens=max_tokens, system=system))
        except AIProviderError as exc:
            logger.info("[chatbot] Reply fallback: %s", exc.message)
            return AssistantReply(message=fallback)
