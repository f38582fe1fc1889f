"""MatchService: AI-ranked connection suggestions.

The model is handed the current user's profile and every candidate, and
replies with a JSON list of ``{userId, matchScore, reason, connectionType}``.
The reply is then filtered here rather than trusted: entries below the
configured score floor or naming an unknown user are dropped, and only the
top ``max_matches`` survive.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.ai_provider import AIProviderError, JSONParseError, call_json, call_text
from app.ai_provider.prompts import (
    DEFAULT_INTRO_MESSAGE,
    INTRO_SYSTEM_PROMPT,
    MATCH_SYSTEM_PROMPT,
    get_intro_prompt,
    get_match_prompt,
)
from app.config import AISettings, get_config
from app.users.schemas import User

from .schemas import MatchSuggestion

logger = logging.getLogger(__name__)


class MatchService:
    """Wraps the two AI calls behind the match endpoints."""

    def __init__(self, settings: Optional[AISettings] = None) -> None:
        self._settings = settings or get_config().ai

    async def generate_matches(self, user: User, candidates: List[User]) -> List[dict]:
        """Rank ``candidates`` for ``user``.

        Returns:
            ``[{user, matchScore, reason, connectionType}]``, best first.
            Empty when there are no candidates (the model is not called).

        Raises:
            ProviderNotAvailableError: No provider configured (503).
            ProviderCallError: The provider call failed (500).
            JSONParseError: The reply was not a JSON list of suggestions (500).
        """
        if not candidates:
            return []

        prompt = get_match_prompt(
            user,
            candidates,
            min_score=self._settings.min_match_score,
            max_matches=self._settings.max_matches,
        )
        reply = await call_json(prompt, max_tokens=1500, system=MATCH_SYSTEM_PROMPT)
        if isinstance(reply, dict):
            # json_object replies sometimes wrap the list
            reply = reply.get("matches", [])
        if not isinstance(reply, list):
            raise JSONParseError("expected a list of matches", "match")

        by_id = {c.id: c for c in candidates}
        results = []
        for entry in reply:
            try:
                suggestion = MatchSuggestion.model_validate(entry)
            except ValidationError:
                logger.debug("[matches] Skipping malformed suggestion: %r", entry)
                continue
            candidate = by_id.get(suggestion.userId)
            if candidate is None or suggestion.matchScore < self._settings.min_match_score:
                continue
            results.append({
                "user": candidate.to_public(),
                "matchScore": suggestion.matchScore,
                "reason": suggestion.reason,
                "connectionType": suggestion.connectionType,
            })

        results.sort(key=lambda r: r["matchScore"], reverse=True)
        results = results[: self._settings.max_matches]
        logger.info(
            "[matches] %d match(es) for %s from %d candidate(s)",
            len(results), user.id, len(candidates),
        )
        return results

    async def intro_message(self, sender: User, target: User, connection_type: str) -> str:
        """AI-written intro message; falls back to a fixed one on any AI failure."""
        try:
            return await call_text(
                get_intro_prompt(sender, target, connection_type),
                max_tokens=200,
                system=INTRO_SYSTEM_PROMPT,
                temperature=0.8,
            )
        except AIProviderError as exc:
            logger.warning("[matches] Intro message fallback: %s", exc.message)
            return DEFAULT_INTRO_MESSAGE
