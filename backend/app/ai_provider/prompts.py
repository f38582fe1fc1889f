"""Prompt templates for the networking assistant.

Each template is a ``str.format`` string; the ``get_*`` helpers fill them
from user records so callers never assemble prompt text themselves.
"""
import json
from typing import List, Literal

ConnectionType = Literal["professional", "social", "both"]

Intent = Literal[
    "connection_request",
    "profile_help",
    "search_help",
    "general_networking",
    "greeting",
    "general_query",
]

INTENTS = (
    "connection_request",
    "profile_help",
    "search_help",
    "general_networking",
    "greeting",
    "general_query",
)

# =============================================================================
# Match suggestions
# =============================================================================

MATCH_SYSTEM_PROMPT = (
    "You are an expert networking assistant that helps professionals find "
    "meaningful connections. Always provide helpful, personalized match "
    "suggestions and reply with JSON only."
)

MATCH_PROMPT = """You are an AI networking assistant. Analyze the following user profile and suggest the best professional and social connections from the list of potential matches.

<current_user>
{current_user}
</current_user>

<potential_matches>
{candidates}
</potential_matches>

For each potential match provide:
1. A match score (0-100) based on compatibility
2. A brief, personalized reason for the connection (1-2 sentences)
3. The type of connection (professional, social, or both)

Consider shared interests, complementary professional skills, similar career
stage or goals, and mutual networking opportunities.

<output_schema>
[
  {{
    "userId": "user id from the list",
    "matchScore": 85,
    "reason": "Personalized reason for connection",
    "connectionType": "professional"
  }}
]
</output_schema>

Only include matches with a score of {min_score} or higher. Limit to the top {max_matches} matches."""

# =============================================================================
# Connection intro message
# =============================================================================

INTRO_SYSTEM_PROMPT = (
    "You are a professional networking assistant. Generate warm, authentic "
    "connection messages that help people build meaningful professional relationships."
)

INTRO_PROMPT = """Generate a personalized connection message for a networking platform.

<sender>
- Name: {sender_name}
- Profession: {sender_profession}
- Bio: {sender_bio}
</sender>

<recipient>
- Name: {target_name}
- Profession: {target_profession}
- Bio: {target_bio}
</recipient>

Connection type: {connection_type}

Write a friendly message (2-3 sentences) that introduces the sender, names a
specific reason for connecting, and suggests a conversation starter. Keep it
natural; avoid being too formal or salesy."""

DEFAULT_INTRO_MESSAGE = "Hi! I'd love to connect and learn more about your work."

# =============================================================================
# Assistant
# =============================================================================

INTENT_SYSTEM_PROMPT = (
    "You are an expert at analyzing user intent for a networking platform. "
    "Always respond with valid JSON."
)

INTENT_PROMPT = """Analyze the user's message and determine their intent. The user is on a professional networking platform.

<user_profile>
- Name: {name}
- Profession: {profession}
- Bio: {bio}
- Interests: {interests}
</user_profile>

User message: "{message}"

Classify the intent as one of:
1. "connection_request" - wants to find people to connect with
2. "profile_help" - wants help improving their profile
3. "search_help" - wants to find specific people or skills
4. "general_networking" - has general networking questions
5. "greeting" - is greeting or starting the conversation
6. "general_query" - anything else

Respond with JSON: {{"type": "intent_type", "confidence": 0.95}}"""

NETWORKING_SYSTEM_PROMPT = "You are a professional networking coach. Give practical, actionable advice."

NETWORKING_PROMPT = """The user is asking about networking on this platform.

<user_profile>
- Name: {name}
- Profession: {profession}
- Bio: {bio}
</user_profile>

User question: "{message}"

Give helpful, actionable networking advice specific to their situation. 2-3 sentences max."""

GENERAL_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for a professional networking platform. "
    "Be friendly and helpful."
)

GENERAL_PROMPT = """The user of a professional networking platform is asking a question.

<user_profile>
- Name: {name}
- Profession: {profession}
</user_profile>

User question: "{message}"

Reply helpfully and briefly (under 100 words). If the question is unrelated to
networking, politely steer back to networking topics."""


# =============================================================================
# Helpers
# =============================================================================


def _display_name(user) -> str:
    return user.name or user.username or "Anonymous"


def format_profile(user) -> str:
    """Plain-text profile block, omitting empty fields."""
    lines = []
    if user.name:
        lines.append(f"Name: {user.name}")
    if user.username:
        lines.append(f"Username: @{user.username}")
    if user.profession:
        lines.append(f"Profession: {user.profession}")
    if user.bio:
        lines.append(f"Bio: {user.bio}")
    if user.interests:
        lines.append(f"Interests: {', '.join(user.interests)}")
    return "\n".join(lines)


def get_match_prompt(current_user, candidates: List, min_score: int, max_matches: int) -> str:
    candidate_data = [
        {
            "id": c.id,
            "name": _display_name(c),
            "username": c.username,
            "profession": c.profession,
            "bio": c.bio,
            "interests": c.interests,
        }
        for c in candidates
    ]
    return MATCH_PROMPT.format(
        current_user=format_profile(current_user),
        candidates=json.dumps(candidate_data, indent=2),
        min_score=min_score,
        max_matches=max_matches,
    )


def get_intro_prompt(sender, target, connection_type: str) -> str:
    return INTRO_PROMPT.format(
        sender_name=_display_name(sender),
        sender_profession=sender.profession or "Not specified",
        sender_bio=sender.bio or "Not provided",
        target_name=_display_name(target),
        target_profession=target.profession or "Not specified",
        target_bio=target.bio or "Not provided",
        connection_type=connection_type,
    )


def get_intent_prompt(user, message: str) -> str:
    return INTENT_PROMPT.format(
        name=_display_name(user),
        profession=user.profession or "Not specified",
        bio=user.bio or "Not provided",
        interests=", ".join(user.interests) or "None",
        message=message,
    )


def get_networking_prompt(user, message: str) -> str:
    return NETWORKING_PROMPT.format(
        name=_display_name(user),
        profession=user.profession or "Not specified",
        bio=user.bio or "Not provided",
        message=message,
    )


def get_general_prompt(user, message: str) -> str:
    return GENERAL_PROMPT.format(
        name=_display_name(user),
        profession=user.profession or "Not specified",
        message=message,
    )
