"""Reusable wrapper for calling the active AI provider.

This module provides high-level functions for calling the AI provider
with proper error handling and logging.

Provider SDKs are synchronous, so each call runs in the default executor and
the event loop keeps serving sockets while the model answers.

Usage:
    from app.ai_provider.wrapper import call_json, call_text

    suggestions = await call_json(prompt, system=MATCH_SYSTEM_PROMPT)
    reply = await call_text(prompt, max_tokens=150)
"""
import asyncio
import json
import logging
import re
from typing import Any, Optional, Tuple

from app.errors import AppError

from .base import AIProvider
from .resolver import get_resolver

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class AIProviderError(AppError):
    """Base exception for AI provider errors."""
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message, status_code)


class ProviderNotAvailableError(AIProviderError):
    """Raised when no AI provider is available."""
    def __init__(self, message: str = "No active AI provider available"):
        super().__init__(message, status_code=503)


class ProviderCallError(AIProviderError):
    """Raised when an AI provider call fails."""
    def __init__(self, message: str, provider_name: str):
        self.provider_name = provider_name
        super().__init__(f"Provider {provider_name} error: {message}", status_code=500)


class JSONParseError(AIProviderError):
    """Raised when AI response JSON parsing fails."""
    def __init__(self, message: str, provider_name: str):
        self.provider_name = provider_name
        super().__init__(
            f"Failed to parse AI response as JSON from {provider_name}: {message}",
            status_code=500
        )


def _get_active_provider() -> Tuple[AIProvider, str]:
    """Get the active AI provider with proper error handling.

    Returns:
        Tuple of (provider, provider_name).

    Raises:
        ProviderNotAvailableError: If no provider is available.
    """
    resolver = get_resolver()

    if resolver is None:
        logger.warning("AI provider call failed: resolver not initialized")
        raise ProviderNotAvailableError(
            "AI service is not initialized. Please check server configuration."
        )

    if not resolver.ai_config.enabled:
        logger.info("AI provider call rejected: AI features are disabled")
        raise ProviderNotAvailableError("AI features are not enabled in configuration.")

    provider = resolver.get_active_provider()
    if provider is None:
        logger.warning("AI provider call failed: no active provider")
        raise ProviderNotAvailableError(
            "No active AI provider available. Please check provider configuration and API keys."
        )

    return provider, type(provider).__name__


async def call_text(
    prompt: str,
    max_tokens: int = 1024,
    system: Optional[str] = None,
    temperature: Optional[float] = None,
) -> str:
    """Call the active provider and return its reply text.

    Raises:
        ProviderNotAvailableError: If no provider is available (503).
        ProviderCallError: If the provider call fails (500).
    """
    provider, provider_name = _get_active_provider()
    try:
        return await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: provider.call_model(
                prompt, max_tokens=max_tokens, system=system, temperature=temperature
            ),
        )
    except Exception as e:
        logger.error(f"Provider {provider_name} error: {e}")
        raise ProviderCallError(str(e), provider_name)


async def call_json(
    prompt: str,
    max_tokens: int = 1024,
    system: Optional[str] = None,
    temperature: Optional[float] = None,
    json_mode: bool = False,
) -> Any:
    """Call the active provider and parse its reply as JSON.

    A reply wrapped in a Markdown code fence is unwrapped first.

    Raises:
        ProviderNotAvailableError: If no provider is available (503).
        ProviderCallError: If the provider call fails (500).
        JSONParseError: If the reply is not valid JSON (500).
    """
    provider, provider_name = _get_active_provider()
    try:
        text = await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: provider.call_model(
                prompt,
                max_tokens=max_tokens,
                system=system,
                temperature=temperature,
                json_mode=json_mode,
            ),
        )
    except Exception as e:
        logger.error(f"Provider {provider_name} error: {e}")
        raise ProviderCallError(str(e), provider_name)

    return parse_json_reply(text, provider_name)


def parse_json_reply(text: str, provider_name: str = "unknown") -> Any:
    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1)
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {text[:500]}")
        raise JSONParseError(str(e), provider_name)
