"""AI Provider module for LLM integrations.

This module provides a unified interface for AI providers, currently
implemented by OpenAIProvider.

Usage:
    from app.ai_provider import OpenAIProvider, ProviderResolver, set_resolver

    resolver = ProviderResolver(config)
    resolver.resolve()
    set_resolver(resolver)

    reply = await call_text("Suggest an icebreaker")
"""
from .base import AIProvider
from .openai_provider import OpenAIProvider
from .resolver import ProviderResolver, get_resolver, set_resolver
from .wrapper import (
    AIProviderError,
    JSONParseError,
    ProviderCallError,
    ProviderNotAvailableError,
    call_json,
    call_text,
)

__all__ = [
    "AIProvider",
    "OpenAIProvider",
    "ProviderResolver",
    "get_resolver",
    "set_resolver",
    # Wrapper functions and exceptions
    "call_json",
    "call_text",
    "AIProviderError",
    "ProviderNotAvailableError",
    "ProviderCallError",
    "JSONParseError",
]
