"""OpenAI API provider implementation.

This module provides an AIProvider implementation that connects to
OpenAI's API using the official SDK.

Usage:
    provider = OpenAIProvider(api_key="sk-...")
    if provider.health_check():
        reply = provider.call_model(prompt, system="You are a networking coach.")
"""
import logging
from typing import Optional

import openai

from .base import AIProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """AIProvider implementation using OpenAI's chat completions API.

    Attributes:
        api_key: OpenAI API key for authentication.
        model: OpenAI model to use (default: gpt-3.5-turbo).
        temperature: Default sampling temperature.
        organization: Optional organization ID.
    """

    DEFAULT_MODEL = "gpt-3.5-turbo"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        organization: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.temperature = temperature
        self.organization = organization
        self._client: Optional[openai.OpenAI] = None

    def _get_client(self) -> openai.OpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            kwargs = {"api_key": self.api_key}
            if self.organization:
                kwargs["organization"] = self.organization
            self._client = openai.OpenAI(**kwargs)
        return self._client

    def health_check(self) -> bool:
        """Check if the OpenAI API is accessible.

        Attempts a minimal API call to verify connectivity.
        """
        try:
            client = self._get_client()
            client.chat.completions.create(
                model=self.model,
                max_tokens=1,
                messages=[{"role": "user", "content": "hi"}],
            )
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False

    def call_model(
        self,
        prompt: str,
        max_tokens: int = 1024,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """Call the OpenAI model with a raw prompt.

        Raises:
            ValueError: The model returned no content.
            openai.OpenAIError: The API call failed.
        """
        client = self._get_client()

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "messages": messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No response from OpenAI")
        return content.strip()
