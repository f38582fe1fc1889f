"""AIProvider abstract interface for LLM integrations.

This module defines the abstract base class for all AI provider implementations.
Each provider must implement health_check() and call_model().

Usage:
    from app.ai_provider import AIProvider, OpenAIProvider

    provider = OpenAIProvider(api_key="...")
    if provider.health_check():
        text = provider.call_model("Suggest three icebreakers")
"""
from abc import ABC, abstractmethod
from typing import Optional


class AIProvider(ABC):
    """Abstract base class for AI provider implementations.

    Methods:
        health_check: Verify the provider is operational.
        call_model: Send one prompt and return the reply text.
    """

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the AI provider is healthy and operational.

        Returns:
            bool: True if the provider is operational, False otherwise.
        """
        pass

    @abstractmethod
    def call_model(
        self,
        prompt: str,
        max_tokens: int = 1024,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """Call the AI model with a raw prompt and return the response text.

        Args:
            prompt:      The user-turn prompt to send to the model.
            max_tokens:  Maximum tokens in the response.
            system:      Optional system-role instruction.
            temperature: Sampling temperature; provider default when None.
            json_mode:   Ask the model for a JSON object reply.

        Returns:
            str: The model's response text.

        Raises:
            Exception: If the API call fails.
        """
        pass
