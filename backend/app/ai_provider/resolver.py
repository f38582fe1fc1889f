"""Provider resolver for AI provider selection.

Builds the AI provider from configuration at startup and keeps it as the
process-wide active provider.

Usage:
    from app.ai_provider.resolver import ProviderResolver, set_resolver
    from app.config import get_config

    resolver = ProviderResolver(get_config())
    resolver.resolve()
    set_resolver(resolver)
"""
import logging
from dataclasses import dataclass
from typing import Optional

from app.config import AppConfig

from .base import AIProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


@dataclass
class AIStatus:
    """Snapshot of AI availability."""
    enabled: bool      # Enabled in settings
    configured: bool   # Has API key configured
    active: bool       # A provider is ready for calls
    model: Optional[str]


class ProviderResolver:
    """Resolves and holds the active AI provider.

    Attributes:
        config: Full application configuration.
        ai_config: The ``ai`` settings section.
    """

    def __init__(self, config: AppConfig, provider: Optional[AIProvider] = None) -> None:
        """Initialize the resolver.

        Args:
            config: Full application configuration.
            provider: Pre-built provider to use instead of creating one
                from the OpenAI secrets.
        """
        self.config = config
        self.ai_config = config.ai
        self._preset = provider
        self._active: Optional[AIProvider] = None

    def _is_configured(self) -> bool:
        return self._preset is not None or bool(self.config.secrets.openai.api_key)

    def _create_provider(self) -> AIProvider:
        if self._preset is not None:
            return self._preset
        return OpenAIProvider(
            api_key=self.config.secrets.openai.api_key,
            model=self.ai_config.model,
            temperature=self.ai_config.temperature,
            organization=self.config.secrets.openai.organization,
        )

    def resolve(self) -> Optional[AIProvider]:
        """Create the provider if AI is enabled and an API key is present.

        Returns:
            The active AIProvider or None.
        """
        if not self.ai_config.enabled:
            logger.info("AI features disabled, skipping provider resolution")
            return None
        if not self._is_configured():
            logger.warning("AI enabled but no OpenAI API key configured")
            return None

        provider = self._create_provider()
        if self.ai_config.verify_on_start and not provider.health_check():
            logger.warning("AI provider health check failed")
            return None

        self._active = provider
        logger.info(f"AI active: model={self.ai_config.model}, provider={type(provider).__name__}")
        return provider

    def get_active_provider(self) -> Optional[AIProvider]:
        return self._active

    def get_status(self) -> AIStatus:
        return AIStatus(
            enabled=self.ai_config.enabled,
            configured=self._is_configured(),
            active=self._active is not None,
            model=self.ai_config.model if self._active is not None else None,
        )


# Global resolver instance (initialized on startup)
_resolver: Optional[ProviderResolver] = None


def get_resolver() -> Optional[ProviderResolver]:
    """Get the global provider resolver instance."""
    return _resolver


def set_resolver(resolver: Optional[ProviderResolver]) -> None:
    """Set the global provider resolver instance."""
    global _resolver
    _resolver = resolver
