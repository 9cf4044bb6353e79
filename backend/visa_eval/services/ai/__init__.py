"""
AI Services Module

Unified interface for language-model calls used by the narrative writer.
"""

from typing import Optional

from .base import (
    AIProvider,
    ChatMessage,
    StreamChunk,
    AIProviderError,
    AIProviderConnectionError,
    AIProviderRateLimitError,
    AIProviderAuthError,
    collect_reply,
)
from .openai_compatible import OpenAICompatibleProvider
from .mock_provider import MockProvider
from .prompts import build_narrative_prompt
from .parser import (
    NarrativeParseError,
    NarrativeResult,
    parse_narrative_response,
)


def create_ai_provider(
    provider: str,
    *,
    base_url: str = "",
    api_key: str = "",
    model: str = "",
    timeout: float = 60.0,
) -> Optional[AIProvider]:
    """
    Build the configured provider.

    Returns None for "none" or an openai_compatible setup without an API
    key; callers then use the deterministic narrative.
    """
    name = (provider or "none").strip().lower()
    if name == "mock":
        return MockProvider()
    if name == "openai_compatible" and api_key:
        return OpenAICompatibleProvider(
            base_url=base_url,
            api_key=api_key,
            default_model=model or "gpt-4o-mini",
            timeout=timeout,
        )
    return None


__all__ = [
    # Base
    "AIProvider",
    "ChatMessage",
    "StreamChunk",
    "AIProviderError",
    "AIProviderConnectionError",
    "AIProviderRateLimitError",
    "AIProviderAuthError",
    "collect_reply",
    # Providers
    "OpenAICompatibleProvider",
    "MockProvider",
    "create_ai_provider",
    # Prompts
    "build_narrative_prompt",
    # Parser
    "NarrativeParseError",
    "NarrativeResult",
    "parse_narrative_response",
]
