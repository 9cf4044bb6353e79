"""
AI Provider interface

Common protocol for chat-completion backends used to write the
evaluation narrative (OpenAI-compatible services, local models, mock).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Protocol


@dataclass
class ChatMessage:
    """A single chat message."""
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass
class StreamChunk:
    """Incremental piece of a streamed reply."""
    content: str
    finish_reason: Optional[str] = None


class AIProvider(Protocol):
    """Protocol every AI backend implements so they stay interchangeable."""

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        **kwargs: Any
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a chat reply.

        Args:
            messages: Conversation so far
            model: Model name (provider default when omitted)
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Upper bound on generated tokens
            **kwargs: Provider-specific parameters

        Yields:
            StreamChunk: Incremental text

        Raises:
            AIProviderError: The call failed
        """
        ...


async def collect_reply(
    provider: AIProvider,
    messages: list[ChatMessage],
    **kwargs: Any,
) -> str:
    """Drain a streamed reply into one string."""
    parts: list[str] = []
    async for chunk in provider.stream_chat(messages, **kwargs):
        if chunk.content:
            parts.append(chunk.content)
    return "".join(parts)


class AIProviderError(Exception):
    """Base class for AI provider failures."""
    pass


class AIProviderConnectionError(AIProviderError):
    """Network or timeout failure."""
    pass


class AIProviderRateLimitError(AIProviderError):
    """Provider rejected the call with HTTP 429."""
    pass


class AIProviderAuthError(AIProviderError):
    """Provider rejected the credentials."""
    pass
