"""
Mock AI Provider

Deterministic stand-in used in development and tests.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Optional

from .base import ChatMessage, StreamChunk


class MockProvider:
    """Replies with a fixed narrative JSON document, streamed in pieces."""

    def __init__(self, reply: Optional[str] = None, chunk_size: int = 40):
        self.reply = reply if reply is not None else json.dumps(
            {
                "nextSteps": [
                    "Review the attached report",
                    "Collect any missing supporting documents",
                    "Book a visa appointment",
                ],
                "timeline": "4-6 weeks",
                "additionalNotes": "Mock narrative generated without a language model.",
            }
        )
        self.chunk_size = max(1, chunk_size)
        self.calls: list[list[ChatMessage]] = []

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        **kwargs: Any
    ) -> AsyncIterator[StreamChunk]:
        self.calls.append(list(messages))
        text = self.reply
        for start in range(0, len(text), self.chunk_size):
            yield StreamChunk(content=text[start:start + self.chunk_size])
        yield StreamChunk(content="", finish_reason="stop")
