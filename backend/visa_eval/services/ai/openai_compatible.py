"""
OpenAI-compatible Provider

Streams replies from any service exposing the Chat Completions API
(OpenAI, DeepSeek, Moonshot, local gateways...).
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, Iterator, Optional

import httpx

from .base import (
    AIProviderAuthError,
    AIProviderConnectionError,
    AIProviderError,
    AIProviderRateLimitError,
    ChatMessage,
    StreamChunk,
)

logger = logging.getLogger(__name__)


def parse_stream_line(line: str) -> Optional[Dict[str, Any]]:
    """Decode one `data: {...}` line; None for blanks, comments and [DONE]."""
    line = line.strip()
    if line.startswith("data:"):
        line = line[5:].strip()
    if not line.startswith("{"):
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def chunks_from_event(data: Dict[str, Any]) -> Iterator[StreamChunk]:
    for choice in data.get("choices") or []:
        if not isinstance(choice, dict):
            continue
        # Non-streaming gateways send the whole message instead of a delta
        delta = choice.get("delta") or choice.get("message") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str) and content:
            yield StreamChunk(content=content)
        if choice.get("finish_reason"):
            yield StreamChunk(content="", finish_reason=str(choice["finish_reason"]))


def _status_error(status_code: int, body: str) -> AIProviderError:
    message = f"API request failed with status {status_code}: {body}"
    if status_code in (401, 403):
        return AIProviderAuthError(message)
    if status_code == 429:
        return AIProviderRateLimitError(message)
    return AIProviderError(message)


class OpenAICompatibleProvider:
    """Chat Completions provider over httpx streaming."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: API root (e.g. https://api.openai.com/v1)
            api_key: Bearer token
            default_model: Model used when the caller passes none
            timeout: Read timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self.transport = transport

    def _request_body(
        self,
        messages: list[ChatMessage],
        model: Optional[str],
        temperature: float,
        max_tokens: int,
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }
        for key, value in extra.items():
            if value is not None:
                body.setdefault(key, value)
        return body

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        **kwargs: Any
    ) -> AsyncIterator[StreamChunk]:
        body = self._request_body(messages, model, temperature, max_tokens, kwargs)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        timeout = httpx.Timeout(connect=10.0, read=self.timeout, write=30.0, pool=30.0)

        try:
            # trust_env=False: ignore HTTP(S)_PROXY from the environment
            async with httpx.AsyncClient(
                timeout=timeout, trust_env=False, transport=self.transport
            ) as client:
                async with client.stream(
                    "POST", f"{self.base_url}/chat/completions", headers=headers, json=body
                ) as response:
                    if response.status_code != 200:
                        preview = (await response.aread())[:2048].decode("utf-8", errors="replace")
                        logger.error(
                            "[OpenAI API] status %s: %s", response.status_code, preview
                        )
                        raise _status_error(response.status_code, preview)

                    async for line in response.aiter_lines():
                        if line.strip() in ("data: [DONE]", "[DONE]"):
                            return
                        data = parse_stream_line(line)
                        if data is None:
                            continue
                        for chunk in chunks_from_event(data):
                            yield chunk
                            if chunk.finish_reason:
                                return
        except httpx.TimeoutException as e:
            raise AIProviderConnectionError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise AIProviderConnectionError(f"Connection error: {e}") from e
