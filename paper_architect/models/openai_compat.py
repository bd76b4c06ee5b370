"""OpenAI-compatible chat completions streaming (OpenAI, DeepSeek and similar)."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

from paper_architect.models.streaming import (
    DEFAULT_MAX_TOKENS,
    CompletionCallback,
    ProviderHTTPRequest,
    ProviderKind,
    data_payload,
    load_payload,
)
from paper_architect.models.types import ProviderConfig, StreamTermination

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def _delta_content(chunk: Any) -> str | None:
    if not isinstance(chunk, dict):
        return None
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def build_openai_request(
    system_prompt: str,
    user_message: str,
    provider: ProviderConfig,
    *,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ProviderHTTPRequest:
    url = f"{provider.base_url.rstrip('/')}/chat/completions"
    return ProviderHTTPRequest(
        url=url,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {provider.api_key}",
        },
        json={
            "model": provider.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "stream": True,
            "max_tokens": max_tokens,
        },
    )


async def parse_openai_lines(
    lines: AsyncIterable[str],
    on_complete: Optional[CompletionCallback] = None,
) -> AsyncIterator[str]:
    """Yield delta contents until ``data: [DONE]``; a missing sentinel is not an error."""
    async for line in lines:
        payload = data_payload(line)
        if payload is None:
            continue
        if payload == DONE_SENTINEL:
            if on_complete:
                on_complete(StreamTermination.SENTINEL)
            return
        content = _delta_content(load_payload(payload))
        if content:
            yield content
    logger.debug("OpenAI stream closed without %s", DONE_SENTINEL)
    if on_complete:
        on_complete(StreamTermination.EOF)


class OpenAICompatibleAdapter:
    """Chat completions SSE: distinct system and user roles, bearer auth."""

    kind = ProviderKind.OPENAI

    def build_http_request(
        self,
        system_prompt: str,
        user_message: str,
        provider: ProviderConfig,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ProviderHTTPRequest:
        return build_openai_request(system_prompt, user_message, provider, max_tokens=max_tokens)

    def parse_lines(
        self,
        lines: AsyncIterable[str],
        on_complete: Optional[CompletionCallback] = None,
    ) -> AsyncIterator[str]:
        return parse_openai_lines(lines, on_complete)
