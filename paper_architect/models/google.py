"""Google generate-content streaming (Gemini via generativelanguage.googleapis.com)."""

from __future__ import annotations

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


def _candidate_text(chunk: Any) -> str | None:
    if not isinstance(chunk, dict):
        return None
    candidates = chunk.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if isinstance(text, str) and text:
        return text
    return None


def build_google_request(
    system_prompt: str,
    user_message: str,
    provider: ProviderConfig,
    *,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ProviderHTTPRequest:
    """No system role in this usage: system and user text go in one user message."""
    url = f"{provider.base_url.rstrip('/')}/v1beta/models/{provider.model}:streamGenerateContent"
    return ProviderHTTPRequest(
        url=url,
        headers={"Content-Type": "application/json"},
        params={"alt": "sse", "key": provider.api_key},
        json={
            "contents": [
                {"role": "user", "parts": [{"text": f"{system_prompt}\n\n{user_message}"}]},
            ],
            "generationConfig": {"maxOutputTokens": max_tokens},
        },
    )


async def parse_google_lines(
    lines: AsyncIterable[str],
    on_complete: Optional[CompletionCallback] = None,
) -> AsyncIterator[str]:
    """Yield candidate text until the transport ends. There is no sentinel."""
    async for line in lines:
        payload = data_payload(line)
        if payload is None:
            continue
        text = _candidate_text(load_payload(payload))
        if text:
            yield text
    if on_complete:
        on_complete(StreamTermination.EOF)


class GoogleAdapter:
    """streamGenerateContent with alt=sse; key passed as a query parameter."""

    kind = ProviderKind.GOOGLE

    def build_http_request(
        self,
        system_prompt: str,
        user_message: str,
        provider: ProviderConfig,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ProviderHTTPRequest:
        return build_google_request(system_prompt, user_message, provider, max_tokens=max_tokens)

    def parse_lines(
        self,
        lines: AsyncIterable[str],
        on_complete: Optional[CompletionCallback] = None,
    ) -> AsyncIterator[str]:
        return parse_google_lines(lines, on_complete)
