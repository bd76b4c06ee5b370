"""Streaming contract shared by the provider adapters.

Both providers speak SSE framing (``data: {json}`` lines) but differ in
request envelope, response JSON shape and termination:

- OpenAI-compatible chat completions: ``choices[0].delta.content``, ends with ``data: [DONE]``.
- Google generate-content: ``candidates[0].content.parts[0].text``, ends when the connection closes.

Each adapter turns protocol lines into plain text fragments and reports how the
stream finished through ``on_complete``; the gateway exposes that as a single
``GenerationStream.termination`` so consumers never see the provider quirk.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional, Protocol, runtime_checkable

from paper_architect.models.types import ProviderConfig, StreamTermination

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DEFAULT_MAX_TOKENS = 8192

CompletionCallback = Callable[[StreamTermination], None]


class ProviderKind(str, Enum):
    OPENAI = "openai"
    GOOGLE = "google"


@dataclass(frozen=True)
class ProviderHTTPRequest:
    """One POST to a provider streaming endpoint."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class StreamingAdapter(Protocol):
    """Capability shared by every provider variant: request in, fragments out."""

    kind: ProviderKind

    def build_http_request(
        self,
        system_prompt: str,
        user_message: str,
        provider: ProviderConfig,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ProviderHTTPRequest:
        ...

    def parse_lines(
        self,
        lines: AsyncIterable[str],
        on_complete: Optional[CompletionCallback] = None,
    ) -> AsyncIterator[str]:
        ...


def data_payload(line: str) -> str | None:
    """Return the payload of an SSE data line, or None for any other line."""
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX) :]


def load_payload(payload: str) -> Any:
    """Parse a data payload as JSON. Malformed payloads give None and are dropped by callers.

    Dropping is deliberate: noisy real-world streams occasionally carry broken
    lines and failing the whole generation on them would lose good output.
    """
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed data line (%d chars)", len(payload))
        return None
