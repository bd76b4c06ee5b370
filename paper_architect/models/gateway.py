"""Generation gateway: single entrypoint generate(request) for both provider families.

The provider variant is chosen once, here, from the endpoint base URL; callers
only ever see a GenerationStream of text fragments. Streaming contract: see
paper_architect.models.streaming.
"""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import AsyncIterator, Optional

import httpx

from paper_architect.core.errors import ProviderHTTPError, TransportError
from paper_architect.models.google import GoogleAdapter
from paper_architect.models.openai_compat import OpenAICompatibleAdapter
from paper_architect.models.prompts import build_prompts
from paper_architect.models.streaming import (
    DEFAULT_MAX_TOKENS,
    ProviderHTTPRequest,
    ProviderKind,
    StreamingAdapter,
)
from paper_architect.models.transport import iter_lines
from paper_architect.models.types import GenerationRequest, ProviderConfig, StreamTermination

logger = logging.getLogger(__name__)

GOOGLE_HOST_MARKER = "generativelanguage.googleapis.com"
DEFAULT_TIMEOUT_SECONDS = 300.0

_ADAPTERS: dict[ProviderKind, StreamingAdapter] = {
    ProviderKind.OPENAI: OpenAICompatibleAdapter(),
    ProviderKind.GOOGLE: GoogleAdapter(),
}


def is_google_endpoint(base_url: str) -> bool:
    """Heuristic: substring match on the Google API host. Not URL parsing, not a security check."""
    return GOOGLE_HOST_MARKER in (base_url or "")


def provider_kind(provider: ProviderConfig) -> ProviderKind:
    return ProviderKind.GOOGLE if is_google_endpoint(provider.base_url) else ProviderKind.OPENAI


def select_adapter(provider: ProviderConfig) -> StreamingAdapter:
    return _ADAPTERS[provider_kind(provider)]


class GenerationStream:
    """Async iterator of text fragments owning one HTTP connection.

    Use as ``async with gateway.generate(req) as stream: async for frag in stream``.
    Entering the context sends the request and checks the status, so a
    ProviderHTTPError surfaces before any fragment. Plain ``async for`` without
    the context also works: the request is sent on first pull and the
    connection is released when iteration ends or fails. A consumer that stops
    early must call ``aclose()`` (the context manager does it).
    """

    def __init__(
        self,
        adapter: StreamingAdapter,
        http_request: ProviderHTTPRequest,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._adapter = adapter
        self._http_request = http_request
        self._owns_client = client is None
        self._client = client
        self._timeout = timeout
        self._response: httpx.Response | None = None
        self._fragments: AsyncIterator[str] | None = None
        self._lines: AsyncIterator[str] | None = None
        self._closed = False
        self._started_at = 0.0
        self._chars = 0
        self.termination: StreamTermination | None = None

    @property
    def provider(self) -> ProviderKind:
        return self._adapter.kind

    @property
    def completed(self) -> bool:
        """True once the provider finished normally (sentinel or clean close)."""
        return self.termination is not None

    def _mark_complete(self, termination: StreamTermination) -> None:
        self.termination = termination
        logger.info(
            "Generation stream complete: provider=%s termination=%s chars=%d time=%.2fs",
            self.provider.value,
            termination.value,
            self._chars,
            time.monotonic() - self._started_at,
        )

    async def open(self) -> "GenerationStream":
        if self._closed:
            raise TransportError("Stream already closed")
        if self._response is not None:
            return self
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        req = self._http_request
        # Google carries the key in the query string: log the path only.
        logger.info("Opening %s stream: %s", self.provider.value, req.url)
        self._started_at = time.monotonic()
        try:
            http_req = self._client.build_request(
                "POST", req.url, json=req.json, headers=req.headers, params=req.params or None
            )
            self._response = await self._client.send(http_req, stream=True)
        except httpx.HTTPError as e:
            await self.aclose()
            raise TransportError(f"Request to {self.provider.value} provider failed: {e}") from e
        if not self._response.is_success:
            status = self._response.status_code
            try:
                await self._response.aread()
                body = self._response.text
            except httpx.HTTPError as e:
                body = f"<unreadable body: {e}>"
            await self.aclose()
            logger.warning("Provider %s returned HTTP %s", self.provider.value, status)
            raise ProviderHTTPError(status, body, provider=self.provider.value)
        self._lines = iter_lines(self._response.aiter_bytes())
        self._fragments = self._adapter.parse_lines(self._lines, self._mark_complete)
        return self

    async def aclose(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        fragments, self._fragments = self._fragments, None
        if fragments is not None:
            await fragments.aclose()  # type: ignore[attr-defined]
        lines, self._lines = self._lines, None
        if lines is not None:
            await lines.aclose()  # type: ignore[attr-defined]
        if self._response is not None:
            await self._response.aclose()
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "GenerationStream":
        try:
            return await self.open()
        except BaseException:
            await self.aclose()
            raise

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    def __aiter__(self) -> "GenerationStream":
        return self

    async def __anext__(self) -> str:
        if self._fragments is None:
            if self._closed:
                raise StopAsyncIteration
            await self.open()
        assert self._fragments is not None
        try:
            fragment = await self._fragments.__anext__()
        except BaseException:
            await self.aclose()
            raise
        self._chars += len(fragment)
        return fragment


class GenerationGateway:
    """Builds prompts for a workflow step and opens the matching provider stream.

    A shared ``client`` may be injected (connection pooling, tests); otherwise
    every stream gets its own client and closes it with the stream.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._timeout = timeout

    def generate(self, request: GenerationRequest) -> GenerationStream:
        """Lazy stream of fragments for one step. Nothing is sent until opened or iterated."""
        adapter = select_adapter(request.provider)
        system_prompt, user_message = build_prompts(request)
        http_request = adapter.build_http_request(
            system_prompt, user_message, request.provider, max_tokens=self._max_tokens
        )
        logger.debug(
            "Prepared step=%d provider=%s model=%s system_len=%d user_len=%d",
            int(request.step),
            adapter.kind.value,
            request.provider.model,
            len(system_prompt),
            len(user_message),
        )
        return GenerationStream(
            adapter, http_request, client=self._client, timeout=self._timeout
        )

    async def generate_text(self, request: GenerationRequest) -> str:
        """Drain a stream and return the full text."""
        parts: list[str] = []
        async with self.generate(request) as stream:
            async for fragment in stream:
                parts.append(fragment)
        return "".join(parts)


def generate(
    request: GenerationRequest, client: httpx.AsyncClient | None = None
) -> GenerationStream:
    """Module-level shortcut for GenerationGateway(client).generate(request)."""
    return GenerationGateway(client).generate(request)
