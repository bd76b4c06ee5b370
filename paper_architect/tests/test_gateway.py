"""Tests for the generation gateway with a mocked HTTP transport."""

import json

import httpx
import pytest

from paper_architect.core.errors import ProviderHTTPError, TransportError
from paper_architect.models.gateway import (
    GenerationGateway,
    generate,
    is_google_endpoint,
    provider_kind,
    select_adapter,
)
from paper_architect.models.google import GoogleAdapter
from paper_architect.models.openai_compat import OpenAICompatibleAdapter
from paper_architect.models.streaming import ProviderKind
from paper_architect.models.types import (
    GenerationRequest,
    ProviderConfig,
    StreamTermination,
    WorkflowStep,
)

OPENAI = ProviderConfig(api_key="sk-test", base_url="https://api.openai.com/v1", model="gpt-4o")
GOOGLE = ProviderConfig(
    api_key="g-key", base_url="https://generativelanguage.googleapis.com", model="gemini-1.5-pro"
)


def _stream_response(status: int, *chunks: bytes) -> httpx.Response:
    async def body():
        for c in chunks:
            yield c

    return httpx.Response(status, content=body(), headers={"content-type": "text/event-stream"})


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _request(provider: ProviderConfig, step: int = 1, **kwargs) -> GenerationRequest:
    return GenerationRequest(step=step, user_input="outline", provider=provider, **kwargs)


def test_google_endpoint_classification():
    assert is_google_endpoint("https://generativelanguage.googleapis.com") is True
    assert is_google_endpoint("https://proxy.example/generativelanguage.googleapis.com/x") is True
    assert is_google_endpoint("https://api.openai.com/v1") is False
    assert is_google_endpoint("https://api.deepseek.com/v1") is False
    assert is_google_endpoint("") is False


def test_select_adapter():
    assert isinstance(select_adapter(GOOGLE), GoogleAdapter)
    assert isinstance(select_adapter(OPENAI), OpenAICompatibleAdapter)
    assert provider_kind(GOOGLE) is ProviderKind.GOOGLE
    assert provider_kind(OPENAI) is ProviderKind.OPENAI


@pytest.mark.asyncio
async def test_openai_stream_end_to_end():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return _stream_response(
            200,
            b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\nda',
            b'ta: {"choices":[{"delta":{"content":"lo"}}]}\n\n',
            b"data: [DONE]\n\n",
        )

    async with _client(handler) as client:
        gateway = GenerationGateway(client)
        async with gateway.generate(_request(OPENAI)) as stream:
            fragments = [f async for f in stream]
        assert stream.termination is StreamTermination.SENTINEL
        assert stream.completed is True

    assert fragments == ["Hel", "lo"]
    assert seen["url"] == "https://api.openai.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["stream"] is True
    assert seen["body"]["messages"][1] == {"role": "user", "content": "outline"}


@pytest.mark.asyncio
async def test_google_stream_end_to_end():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return _stream_response(
            200, b'data: {"candidates":[{"content":{"parts":[{"text":"Hi"}]}}]}\r\n\r\n'
        )

    async with _client(handler) as client:
        stream = GenerationGateway(client).generate(_request(GOOGLE, step=3, composed_text="T"))
        async with stream:
            fragments = [f async for f in stream]

    assert fragments == ["Hi"]
    assert stream.termination is StreamTermination.EOF
    req = seen["request"]
    assert req.url.path == "/v1beta/models/gemini-1.5-pro:streamGenerateContent"
    assert req.url.params["alt"] == "sse"
    assert req.url.params["key"] == "g-key"
    body = json.loads(req.content)
    text = body["contents"][0]["parts"][0]["text"]
    assert text.endswith("[COMPOSED TEXT]\nT\n\n[USER INSTRUCTIONS]\noutline")
    assert body["generationConfig"] == {"maxOutputTokens": 8192}


@pytest.mark.asyncio
async def test_http_error_raised_before_any_fragment():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="unauthorized")

    fragments = []
    async with _client(handler) as client:
        with pytest.raises(ProviderHTTPError) as exc_info:
            async with GenerationGateway(client).generate(_request(OPENAI)) as stream:
                async for f in stream:
                    fragments.append(f)
    assert fragments == []
    assert exc_info.value.status_code == 401
    assert exc_info.value.body == "unauthorized"
    assert exc_info.value.provider == "openai"


@pytest.mark.asyncio
async def test_http_error_on_lazy_iteration():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="forbidden")

    async with _client(handler) as client:
        stream = generate(_request(GOOGLE), client=client)
        with pytest.raises(ProviderHTTPError, match="403 - forbidden"):
            async for _ in stream:
                pass


@pytest.mark.asyncio
async def test_lazy_iteration_without_context():
    def handler(request: httpx.Request) -> httpx.Response:
        return _stream_response(200, b'data: {"choices":[{"delta":{"content":"ok"}}]}\n')

    async with _client(handler) as client:
        stream = GenerationGateway(client).generate(_request(OPENAI))
        out = [f async for f in stream]
    assert out == ["ok"]
    assert stream.termination is StreamTermination.EOF


@pytest.mark.asyncio
async def test_connect_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransportError, match="network down"):
            async with GenerationGateway(client).generate(_request(OPENAI)):
                pass


@pytest.mark.asyncio
async def test_read_error_mid_stream_keeps_earlier_fragments():
    async def body():
        yield b'data: {"choices":[{"delta":{"content":"part"}}]}\n'
        raise httpx.ReadError("connection lost")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    received = []
    async with _client(handler) as client:
        stream = GenerationGateway(client).generate(_request(OPENAI))
        with pytest.raises(TransportError):
            async with stream:
                async for f in stream:
                    received.append(f)
    assert received == ["part"]
    assert stream.completed is False


@pytest.mark.asyncio
async def test_early_close_releases_stream():
    def handler(request: httpx.Request) -> httpx.Response:
        return _stream_response(
            200,
            b'data: {"choices":[{"delta":{"content":"a"}}]}\n',
            b'data: {"choices":[{"delta":{"content":"b"}}]}\n',
            b"data: [DONE]\n",
        )

    async with _client(handler) as client:
        stream = GenerationGateway(client).generate(_request(OPENAI))
        async with stream:
            first = await stream.__anext__()
        assert first == "a"
        assert stream.termination is None
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        await stream.aclose()


@pytest.mark.asyncio
async def test_early_close_shuts_line_reader():
    def handler(request: httpx.Request) -> httpx.Response:
        return _stream_response(
            200,
            b'data: {"choices":[{"delta":{"content":"a"}}]}\n',
            b'data: {"choices":[{"delta":{"content":"b"}}]}\n',
            b"data: [DONE]\n",
        )

    async with _client(handler) as client:
        stream = GenerationGateway(client).generate(_request(OPENAI))
        async with stream:
            assert await stream.__anext__() == "a"
            lines = stream._lines
            assert lines is not None
        assert stream._lines is None
        assert lines.ag_frame is None
        with pytest.raises(StopAsyncIteration):
            await lines.__anext__()


@pytest.mark.asyncio
async def test_generate_text_concatenates():
    def handler(request: httpx.Request) -> httpx.Response:
        return _stream_response(
            200,
            b'data: {"candidates":[{"content":{"parts":[{"text":"Hello, "}]}}]}\n',
            b'data: {"candidates":[{"content":{"parts":[{"text":"world"}]}}]}\n',
        )

    async with _client(handler) as client:
        text = await GenerationGateway(client).generate_text(_request(GOOGLE))
    assert text == "Hello, world"


@pytest.mark.asyncio
async def test_composer_request_carries_reference_and_blueprint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return _stream_response(200, b"data: [DONE]\n")

    req = GenerationRequest(
        step=WorkflowStep.COMPOSER,
        user_input="formal tone",
        blueprint="BP",
        reference_text="REF",
        provider=OPENAI,
    )
    async with _client(handler) as client:
        assert await GenerationGateway(client, max_tokens=100).generate_text(req) == ""
    system, user = seen["body"]["messages"]
    assert system["content"].startswith("[REFERENCE STYLE TEXT]\nREF\n\n")
    assert user["content"] == "[LOGIC BLUEPRINT]\nBP\n\n[USER INSTRUCTIONS]\nformal tone"
    assert seen["body"]["max_tokens"] == 100


@pytest.mark.asyncio
async def test_concurrent_streams_are_independent():
    import asyncio

    def handler(request: httpx.Request) -> httpx.Response:
        if "googleapis" in request.url.host:
            return _stream_response(
                200,
                b'data: {"candidates":[{"content":{"parts":[{"text":"g1"}]}}]}\n',
                b'data: {"candidates":[{"content":{"parts":[{"text":"g2"}]}}]}\n',
            )
        return _stream_response(
            200,
            b'data: {"choices":[{"delta":{"content":"o1"}}]}\n',
            b'data: {"choices":[{"delta":{"content":"o2"}}]}\n',
            b"data: [DONE]\n",
        )

    async with _client(handler) as client:
        gateway = GenerationGateway(client)
        google_text, openai_text = await asyncio.gather(
            gateway.generate_text(_request(GOOGLE)),
            gateway.generate_text(_request(OPENAI, step=2, blueprint="BP")),
        )
    assert google_text == "g1g2"
    assert openai_text == "o1o2"
