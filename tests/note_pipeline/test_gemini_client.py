"""Unit tests for the Gemini text-generation client."""

import json

import httpx
import pytest

from src.note_pipeline.config import NoteGeneratorConfig
from src.note_pipeline.errors import (
    EmptyUpstreamResponseError,
    MalformedOutputError,
    SafetyBlockedError,
    UpstreamUnavailableError,
)
from src.note_pipeline.gemini_client import GeminiClient, extract_json


def _candidate(text: str, finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}
        ]
    }


def _client(handler, max_retries: int = 1) -> GeminiClient:
    config = NoteGeneratorConfig(
        gemini_model="gemini-test",
        gemini_base_url="https://gemini.test/v1beta",
        max_retries=max_retries,
    )
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient(config, http_client)


@pytest.mark.unit
class TestExtractJson:
    """Test JSON extraction from free-form generated text."""

    def test_plain_object(self) -> None:
        assert extract_json('{"title": "Intro"}') == {"title": "Intro"}

    def test_object_wrapped_in_prose_and_fences(self) -> None:
        text = 'Sure!\n```json\n{"title": "Intro", "tags": ["a"]}\n```\nHope it helps.'

        assert extract_json(text) == {"title": "Intro", "tags": ["a"]}

    def test_nested_braces_use_outermost_span(self) -> None:
        assert extract_json('x {"a": {"b": 1}} y') == {"a": {"b": 1}}

    def test_no_object(self) -> None:
        with pytest.raises(MalformedOutputError):
            extract_json("no json here")

    def test_reversed_braces(self) -> None:
        with pytest.raises(MalformedOutputError):
            extract_json("} nothing {")

    def test_invalid_json(self) -> None:
        with pytest.raises(MalformedOutputError):
            extract_json("{title: Intro}")


@pytest.mark.unit
class TestGeminiClient:
    """Test suite for GeminiClient class."""

    @pytest.mark.asyncio
    async def test_generate_success(self) -> None:
        """Test request shape and returned candidate text."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_candidate('{"title": "Intro"}'))

        client = _client(handler)
        text = await client.generate("Summarize this", "secret-key", max_output_tokens=512)

        assert text == '{"title": "Intro"}'
        request = seen[0]
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        assert request.url.params["key"] == "secret-key"
        body = json.loads(request.content)
        assert body["contents"][0]["parts"][0]["text"] == "Summarize this"
        assert body["generationConfig"]["maxOutputTokens"] == 512
        assert len(body["safetySettings"]) == 4

    @pytest.mark.asyncio
    async def test_retries_once_on_server_error(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json=_candidate("ok"))

        client = _client(handler)

        assert await client.generate("p", "k") == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retry(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, text="slow down")

        client = _client(handler)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.generate("p", "k")

        assert exc_info.value.status_code == 429
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, text="bad key")

        client = _client(handler)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.generate("p", "k")

        assert exc_info.value.status_code == 400
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler, max_retries=0)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.generate("p", "k")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_no_candidates(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(EmptyUpstreamResponseError):
            await client.generate("p", "k")

    @pytest.mark.asyncio
    async def test_safety_block(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=_candidate("", "SAFETY")))

        with pytest.raises(SafetyBlockedError):
            await client.generate("p", "k")

    @pytest.mark.asyncio
    async def test_empty_text(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=_candidate("   ")))

        with pytest.raises(EmptyUpstreamResponseError):
            await client.generate("p", "k")

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(EmptyUpstreamResponseError):
            await client.generate("p", "k")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"candidates": "abc"},
            {"candidates": ["blocked"]},
            {"candidates": [{"content": "abc"}]},
            {"candidates": [{"content": {"parts": "abc"}}]},
            {"candidates": [{"content": {"parts": ["abc", 1]}}]},
        ],
    )
    async def test_malformed_response_shape(self, payload) -> None:
        client = _client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(EmptyUpstreamResponseError):
            await client.generate("p", "k")

    @pytest.mark.asyncio
    async def test_negative_retry_setting_still_sends_once(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_candidate("ok"))

        client = _client(handler, max_retries=0)
        client.config.max_retries = -1

        assert await client.generate("p", "k") == "ok"
        assert len(calls) == 1
