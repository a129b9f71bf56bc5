"""Tests for the Gemini REST client."""

import json

import httpx
import pytest

from passage_coach.errors import ExternalServiceError, ExternalServiceErrorKind
from passage_coach.gemini_client import GeminiClient
from passage_coach.settings import settings


def _ok(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class Recorder:
    def __init__(self, response: httpx.Response = None, exc: Exception = None):
        self.requests = []
        self.response = response
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response


class TestCredentials:
    def test_missing_api_key_fails_before_any_request(self, no_gemini_key):
        with pytest.raises(ExternalServiceError) as exc_info:
            GeminiClient()

        assert exc_info.value.kind == ExternalServiceErrorKind.MISSING_CREDENTIAL

    def test_explicit_key_wins(self, no_gemini_key):
        client = GeminiClient(api_key="explicit")
        assert client.api_key == "explicit"


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_first_candidate_text(self, gemini_key, monkeypatch):
        monkeypatch.setattr(settings, "gemini_provider", "ai_studio")
        recorder = Recorder(httpx.Response(200, json=_ok('{"ok": true}')))
        client = GeminiClient(model="gemini-test", transport=httpx.MockTransport(recorder))

        text = await client.generate("hello", system="be brief", temperature=0.5, json_output=True)
        await client.aclose()

        assert text == '{"ok": true}'
        request = recorder.requests[0]
        assert request.url.params["key"] == "test-gemini-api-key"
        assert "gemini-test:generateContent" in request.url.path
        body = json.loads(request.content)
        assert body["contents"][0]["parts"][0]["text"] == "hello"
        assert body["systemInstruction"]["parts"][0]["text"] == "be brief"
        assert body["generationConfig"] == {"temperature": 0.5, "responseMimeType": "application/json"}

    @pytest.mark.asyncio
    async def test_vertex_sends_key_in_header(self, gemini_key, monkeypatch):
        monkeypatch.setattr(settings, "gemini_provider", "vertex")
        monkeypatch.setattr(settings, "vertex_project", "proj")
        recorder = Recorder(httpx.Response(200, json=_ok("hi")))
        client = GeminiClient(model="gemini-test", transport=httpx.MockTransport(recorder))

        await client.generate("hello")
        await client.aclose()

        request = recorder.requests[0]
        assert request.headers["x-goog-api-key"] == "test-gemini-api-key"
        assert "key" not in request.url.params
        assert "/projects/proj/" in request.url.path
        assert "generationConfig" not in json.loads(request.content)

    @pytest.mark.asyncio
    async def test_http_error_is_upstream_failure_without_retry(self, gemini_key):
        recorder = Recorder(httpx.Response(503, json={"error": "busy"}))
        client = GeminiClient(transport=httpx.MockTransport(recorder))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.generate("hello", thinking_budget=0)
        await client.aclose()

        assert exc_info.value.kind == ExternalServiceErrorKind.UPSTREAM_FAILURE
        assert "503" in exc_info.value.message
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_upstream_failure(self, gemini_key):
        recorder = Recorder(exc=httpx.ConnectError("refused"))
        client = GeminiClient(transport=httpx.MockTransport(recorder))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.generate("hello")
        await client.aclose()

        assert exc_info.value.kind == ExternalServiceErrorKind.UPSTREAM_FAILURE

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_no_parsed_output(self, gemini_key):
        recorder = Recorder(httpx.Response(200, json={"candidates": []}))
        client = GeminiClient(transport=httpx.MockTransport(recorder))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.generate("hello")
        await client.aclose()

        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT

    @pytest.mark.asyncio
    async def test_api_key_not_leaked_in_error_message(self, gemini_key):
        recorder = Recorder(httpx.Response(401, json={}))
        client = GeminiClient(transport=httpx.MockTransport(recorder))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.generate("hello")
        await client.aclose()

        assert "test-gemini-api-key" not in exc_info.value.message
