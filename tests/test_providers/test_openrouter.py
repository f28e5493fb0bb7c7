"""Tests for apidex.providers.openrouter."""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest

from apidex.exceptions import ConfigurationError, ProviderError
from apidex.models import LlmGenerateRequest, ProviderId
from apidex.providers import OpenRouterProvider
from apidex.providers.openrouter import DEFAULT_PLUGINS


def _chat(content: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _request(pdf_bytes: bytes, **overrides: Any) -> LlmGenerateRequest:
    fields: dict[str, Any] = {
        "provider": ProviderId.OPENROUTER,
        "api_key": "sk-or-test",
        "pdf_bytes": pdf_bytes,
        "title": "Billing",
        "version": "1.0.0",
    }
    fields.update(overrides)
    return LlmGenerateRequest(**fields)


@pytest.fixture
def ok_transport(recording_transport):
    return recording_transport(lambda r: httpx.Response(200, json=_chat('{"openapi":"3.0.3"}')))


class TestOpenRouterRequest:
    def test_pdf_sent_as_file_part(self, ok_transport, pdf_bytes: bytes) -> None:
        draft = OpenRouterProvider(transport=ok_transport).generate_draft(_request(pdf_bytes))
        assert draft == '{"openapi":"3.0.3"}'

        sent = ok_transport.requests[0]
        assert str(sent.url) == "https://openrouter.ai/api/v1/chat/completions"
        assert sent.headers["Authorization"] == "Bearer sk-or-test"

        body = json.loads(sent.content)
        text_part, file_part = body["messages"][0]["content"]
        assert text_part["type"] == "text"
        assert "Title: Billing" in text_part["text"]
        assert file_part == {
            "type": "file",
            "file": {
                "filename": "document.pdf",
                "file_data": "data:application/pdf;base64,"
                + base64.b64encode(pdf_bytes).decode("ascii"),
            },
        }

    def test_default_plugins(self, ok_transport, pdf_bytes: bytes) -> None:
        OpenRouterProvider(transport=ok_transport).generate_draft(_request(pdf_bytes))
        body = json.loads(ok_transport.requests[0].content)
        assert body["plugins"] == DEFAULT_PLUGINS
        assert body["model"] == OpenRouterProvider.default_model

    def test_plugins_override_and_omit(self, ok_transport, pdf_bytes: bytes) -> None:
        provider = OpenRouterProvider(transport=ok_transport)
        custom = [{"id": "file-parser", "pdf": {"engine": "mistral-ocr"}}]
        provider.generate_draft(_request(pdf_bytes, options={"plugins": custom}))
        provider.generate_draft(_request(pdf_bytes, options={"plugins": None}))

        first, second = (json.loads(r.content) for r in ok_transport.requests)
        assert first["plugins"] == custom
        assert "plugins" not in second

    def test_attribution_headers(self, ok_transport, pdf_bytes: bytes) -> None:
        provider = OpenRouterProvider(
            transport=ok_transport, referer="https://docs.example.com", app_title="API Docs"
        )
        provider.generate_draft(_request(pdf_bytes))
        headers = ok_transport.requests[0].headers
        assert headers["HTTP-Referer"] == "https://docs.example.com"
        assert headers["X-Title"] == "API Docs"

    def test_request_attribution_wins(self, ok_transport, pdf_bytes: bytes) -> None:
        provider = OpenRouterProvider(transport=ok_transport, app_title="API Docs")
        provider.generate_draft(
            _request(pdf_bytes, referer="https://portal.example.com", app_title="Portal")
        )
        headers = ok_transport.requests[0].headers
        assert headers["HTTP-Referer"] == "https://portal.example.com"
        assert headers["X-Title"] == "Portal"

    def test_no_attribution_headers_by_default(self, ok_transport, pdf_bytes: bytes) -> None:
        OpenRouterProvider(transport=ok_transport).generate_draft(_request(pdf_bytes))
        headers = ok_transport.requests[0].headers
        assert "HTTP-Referer" not in headers
        assert "X-Title" not in headers


class TestOpenRouterErrors:
    def test_blank_key(self, ok_transport, pdf_bytes: bytes) -> None:
        with pytest.raises(ConfigurationError, match="openrouter.api_key"):
            OpenRouterProvider(transport=ok_transport).generate_draft(
                _request(pdf_bytes, api_key="")
            )
        assert ok_transport.requests == []

    def test_error_status(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(lambda r: httpx.Response(402, text="Insufficient credits"))
        with pytest.raises(ProviderError) as exc_info:
            OpenRouterProvider(transport=transport).generate_draft(_request(pdf_bytes))
        assert exc_info.value.status_code == 402
        assert exc_info.value.body == "Insufficient credits"
        assert str(exc_info.value) == "OpenRouter 402 -> Insufficient credits"
