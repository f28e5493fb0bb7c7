"""Tests for apidex.providers.gemini -- inline requests and the two-phase upload."""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest

from apidex.exceptions import ConfigurationError, ProviderError
from apidex.models import LlmGenerateRequest, ProviderId
from apidex.providers import INLINE_LIMIT_BYTES, GeminiProvider

UPLOAD_URL = "https://generativelanguage.googleapis.com/upload/v1beta/files?upload_id=abc123"
FILE_URI = "https://generativelanguage.googleapis.com/v1beta/files/xyz789"


def _candidates(*texts: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


def _request(pdf_bytes: bytes, **overrides: Any) -> LlmGenerateRequest:
    fields: dict[str, Any] = {
        "provider": ProviderId.GEMINI,
        "api_key": "gemini-key",
        "pdf_bytes": pdf_bytes,
        "title": "Billing",
        "version": "1.0.0",
    }
    fields.update(overrides)
    return LlmGenerateRequest(**fields)


def _large_pdf(size: int = INLINE_LIMIT_BYTES) -> bytes:
    return b"%PDF-1.4\n" + b"0" * (size - 9)


def _upload_handler(
    start_headers: dict[str, str] | None = None,
    finalize_json: dict[str, Any] | None = None,
):
    """Route start, finalize and generate calls the way the Files API does."""
    if start_headers is None:
        start_headers = {"X-Goog-Upload-URL": UPLOAD_URL}
    if finalize_json is None:
        finalize_json = {"file": {"uri": FILE_URI, "mimeType": "application/pdf"}}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/upload/v1beta/files" and "upload_id" not in str(request.url):
            return httpx.Response(200, headers=start_headers, json={})
        if "upload_id" in str(request.url):
            return httpx.Response(200, json=finalize_json)
        return httpx.Response(200, json=_candidates('{"openapi":"3.0.3","paths":{}}'))

    return handler


class TestGeminiInline:
    def test_small_pdf_sent_inline(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(
            lambda r: httpx.Response(200, json=_candidates('{"openapi":"3.0.3"}'))
        )
        draft = GeminiProvider(transport=transport).generate_draft(_request(pdf_bytes))
        assert draft == '{"openapi":"3.0.3"}'

        (sent,) = transport.requests
        assert str(sent.url) == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-1.5-flash:generateContent"
        )
        assert sent.headers["x-goog-api-key"] == "gemini-key"
        assert "key=" not in str(sent.url)

        text_part, pdf_part = json.loads(sent.content)["contents"][0]["parts"]
        assert "Title: Billing" in text_part["text"]
        assert pdf_part == {
            "inlineData": {
                "mimeType": "application/pdf",
                "data": base64.b64encode(pdf_bytes).decode("ascii"),
            }
        }

    def test_custom_base_url_and_model(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(lambda r: httpx.Response(200, json=_candidates("{}")))
        GeminiProvider(transport=transport).generate_draft(
            _request(pdf_bytes, api_url="https://gemini.proxy.local/", model="gemini-1.5-pro")
        )
        assert str(transport.requests[0].url) == (
            "https://gemini.proxy.local/v1beta/models/gemini-1.5-pro:generateContent"
        )

    def test_parts_are_concatenated(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(
            lambda r: httpx.Response(200, json=_candidates('{"openapi":', '"3.0.3"}'))
        )
        assert GeminiProvider(transport=transport).generate_draft(_request(pdf_bytes)) == (
            '{"openapi":"3.0.3"}'
        )

    def test_just_below_limit_is_inline(
        self, recording_transport, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("apidex.providers.gemini.INLINE_LIMIT_BYTES", 64)
        transport = recording_transport(lambda r: httpx.Response(200, json=_candidates("{}")))
        GeminiProvider(transport=transport).generate_draft(_request(_large_pdf(63)))
        assert len(transport.requests) == 1
        assert "inlineData" in transport.requests[0].content.decode()

    def test_exactly_at_limit_uploads(
        self, recording_transport, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("apidex.providers.gemini.INLINE_LIMIT_BYTES", 64)
        transport = recording_transport(_upload_handler())
        GeminiProvider(transport=transport).generate_draft(_request(_large_pdf(64)))
        assert len(transport.requests) == 3


class TestGeminiUpload:
    def test_twenty_mib_pdf_uses_two_phase_upload(self, recording_transport) -> None:
        pdf = _large_pdf()
        assert len(pdf) == 20 * 1024 * 1024
        transport = recording_transport(_upload_handler())

        draft = GeminiProvider(transport=transport).generate_draft(_request(pdf))
        assert draft == '{"openapi":"3.0.3","paths":{}}'

        start, finalize, generate = transport.requests

        assert str(start.url) == "https://generativelanguage.googleapis.com/upload/v1beta/files"
        assert start.headers["X-Goog-Upload-Protocol"] == "resumable"
        assert start.headers["X-Goog-Upload-Command"] == "start"
        assert start.headers["X-Goog-Upload-Header-Content-Length"] == str(len(pdf))
        assert start.headers["X-Goog-Upload-Header-Content-Type"] == "application/pdf"
        assert start.headers["x-goog-api-key"] == "gemini-key"
        assert json.loads(start.content) == {"file": {"display_name": "Billing"}}

        assert str(finalize.url) == UPLOAD_URL
        assert finalize.headers["X-Goog-Upload-Offset"] == "0"
        assert finalize.headers["X-Goog-Upload-Command"] == "upload, finalize"
        assert finalize.headers["Content-Type"] == "application/pdf"
        assert finalize.content == pdf

        parts = json.loads(generate.content)["contents"][0]["parts"]
        assert parts[1] == {"file_data": {"mime_type": "application/pdf", "file_uri": FILE_URI}}

    def test_missing_upload_url_header(self, recording_transport) -> None:
        transport = recording_transport(_upload_handler(start_headers={}))
        with pytest.raises(ProviderError, match="No X-Goog-Upload-URL from Gemini"):
            GeminiProvider(transport=transport).generate_draft(_request(_large_pdf()))
        assert len(transport.requests) == 1

    def test_missing_file_uri(self, recording_transport) -> None:
        transport = recording_transport(_upload_handler(finalize_json={"file": {}}))
        with pytest.raises(ProviderError, match="missing file.uri"):
            GeminiProvider(transport=transport).generate_draft(_request(_large_pdf()))
        assert len(transport.requests) == 2

    def test_start_error_status(self, recording_transport) -> None:
        transport = recording_transport(lambda r: httpx.Response(403, text="API key not valid"))
        with pytest.raises(ProviderError) as exc_info:
            GeminiProvider(transport=transport).generate_draft(_request(_large_pdf()))
        assert exc_info.value.status_code == 403
        assert exc_info.value.body == "API key not valid"


class TestGeminiErrors:
    def test_blank_key(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(lambda r: httpx.Response(200, json=_candidates("{}")))
        with pytest.raises(ConfigurationError, match="gemini.api_key"):
            GeminiProvider(transport=transport).generate_draft(_request(pdf_bytes, api_key=" "))
        assert transport.requests == []

    def test_no_candidates(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(lambda r: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(ProviderError, match="no candidates"):
            GeminiProvider(transport=transport).generate_draft(_request(pdf_bytes))

    def test_candidate_without_text(self, recording_transport, pdf_bytes: bytes) -> None:
        transport = recording_transport(
            lambda r: httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]})
        )
        with pytest.raises(ProviderError, match="Gemini returned empty content"):
            GeminiProvider(transport=transport).generate_draft(_request(pdf_bytes))
