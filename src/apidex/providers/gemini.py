"""Google Gemini ``generateContent`` strategy.

PDFs smaller than :data:`INLINE_LIMIT_BYTES` are sent inline as a base64
``inlineData`` part.  Larger PDFs go through the resumable Files API upload
in two sequential calls:

1. ``POST {base}/upload/v1beta/files`` with ``X-Goog-Upload-Command: start``
   opens a session; the upload URL comes back in the ``X-Goog-Upload-URL``
   response header.
2. ``POST`` the raw bytes to that URL with
   ``X-Goog-Upload-Command: upload, finalize``; the JSON response carries
   ``file.uri``.

The generation request then cites the file by ``file_data.file_uri``.  The
credential is always sent in the ``x-goog-api-key`` header, never in the
query string.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from apidex.exceptions import ProviderError
from apidex.models import LlmGenerateRequest, ProviderId
from apidex.providers.base import Provider
from apidex.providers.prompts import build_pdf_prompt

logger = logging.getLogger(__name__)

INLINE_LIMIT_BYTES = 20 * 1024 * 1024
"""PDFs of this size or larger are uploaded through the Files API."""

_PDF_MIME = "application/pdf"


class GeminiProvider(Provider):
    """Gemini strategy.  ``api_url`` overrides the API base URL, not the full endpoint."""

    provider_id = ProviderId.GEMINI
    label = "Gemini"
    default_url = "https://generativelanguage.googleapis.com"
    default_model = "gemini-1.5-flash"

    def generate_draft(self, request: LlmGenerateRequest) -> str:
        base_url = self.resolve_url(request).rstrip("/")
        model = self.resolve_model(request)
        api_key = self.require_api_key(request)
        prompt = build_pdf_prompt(request.title, request.version, request.description)

        with self.client() as client:
            if len(request.pdf_bytes) >= INLINE_LIMIT_BYTES:
                logger.info(
                    "PDF is %d bytes; uploading through the Gemini Files API",
                    len(request.pdf_bytes),
                )
                file_uri = self._upload(client, base_url, api_key, request)
                pdf_part: dict[str, Any] = {
                    "file_data": {"mime_type": _PDF_MIME, "file_uri": file_uri}
                }
            else:
                logger.info("Sending %d PDF bytes inline to Gemini", len(request.pdf_bytes))
                pdf_part = {
                    "inlineData": {
                        "mimeType": _PDF_MIME,
                        "data": base64.b64encode(request.pdf_bytes).decode("ascii"),
                    }
                }

            payload = {"contents": [{"parts": [{"text": prompt}, pdf_part]}]}
            response = self.post(
                client,
                f"{base_url}/v1beta/models/{model}:generateContent",
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                json_body=payload,
            )

        return self.finish(self._extract_text(self.parse_json(response)))

    def _upload(
        self,
        client: httpx.Client,
        base_url: str,
        api_key: str,
        request: LlmGenerateRequest,
    ) -> str:
        """Run the two-phase resumable upload and return the server-assigned file URI."""
        start = self.post(
            client,
            f"{base_url}/upload/v1beta/files",
            headers={
                "x-goog-api-key": api_key,
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(len(request.pdf_bytes)),
                "X-Goog-Upload-Header-Content-Type": _PDF_MIME,
                "Content-Type": "application/json",
            },
            json_body={"file": {"display_name": request.title or "document.pdf"}},
        )
        upload_url = start.headers.get("X-Goog-Upload-URL", "").strip()
        if not upload_url:
            raise ProviderError(
                "No X-Goog-Upload-URL from Gemini",
                status_code=start.status_code,
                body=start.text,
            )

        finished = self.post(
            client,
            upload_url,
            headers={
                "X-Goog-Upload-Offset": "0",
                "X-Goog-Upload-Command": "upload, finalize",
                "Content-Type": _PDF_MIME,
            },
            content=request.pdf_bytes,
        )
        data = self.parse_json(finished)
        file_info = data.get("file")
        file_uri = file_info.get("uri") if isinstance(file_info, dict) else None
        if not file_uri:
            raise ProviderError(
                "Gemini upload failed: missing file.uri",
                status_code=finished.status_code,
                body=finished.text,
            )
        logger.debug("Gemini upload finalized as %s", file_uri)
        return str(file_uri)

    def _extract_text(self, data: dict[str, Any]) -> str:
        """Concatenate ``candidates[0].content.parts[*].text``."""
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise ProviderError("Gemini returned no candidates", body=str(data))
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        return "".join(
            part["text"]
            for part in parts or []
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
