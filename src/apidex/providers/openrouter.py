"""OpenRouter chat-completions strategy.

The PDF travels as a ``file`` content part holding a
``data:application/pdf;base64,...`` URL next to the instruction text.
OpenRouter's ``file-parser`` plugin turns it into text for models without
native PDF input; callers can override the plugin list through
``options["plugins"]`` (``None`` omits it).
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

import httpx

from apidex.models import LlmGenerateRequest, ProviderId
from apidex.providers.base import DEFAULT_TIMEOUT, Provider, chat_completion_text
from apidex.providers.prompts import build_pdf_prompt

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS: list[dict[str, Any]] = [{"id": "file-parser", "pdf": {"engine": "pdf-text"}}]


class OpenRouterProvider(Provider):
    """OpenRouter strategy.

    Args:
        referer: Optional ``HTTP-Referer`` attribution header.
        app_title: Optional ``X-Title`` attribution header.

    Attribution carried on the request takes precedence over the
    constructor values.
    """

    provider_id = ProviderId.OPENROUTER
    label = "OpenRouter"
    default_url = "https://openrouter.ai/api/v1/chat/completions"
    default_model = "meta-llama/llama-3.1-70b-instruct:free"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        referer: Optional[str] = None,
        app_title: Optional[str] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self.referer = referer
        self.app_title = app_title

    def generate_draft(self, request: LlmGenerateRequest) -> str:
        api_url = self.resolve_url(request)
        model = self.resolve_model(request)
        api_key = self.require_api_key(request)

        pdf_b64 = base64.b64encode(request.pdf_bytes).decode("ascii")
        data_url = f"data:application/pdf;base64,{pdf_b64}"
        prompt = build_pdf_prompt(request.title, request.version, request.description)
        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "file",
                            "file": {"filename": "document.pdf", "file_data": data_url},
                        },
                    ],
                }
            ],
        }
        plugins = request.options.get("plugins", DEFAULT_PLUGINS)
        if plugins is not None:
            payload["plugins"] = plugins
        payload["temperature"] = request.options.get("temperature", 0)

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        referer = request.referer or self.referer
        app_title = request.app_title or self.app_title
        if referer:
            headers["HTTP-Referer"] = referer
        if app_title:
            headers["X-Title"] = app_title

        logger.info(
            "Requesting draft from OpenRouter model %s (%d PDF bytes inline)",
            model,
            len(request.pdf_bytes),
        )
        with self.client() as client:
            response = self.post(client, api_url, headers=headers, json_body=payload)
        return self.finish(chat_completion_text(self.label, self.parse_json(response)))
