"""OpenAI chat-completions strategy.

The PDF is base64-encoded and pasted into the user message text; the chat
completions API has no separate document part for this model family.
"""

from __future__ import annotations

import base64
import logging

from apidex.models import LlmGenerateRequest, ProviderId
from apidex.providers.base import Provider, chat_completion_text
from apidex.providers.prompts import build_inline_prompt

logger = logging.getLogger(__name__)


class OpenAIProvider(Provider):
    provider_id = ProviderId.OPENAI
    label = "OpenAI"
    default_url = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o-mini"

    def generate_draft(self, request: LlmGenerateRequest) -> str:
        api_url = self.resolve_url(request)
        model = self.resolve_model(request)
        api_key = self.require_api_key(request)

        pdf_b64 = base64.b64encode(request.pdf_bytes).decode("ascii")
        prompt = build_inline_prompt(request.title, request.version, request.description, pdf_b64)
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": request.options.get("temperature", 0),
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        logger.info(
            "Requesting draft from OpenAI model %s (%d PDF bytes inline)",
            model,
            len(request.pdf_bytes),
        )
        with self.client() as client:
            response = self.post(client, api_url, headers=headers, json_body=payload)
        return self.finish(chat_completion_text(self.label, self.parse_json(response)))
