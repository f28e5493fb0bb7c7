"""Abstract base class and shared HTTP plumbing for draft-generation providers.

Every provider implements one contract: given PDF bytes and document
metadata in an :class:`~apidex.models.LlmGenerateRequest`, return the raw
draft specification text.  Subclasses set the class-level identity and
defaults and implement :meth:`Provider.generate_draft`; the helpers here
apply defaults, enforce the credential, send blocking HTTP calls through
:mod:`httpx`, and turn transport and status failures into
:class:`~apidex.exceptions.ProviderError`.

Providers never retry and never log credentials.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

import httpx

from apidex.exceptions import ConfigurationError, ProviderError
from apidex.models import LlmGenerateRequest, ProviderId
from apidex.normalizer import strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class Provider(ABC):
    """Base class for all draft-generation strategies.

    Args:
        timeout: Seconds allowed for each HTTP call (connect, read, write).
        transport: Optional :mod:`httpx` transport, used by tests to
            substitute :class:`httpx.MockTransport`.

    Class Attributes:
        provider_id: Registry key of the strategy.
        label: Human-readable name used in error messages.
        default_url: Endpoint used when the request leaves ``api_url`` blank.
        default_model: Model used when the request leaves ``model`` blank.
    """

    provider_id: ClassVar[ProviderId]
    label: ClassVar[str]
    default_url: ClassVar[str]
    default_model: ClassVar[str]

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    def identity(self) -> ProviderId:
        return self.provider_id

    @abstractmethod
    def generate_draft(self, request: LlmGenerateRequest) -> str:
        """Return the draft specification text generated from ``request.pdf_bytes``.

        Raises:
            ConfigurationError: If the request carries no credential.
            ProviderError: On a non-success response, a transport failure,
                or a response without usable text.
        """
        ...

    # ------------------------------------------------------------------ #
    # Helpers for subclasses
    # ------------------------------------------------------------------ #

    def resolve_url(self, request: LlmGenerateRequest) -> str:
        return _blank_to(request.api_url, self.default_url)

    def resolve_model(self, request: LlmGenerateRequest) -> str:
        return _blank_to(request.model, self.default_model)

    def require_api_key(self, request: LlmGenerateRequest) -> str:
        api_key = (request.api_key or "").strip()
        if not api_key:
            raise ConfigurationError(
                f"{self.label} API key is required for this provider "
                f"(set {self.provider_id.value}.api_key)",
                setting=f"{self.provider_id.value}.api_key",
            )
        return api_key

    def client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def post(
        self,
        client: httpx.Client,
        url: str,
        *,
        headers: dict[str, str],
        json_body: Optional[Any] = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        """Send one POST and return the response if its status is 2xx.

        Raises:
            ProviderError: On a transport failure (no status) or a non-2xx
                status (status and body carried verbatim).
        """
        try:
            if json_body is not None:
                response = client.post(url, headers=headers, json=json_body)
            else:
                response = client.post(url, headers=headers, content=content)
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.label} request failed: {exc}") from exc

        if not response.is_success:
            body = response.text
            logger.warning("%s responded with HTTP %d", self.label, response.status_code)
            raise ProviderError(
                f"{self.label} {response.status_code} -> {body}",
                status_code=response.status_code,
                body=body,
            )
        return response

    def parse_json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.label} returned a non-JSON response",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.label} returned an unexpected response shape",
                status_code=response.status_code,
                body=response.text,
            )
        return data

    def finish(self, text: Optional[str]) -> str:
        """Strip a residual code fence and reject empty output."""
        cleaned = strip_code_fences(text)
        if cleaned is None or not cleaned.strip():
            raise ProviderError(f"{self.label} returned empty content")
        return cleaned


def chat_completion_text(label: str, data: dict[str, Any]) -> Optional[str]:
    """Return ``choices[0].message.content`` from a chat-completions response."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProviderError(f"{label} returned no choices", body=str(data))
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise ProviderError(f"{label} returned a choice without a message", body=str(data))
    content = message.get("content")
    if content is not None and not isinstance(content, str):
        raise ProviderError(f"{label} returned non-text message content", body=str(data))
    return content


def _blank_to(value: Optional[str], default: str) -> str:
    if value is None or not value.strip():
        return default
    return value.strip()
