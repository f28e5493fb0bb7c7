"""Provider registry: dispatch draft generation by :class:`~apidex.models.ProviderId`.

The registry is built once from the full set of strategies and never
mutated afterwards, so it is safe to share between threads without
locking.  When two strategies claim the same identity the first one wins
and the duplicate is logged.

Example::

    registry = ProviderRegistry.default(settings)
    draft = registry.generate(request)
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import httpx

from apidex.exceptions import ConfigurationError, ProviderError
from apidex.models import LlmGenerateRequest, ProviderId, Settings
from apidex.providers.base import DEFAULT_TIMEOUT, Provider
from apidex.providers.gemini import GeminiProvider
from apidex.providers.openai import OpenAIProvider
from apidex.providers.openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Read-only mapping from provider identity to strategy."""

    def __init__(self, providers: Iterable[Provider]) -> None:
        registered: dict[ProviderId, Provider] = {}
        for provider in providers:
            identity = provider.identity()
            if identity in registered:
                logger.warning(
                    "Duplicate provider for %s: keeping %s, ignoring %s",
                    identity.value,
                    type(registered[identity]).__name__,
                    type(provider).__name__,
                )
                continue
            registered[identity] = provider
        self._providers: Mapping[ProviderId, Provider] = MappingProxyType(registered)
        logger.debug("Registered providers: %s", ", ".join(p.value for p in registered))

    @classmethod
    def default(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> ProviderRegistry:
        """Build the registry of the three built-in strategies."""
        timeout = settings.request_timeout if settings else DEFAULT_TIMEOUT
        return cls(
            [
                OpenAIProvider(timeout=timeout, transport=transport),
                OpenRouterProvider(timeout=timeout, transport=transport),
                GeminiProvider(timeout=timeout, transport=transport),
            ]
        )

    def providers(self) -> list[ProviderId]:
        return list(self._providers)

    def get(self, provider_id: ProviderId) -> Provider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ConfigurationError(
                f"No provider registered for: {provider_id.value}", setting="provider"
            )
        return provider

    def generate(self, request: LlmGenerateRequest) -> str:
        """Dispatch *request* to its provider and return the raw draft text.

        Raises:
            ConfigurationError: If ``request.provider`` is unset or has no
                registered strategy.  No network call is made.
            ProviderError: If the strategy fails or returns blank text.
        """
        if request.provider is None:
            raise ConfigurationError("provider is required", setting="provider")
        provider = self.get(request.provider)
        content = provider.generate_draft(request)
        if content is None or not content.strip():
            raise ProviderError(f"{provider.label} returned empty content")
        return content
