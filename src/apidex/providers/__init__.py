"""Draft-generation providers: one strategy per LLM service plus the registry."""

from apidex.providers.base import Provider
from apidex.providers.gemini import INLINE_LIMIT_BYTES, GeminiProvider
from apidex.providers.openai import OpenAIProvider
from apidex.providers.openrouter import OpenRouterProvider
from apidex.providers.registry import ProviderRegistry

__all__ = [
    "INLINE_LIMIT_BYTES",
    "GeminiProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "Provider",
    "ProviderRegistry",
]
