"""Provider adapter registry.

``get_provider_adapter`` is the single dispatch point from a provider id to
its wire-format adapter; adding a provider means adding one entry here.
"""

from __future__ import annotations

from typing import Dict, Type

from tabwright.core.config import ProviderId
from tabwright.core.provider_catalog import get_provider_config
from tabwright.core.providers.anthropic import AnthropicAdapter
from tabwright.core.providers.base import EnrichedReply, ProviderAdapter, RequestOptions
from tabwright.core.providers.gemini import GeminiAdapter
from tabwright.core.providers.openai import (
    OpenAIAdapter,
    OpenAICompatibleAdapter,
    OpenRouterAdapter,
)

_ADAPTERS: Dict[ProviderId, Type[ProviderAdapter]] = {
    ProviderId.OPENROUTER: OpenRouterAdapter,
    ProviderId.OPENAI: OpenAIAdapter,
    ProviderId.ANTHROPIC: AnthropicAdapter,
    ProviderId.GEMINI: GeminiAdapter,
    ProviderId.GROQ: OpenAICompatibleAdapter,
    ProviderId.CUSTOM: OpenAICompatibleAdapter,
}


def get_provider_adapter(provider: ProviderId) -> ProviderAdapter:
    """Return the adapter for the given provider."""
    provider = ProviderId(provider)
    return _ADAPTERS[provider](get_provider_config(provider))


__all__ = ["EnrichedReply", "ProviderAdapter", "RequestOptions", "get_provider_adapter"]
