"""Shared abstractions for provider adapters.

An adapter is a stateless mapping between the normalized request/response
shapes used by the orchestration layer and one provider's wire format. It
never performs I/O, so every adapter can be exercised without a network.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tabwright.core.provider_catalog import ProviderConfig
from tabwright.core.providers.error_mapping import extract_error_message
from tabwright.utils.messages import ChatMessage


@dataclass(frozen=True)
class RequestOptions:
    """Per-call generation options."""

    max_tokens: int = 1024
    temperature: float = 0.7
    # Seconds before the in-flight request is cancelled.
    timeout: float = 30.0
    enriched: bool = False
    thinking: bool = False
    thinking_budget: int = 4096
    web_search: bool = False


@dataclass(frozen=True)
class EnrichedReply:
    """Model answer split into narrative text and reasoning/trace blocks."""

    text: str
    reasoning_blocks: Tuple[str, ...] = ()


class ProviderAdapter(ABC):
    """Abstract base for provider wire-format adapters."""

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @property
    def provider_id(self) -> str:
        return self.config.id.value

    @abstractmethod
    def endpoint_url(
        self,
        base_url: str,
        model: str,
        credential: Optional[str],
        options: RequestOptions,
    ) -> str:
        """Return the full URL to POST to."""

    @abstractmethod
    def headers(self, credential: Optional[str]) -> Dict[str, str]:
        """Return request headers, including credentials where the provider expects them."""

    @abstractmethod
    def format_request(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        options: RequestOptions,
    ) -> Dict[str, Any]:
        """Build the JSON request body."""

    @abstractmethod
    def parse_text(self, payload: Any) -> str:
        """Return the answer text, or an empty string when none is present."""

    def parse_enriched(self, payload: Any) -> EnrichedReply:
        """Split the answer into text and reasoning blocks.

        Providers without a reasoning trace return the plain text.
        """
        return EnrichedReply(text=self.parse_text(payload))

    def error_message(self, payload: Any, raw_text: str = "") -> str:
        return extract_error_message(payload, raw_text)


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def first_dict(value: Any) -> Dict[str, Any]:
    items = as_list(value)
    return as_dict(items[0]) if items else {}


def join_texts(parts: Sequence[str]) -> str:
    return "\n\n".join(part.strip() for part in parts if isinstance(part, str) and part.strip())
