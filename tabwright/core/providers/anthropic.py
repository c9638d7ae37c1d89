"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from tabwright.core.providers.base import (
    EnrichedReply,
    ProviderAdapter,
    RequestOptions,
    as_dict,
    as_list,
    join_texts,
)
from tabwright.utils.messages import ChatMessage, split_system_prompt

ANTHROPIC_VERSION = "2023-06-01"
WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}
# Extended thinking only accepts this temperature.
THINKING_TEMPERATURE = 1.0
_MIN_TEXT_TOKENS = 1024


def _blocks(payload: Any) -> List[Dict[str, Any]]:
    return [as_dict(block) for block in as_list(as_dict(payload).get("content"))]


class AnthropicAdapter(ProviderAdapter):
    """System prompt travels in a dedicated field; credential in ``x-api-key``."""

    def endpoint_url(
        self,
        base_url: str,
        model: str,
        credential: Optional[str],
        options: RequestOptions,
    ) -> str:
        return f"{base_url.rstrip('/')}/messages"

    def headers(self, credential: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        if credential:
            headers["x-api-key"] = credential
        return headers

    def format_request(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        options: RequestOptions,
    ) -> Dict[str, Any]:
        system_prompt, conversation = split_system_prompt(messages)
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [message.to_dict() for message in conversation],
            "system": system_prompt,
        }
        if options.thinking:
            budget = max(1024, options.thinking_budget)
            body["thinking"] = {"type": "enabled", "budget_tokens": budget}
            body["temperature"] = THINKING_TEMPERATURE
            # max_tokens must leave room for the answer after the thinking budget.
            body["max_tokens"] = max(options.max_tokens, budget + _MIN_TEXT_TOKENS)
        if options.web_search:
            body["tools"] = [dict(WEB_SEARCH_TOOL)]
        return body

    def parse_text(self, payload: Any) -> str:
        texts = [
            block.get("text", "")
            for block in _blocks(payload)
            if block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        return join_texts(texts)

    def parse_enriched(self, payload: Any) -> EnrichedReply:
        texts: List[str] = []
        reasoning: List[str] = []
        for block in _blocks(payload):
            block_type = block.get("type")
            if block_type == "thinking":
                thinking = block.get("thinking")
                if isinstance(thinking, str) and thinking.strip():
                    reasoning.append(thinking.strip())
            elif block_type == "text":
                text = block.get("text")
                if isinstance(text, str):
                    texts.append(text)
        return EnrichedReply(text=join_texts(texts), reasoning_blocks=tuple(reasoning))
