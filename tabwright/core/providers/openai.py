"""OpenAI-compatible adapters (OpenRouter, OpenAI, Groq, custom endpoints).

Plain calls use the chat-completions shape. The OpenAI adapter switches to
the Responses API for enriched calls because that is where reasoning
summaries and the hosted web-search tool live.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from tabwright.core.provider_catalog import resolve_token_limit_param
from tabwright.core.providers.base import (
    EnrichedReply,
    ProviderAdapter,
    RequestOptions,
    as_dict,
    as_list,
    first_dict,
    join_texts,
)
from tabwright.utils.messages import ChatMessage, split_system_prompt

OPENROUTER_REFERER = "http://localhost"
OPENROUTER_TITLE = "tabwright"


def _flatten_content(content: Any) -> str:
    """Flatten assorted message content shapes into plain text."""
    if isinstance(content, str):
        return content
    texts: List[str] = []
    for part in as_list(content):
        if isinstance(part, str):
            texts.append(part)
            continue
        text = as_dict(part).get("text")
        if isinstance(text, str):
            texts.append(text)
    return "".join(texts)


def _responses_reasoning(item: Dict[str, Any]) -> List[str]:
    snippets: List[str] = []
    for summary in as_list(item.get("summary")):
        text = as_dict(summary).get("text")
        if isinstance(text, str) and text.strip():
            snippets.append(text.strip())
    for content in as_list(item.get("content")):
        text = as_dict(content).get("text")
        if isinstance(text, str) and text.strip():
            snippets.append(text.strip())
    return snippets


def _responses_message_text(item: Dict[str, Any]) -> List[str]:
    texts: List[str] = []
    for part in as_list(item.get("content")):
        part_dict = as_dict(part)
        part_type = str(part_dict.get("type") or "").lower()
        if part_type in {"output_text", "text"}:
            text = part_dict.get("text")
            if isinstance(text, str):
                texts.append(text)
        elif part_type == "refusal":
            refusal = part_dict.get("refusal")
            if isinstance(refusal, str):
                texts.append(refusal)
    return texts


def parse_responses_payload(payload: Any) -> EnrichedReply:
    """Handle both Responses API shapes: ``output_text`` or an ``output`` item array."""
    data = as_dict(payload)
    texts: List[str] = []
    reasoning: List[str] = []
    for item in as_list(data.get("output")):
        item_dict = as_dict(item)
        item_type = str(item_dict.get("type") or "").lower()
        if item_type == "reasoning":
            reasoning.extend(_responses_reasoning(item_dict))
        elif item_type == "message":
            texts.extend(_responses_message_text(item_dict))

    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        text = output_text.strip()
    elif isinstance(output_text, list) and output_text:
        text = join_texts([t for t in output_text if isinstance(t, str)])
    else:
        text = join_texts(texts)
    return EnrichedReply(text=text, reasoning_blocks=tuple(reasoning))


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions wire format with bearer authentication."""

    def endpoint_url(
        self,
        base_url: str,
        model: str,
        credential: Optional[str],
        options: RequestOptions,
    ) -> str:
        return f"{base_url.rstrip('/')}/chat/completions"

    def headers(self, credential: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        return headers

    def format_request(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        options: RequestOptions,
    ) -> Dict[str, Any]:
        token_param = resolve_token_limit_param(self.config, model)
        return {
            "model": model,
            "messages": [message.to_dict() for message in messages],
            token_param: options.max_tokens,
            "temperature": options.temperature,
        }

    def parse_text(self, payload: Any) -> str:
        data = as_dict(payload)
        choice = first_dict(data.get("choices"))
        if choice:
            message = as_dict(choice.get("message"))
            content = _flatten_content(message.get("content"))
            if not content and isinstance(choice.get("text"), str):
                content = choice["text"]
            return content
        # Some compatible servers answer in the Responses shape.
        if "output" in data or "output_text" in data:
            return parse_responses_payload(data).text
        return ""


class OpenRouterAdapter(OpenAICompatibleAdapter):
    """OpenRouter adds attribution headers on top of the compatible format."""

    def headers(self, credential: Optional[str]) -> Dict[str, str]:
        headers = super().headers(credential)
        headers["HTTP-Referer"] = OPENROUTER_REFERER
        headers["X-Title"] = OPENROUTER_TITLE
        return headers


class OpenAIAdapter(OpenAICompatibleAdapter):
    """OpenAI; enriched calls go through the Responses API."""

    def endpoint_url(
        self,
        base_url: str,
        model: str,
        credential: Optional[str],
        options: RequestOptions,
    ) -> str:
        if options.enriched:
            return f"{base_url.rstrip('/')}/responses"
        return super().endpoint_url(base_url, model, credential, options)

    def format_request(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        options: RequestOptions,
    ) -> Dict[str, Any]:
        if not options.enriched:
            return super().format_request(messages, model, options)

        instructions, conversation = split_system_prompt(messages)
        body: Dict[str, Any] = {
            "model": model,
            "input": [message.to_dict() for message in conversation],
            "max_output_tokens": options.max_tokens,
        }
        if instructions:
            body["instructions"] = instructions
        if options.thinking:
            # Reasoning models reject sampling parameters.
            body["reasoning"] = {"effort": "medium", "summary": "auto"}
        else:
            body["temperature"] = options.temperature
        if options.web_search:
            body["tools"] = [{"type": "web_search_preview"}]
        return body

    def parse_enriched(self, payload: Any) -> EnrichedReply:
        data = as_dict(payload)
        if "choices" in data:
            return EnrichedReply(text=self.parse_text(data))
        return parse_responses_payload(data)
