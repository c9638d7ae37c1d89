"""Gemini generateContent adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

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


def _collect_parts(payload: Any) -> List[Dict[str, Any]]:
    """Return the parts of the first candidate regardless of missing fields."""
    candidate = first_dict(as_dict(payload).get("candidates"))
    content = as_dict(candidate.get("content"))
    return [as_dict(part) for part in as_list(content.get("parts"))]


def _split_parts(parts: List[Dict[str, Any]]) -> Tuple[List[str], List[str]]:
    texts: List[str] = []
    thoughts: List[str] = []
    for part in parts:
        text = part.get("text")
        if not isinstance(text, str):
            continue
        if part.get("thought"):
            thoughts.append(text)
        else:
            texts.append(text)
    return texts, thoughts


class GeminiAdapter(ProviderAdapter):
    """Credential travels as a query parameter; roles map to user/model."""

    def endpoint_url(
        self,
        base_url: str,
        model: str,
        credential: Optional[str],
        options: RequestOptions,
    ) -> str:
        url = f"{base_url.rstrip('/')}/models/{quote(model, safe='-._')}:generateContent"
        if credential:
            url += f"?key={quote(credential, safe='')}"
        return url

    def headers(self, credential: Optional[str]) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def format_request(
        self,
        messages: Sequence[ChatMessage],
        model: str,
        options: RequestOptions,
    ) -> Dict[str, Any]:
        system_prompt, conversation = split_system_prompt(messages)
        generation_config: Dict[str, Any] = {
            "maxOutputTokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if options.thinking:
            generation_config["thinkingConfig"] = {
                "includeThoughts": True,
                "thinkingBudget": options.thinking_budget,
            }
        body: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if message.role == "assistant" else "user",
                    "parts": [{"text": message.content}],
                }
                for message in conversation
            ],
            "generationConfig": generation_config,
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if options.web_search:
            body["tools"] = [{"google_search": {}}]
        return body

    def parse_text(self, payload: Any) -> str:
        texts, _ = _split_parts(_collect_parts(payload))
        return "".join(texts).strip()

    def parse_enriched(self, payload: Any) -> EnrichedReply:
        texts, thoughts = _split_parts(_collect_parts(payload))
        reasoning = tuple(thought.strip() for thought in thoughts if thought.strip())
        return EnrichedReply(text="".join(texts).strip(), reasoning_blocks=reasoning)
