"""Value objects passed between the orchestration layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Mapping, Tuple
from urllib.parse import urlparse

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation turn."""

    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def create_system_message(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def create_user_message(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def create_assistant_message(content: str) -> ChatMessage:
    return ChatMessage(role="assistant", content=content)


def split_system_prompt(messages: Iterable[ChatMessage]) -> Tuple[str, List[ChatMessage]]:
    """Separate system turns from the rest of the conversation.

    Multiple system turns are joined with blank lines.
    """
    system_parts: List[str] = []
    conversation: List[ChatMessage] = []
    for message in messages:
        if message.role == "system":
            if message.content:
                system_parts.append(message.content)
        else:
            conversation.append(message)
    return "\n\n".join(system_parts), conversation


def extract_domain(url: str) -> str:
    """Return the hostname of a URL, or ``unknown`` when it has none."""
    try:
        hostname = urlparse(url or "").hostname
    except ValueError:
        return "unknown"
    return hostname or "unknown"


@dataclass(frozen=True)
class TabDescriptor:
    """Read-only snapshot of a host tab taken at request time."""

    id: int
    title: str = ""
    url: str = ""
    domain: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "domain", extract_domain(self.url))

    @property
    def display_title(self) -> str:
        return self.title or "Untitled"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TabDescriptor":
        if "id" not in data:
            raise ValueError("Tab entry is missing an 'id'")
        tab_id = data["id"]
        if isinstance(tab_id, bool) or not isinstance(tab_id, (int, str)):
            raise ValueError(f"Tab id must be an integer, got {tab_id!r}")
        try:
            parsed_id = int(tab_id)
        except ValueError as exc:
            raise ValueError(f"Tab id must be an integer, got {tab_id!r}") from exc
        return cls(
            id=parsed_id,
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
        )
