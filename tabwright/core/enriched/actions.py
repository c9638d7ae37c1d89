"""Analysis actions that can be run over a selection of tabs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from tabwright.core.fallback import FallbackOrchestrator
from tabwright.core.providers import RequestOptions
from tabwright.utils.log import get_logger
from tabwright.utils.messages import (
    ChatMessage,
    TabDescriptor,
    create_system_message,
    create_user_message,
)

logger = get_logger()

ACTIONS_MAX_TOKENS = 2048
ACTIONS_TEMPERATURE = 0.7


@dataclass(frozen=True)
class ActionPrompt:
    id: str
    name: str
    prompt: str
    description: str = ""


BUILTIN_ACTIONS: Dict[str, ActionPrompt] = {
    action.id: action
    for action in (
        ActionPrompt(
            id="summarize",
            name="Summarize",
            prompt="Summarize what these pages are about in a few concise paragraphs.",
            description="Short overview of the selected pages",
        ),
        ActionPrompt(
            id="key-points",
            name="Key Points",
            prompt="List the most important key points across these pages as bullet points.",
            description="Bullet list of the main takeaways",
        ),
        ActionPrompt(
            id="compare",
            name="Compare",
            prompt=(
                "Compare these pages. Highlight where they agree, where they differ, "
                "and which one is the most useful for which purpose."
            ),
            description="Side-by-side comparison",
        ),
        ActionPrompt(
            id="research-questions",
            name="Research Questions",
            prompt=(
                "Suggest follow-up research questions a reader of these pages should "
                "investigate next."
            ),
            description="Open questions worth exploring",
        ),
        ActionPrompt(
            id="action-items",
            name="Action Items",
            prompt="Extract concrete action items or next steps implied by these pages.",
            description="Checklist of next steps",
        ),
    )
}

ACTIONS_SYSTEM_PROMPT = (
    "You are a helpful research assistant working with a user's open browser tabs. "
    "Answer every requested task in its own section with a markdown heading. "
    "Be specific and concise."
)


def resolve_actions(action_ids: Sequence[str]) -> List[ActionPrompt]:
    """Look up built-in actions by id; unknown ids raise KeyError naming the id."""
    resolved: List[ActionPrompt] = []
    for action_id in action_ids:
        key = action_id.strip().lower()
        if key not in BUILTIN_ACTIONS:
            raise KeyError(action_id)
        resolved.append(BUILTIN_ACTIONS[key])
    return resolved


def format_tasks(prompts: Sequence[ActionPrompt]) -> str:
    return "\n\n".join(
        f"### Task {index}: {prompt.name}\n{prompt.prompt}"
        for index, prompt in enumerate(prompts, start=1)
    )


def build_action_messages(
    tabs: Sequence[TabDescriptor], prompts: Sequence[ActionPrompt]
) -> List[ChatMessage]:
    tab_list = "\n".join(
        f"{index}. {tab.display_title}\n   URL: {tab.url or 'Unknown'}"
        for index, tab in enumerate(tabs, start=1)
    )
    user_prompt = (
        f"I have these {len(tabs)} browser tabs open:\n\n{tab_list}\n\n"
        "Based only on their titles and URLs, complete the following tasks:\n\n"
        f"{format_tasks(prompts)}"
    )
    return [create_system_message(ACTIONS_SYSTEM_PROMPT), create_user_message(user_prompt)]


async def execute_actions(
    orchestrator: FallbackOrchestrator,
    tabs: Sequence[TabDescriptor],
    prompts: Sequence[ActionPrompt],
    options: Optional[RequestOptions] = None,
) -> str:
    """Run the selected actions over tab titles and URLs (no page content)."""
    if not tabs:
        raise ValueError("Select at least one tab")
    if not prompts:
        raise ValueError("Select at least one action")
    logger.info(
        "[actions] Running actions",
        extra={"tabs": len(tabs), "actions": [p.id for p in prompts]},
    )
    return await orchestrator.call_with_fallback(
        build_action_messages(tabs, prompts),
        options or RequestOptions(max_tokens=ACTIONS_MAX_TOKENS, temperature=ACTIONS_TEMPERATURE),
    )
