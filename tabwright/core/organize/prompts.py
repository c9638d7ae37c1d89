"""Prompt builders for the tab-organization task."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from tabwright.utils.messages import TabDescriptor

DEFAULT_STRATEGY = "smart"

_BASE_RUBRIC = """You are an expert at organizing browser tabs into logical groups.
Your task is to analyze tab titles and domains and assign every tab to exactly one group.

IMPORTANT RULES:
1. Output ONLY valid JSON, no explanations or markdown
2. Every tab ID from the input MUST appear exactly once in the output
3. Never invent tab IDs; use the IDs (numbers) exactly as provided
4. Every group name must be a short, non-empty label
5. Group related tabs together"""

STRATEGY_RUBRICS: Dict[str, str] = {
    "smart": """Strategy: Smart grouping based on content, topics, and relationships.
- Group tabs by topic/theme when clear relationships exist
- Keep related research together
- Group tabs from same project/task together""",
    "domain": """Strategy: Group by domain/website.
- Primary grouping by domain (e.g., all GitHub tabs together)
- Name each group after the website it holds""",
    "topic": """Strategy: Group by content topic/theme.
- Ignore domains, focus on what the pages are about
- Group by topic: work, research, entertainment, social, etc.
- Create intuitive thematic groups""",
    "activity": """Strategy: Group by likely user activity/task.
- Group tabs that seem part of the same workflow
- Consider: research tasks, shopping, reading, work projects
- Group by what the user was likely trying to accomplish""",
}

OUTPUT_CONTRACT = """Return a JSON object with this exact structure:
{
  "assignments": [
    {"id": <tab_id>, "group": "Group Name"}
  ]
}"""


def normalize_strategy(strategy: Optional[str]) -> str:
    key = (strategy or "").strip().lower()
    return key if key in STRATEGY_RUBRICS else DEFAULT_STRATEGY


def format_id_list(ids: Iterable[int]) -> str:
    return "[" + ", ".join(str(i) for i in ids) + "]"


def build_system_prompt(strategy: Optional[str], tab_ids: Sequence[int]) -> str:
    rubric = STRATEGY_RUBRICS[normalize_strategy(strategy)]
    return (
        f"{_BASE_RUBRIC}\n\n{rubric}\n\n"
        f"The valid tab IDs are exactly: {format_id_list(tab_ids)}"
    )


def build_user_prompt(tabs: Sequence[TabDescriptor], feedback: Optional[str] = None) -> str:
    tab_list = "\n".join(
        f'- ID: {tab.id}, Title: "{tab.display_title}", Domain: {tab.domain}' for tab in tabs
    )
    prompt = (
        f"Organize these {len(tabs)} tabs into groups:\n\n{tab_list}\n\n"
        f"{OUTPUT_CONTRACT}\n\n"
        "REQUIREMENTS:\n"
        "- Every tab ID MUST appear exactly once\n"
        '- "id" is a tab ID (number), "group" is the group name\n'
        "- Output ONLY the JSON, nothing else"
    )
    if feedback and feedback.strip():
        prompt += (
            "\n\nIMPORTANT USER FEEDBACK - adjust your organization based on this:\n"
            f'"{feedback.strip()}"\n\n'
            "Please incorporate this feedback while still following all the JSON format "
            "requirements."
        )
    return prompt


def build_correction_prompt(violations: Sequence[str], tab_ids: Sequence[int]) -> str:
    """User turn asking the model to fix the violations in its previous reply."""
    lines: List[str] = [
        "Your previous reply was rejected because it broke these rules:",
    ]
    lines.extend(f"- {violation}" for violation in violations)
    lines.append("")
    lines.append(
        f"The valid tab IDs are exactly: {format_id_list(tab_ids)}. "
        "Assign each of them to exactly one group, use no other IDs, "
        "and give every group a non-empty name."
    )
    lines.append("Reply with the corrected JSON only.")
    return "\n".join(lines)


EXPLAIN_SYSTEM_PROMPT = (
    "You are a helpful assistant explaining browser tab organization. Be concise and clear."
)
CONNECTION_TEST_PROMPT = 'Respond with just "OK" to confirm the connection works.'
