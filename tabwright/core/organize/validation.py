"""Parsing and validation of model-proposed tab assignments.

A reply is accepted only when it is a bijection between the input tabs and
the assignment entries: every input id appears exactly once, no foreign id
appears, and every group name is non-empty. Each broken clause is reported
as its own named violation so the message can be fed back to the model.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tabwright.core.organize.prompts import format_id_list
from tabwright.utils.json_utils import parse_model_json, parse_optional_int

NOT_JSON_VIOLATION = 'Response is not valid JSON with an "assignments" array'


@dataclass(frozen=True)
class Assignment:
    tab_id: int
    group_name: str


@dataclass(frozen=True)
class TabGroup:
    name: str
    tab_ids: Tuple[int, ...]


@dataclass(frozen=True)
class Organization:
    groups: Tuple[TabGroup, ...]
    explanation: str = ""

    @classmethod
    def from_assignments(cls, assignments: Sequence[Assignment]) -> "Organization":
        """Group assignments by name, keeping first-seen order of groups and tabs."""
        buckets: Dict[str, List[int]] = {}
        for assignment in assignments:
            buckets.setdefault(assignment.group_name, []).append(assignment.tab_id)
        groups = tuple(TabGroup(name, tuple(ids)) for name, ids in buckets.items())
        tab_total = sum(len(group.tab_ids) for group in groups)
        noun = "tab" if tab_total == 1 else "tabs"
        group_noun = "group" if len(groups) == 1 else "groups"
        summary = ", ".join(f"{group.name} ({len(group.tab_ids)})" for group in groups)
        explanation = f"Organized {tab_total} {noun} into {len(groups)} {group_noun}: {summary}"
        return cls(groups=groups, explanation=explanation)

    def assignments(self) -> List[Assignment]:
        return [
            Assignment(tab_id, group.name) for group in self.groups for tab_id in group.tab_ids
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [{"name": g.name, "tab_ids": list(g.tab_ids)} for g in self.groups],
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Organization":
        groups = []
        for entry in data.get("groups") or []:
            ids = entry.get("tab_ids", entry.get("tabIds", entry.get("tabs", [])))
            groups.append(TabGroup(str(entry.get("name", "")), tuple(int(i) for i in ids)))
        return cls(groups=tuple(groups), explanation=str(data.get("explanation") or ""))


@dataclass(frozen=True)
class ValidationFailure:
    """Every violated clause for one model reply, plus the reply itself."""

    violations: Tuple[str, ...]
    raw_text: str = field(default="", repr=False)

    @property
    def message(self) -> str:
        return "; ".join(self.violations)


def _has_assignment_list(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("assignments"), list)


def parse_assignments(text: str) -> Tuple[Optional[List[Assignment]], List[str]]:
    """Parse a reply into assignments plus parse-level violations.

    Entries that cannot be read (not an object, no usable id) are collected
    into one "Invalid assignment entries" violation. Empty group names are
    kept as assignments so the validator can name their tab ids.
    """
    data = parse_model_json(text, accept=_has_assignment_list)
    if data is None:
        return None, [NOT_JSON_VIOLATION]
    raw_entries = data["assignments"]

    assignments: List[Assignment] = []
    invalid: List[str] = []
    for entry in raw_entries:
        if not isinstance(entry, dict):
            invalid.append(repr(entry))
            continue
        tab_id = parse_optional_int(entry.get("id"))
        if tab_id is None:
            invalid.append(repr(entry))
            continue
        group = entry.get("group")
        group_name = group.strip() if isinstance(group, str) else ""
        assignments.append(Assignment(tab_id, group_name))

    violations: List[str] = []
    if invalid:
        violations.append(f"Invalid assignment entries: [{', '.join(invalid)}]")
    return assignments, violations


def validate_assignments(
    assignments: Sequence[Assignment], tab_ids: Sequence[int]
) -> List[str]:
    """Return every violated bijection clause, in a fixed order."""
    expected = set(tab_ids)
    counts = Counter(a.tab_id for a in assignments)
    violations: List[str] = []

    duplicates = sorted(tab_id for tab_id, count in counts.items() if count > 1)
    if duplicates:
        violations.append(f"Duplicate tab IDs: {format_id_list(duplicates)}")

    missing = [tab_id for tab_id in tab_ids if tab_id not in counts]
    if missing:
        violations.append(f"Missing tab IDs: {format_id_list(missing)}")

    hallucinated = sorted(tab_id for tab_id in counts if tab_id not in expected)
    if hallucinated:
        violations.append(f"Hallucinated tab IDs: {format_id_list(hallucinated)}")

    unnamed = sorted({a.tab_id for a in assignments if not a.group_name})
    if unnamed:
        violations.append(f"Empty group names for tab IDs: {format_id_list(unnamed)}")

    return violations


def check_reply(
    text: str, tab_ids: Sequence[int]
) -> Tuple[Optional[List[Assignment]], Optional[ValidationFailure]]:
    """Parse and validate a reply; exactly one of the two results is set."""
    assignments, violations = parse_assignments(text)
    if assignments is None:
        return None, ValidationFailure(tuple(violations), raw_text=text)
    violations.extend(validate_assignments(assignments, tab_ids))
    if violations:
        return None, ValidationFailure(tuple(violations), raw_text=text)
    return assignments, None
