"""JSON helper utilities for tabwright."""

from __future__ import annotations

import json
import re
from typing import Any, Callable, List, Optional

from json_repair import repair_json

from tabwright.utils.log import get_logger


logger = get_logger()

_FENCED_BLOCK_RE = re.compile(r"```(?:\s*json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def json_candidates(text: Optional[str]) -> List[str]:
    """Candidate JSON snippets in a model reply, most specific first.

    Fenced blocks anywhere in the text come first, then the outermost
    ``{...}`` span, then the whole reply.
    """
    stripped = (text or "").strip()
    if not stripped:
        return []
    candidates = [block.strip() for block in _FENCED_BLOCK_RE.findall(stripped) if block.strip()]
    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        candidates.append(stripped[start : end + 1])
    candidates.append(stripped)
    unique: List[str] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def parse_model_json(
    text: Optional[str], accept: Optional[Callable[[Any], bool]] = None
) -> Optional[Any]:
    """Parse JSON a model wrote, repairing it when strict parsing fails.

    Returns the first parsed candidate that ``accept`` approves (any
    non-empty value when ``accept`` is None), or None.
    """
    last_error: Optional[str] = None
    for candidate in json_candidates(text):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = str(exc)
            parsed = repair_json(candidate, return_objects=True, ensure_ascii=False)
        if parsed is None or parsed == "":
            continue
        if accept is None or accept(parsed):
            return parsed

    logger.debug(
        "[json_utils] No usable JSON in model reply",
        extra={"length": len(text or ""), "last_error": last_error},
    )
    return None


def parse_optional_int(value: object) -> Optional[int]:
    """Best-effort int parsing for ids echoed back by a model; None on failure."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
