"""Helpers for reading structured replies from an LLM."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, Optional

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*$")


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM reply.

    Code fences and surrounding prose are tolerated. Anything that is not a
    JSON object yields an empty dict.
    """
    if not raw:
        return {}

    text = "\n".join(line for line in raw.splitlines() if not _FENCE_RE.match(line))

    for candidate in (text, _outer_braces(raw)):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


def _outer_braces(raw: str) -> Optional[str]:
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start >= 0 and end > start:
        return raw[start:end]
    return None


def pick_str(data: Dict[str, Any], key: str, allowed: Optional[Iterable[str]] = None) -> Optional[str]:
    """Non-empty stripped string at ``key``, optionally restricted to ``allowed``"""
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    if allowed is not None and value.lower() not in {a.lower() for a in allowed}:
        return None
    return value
