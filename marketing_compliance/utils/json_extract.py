"""
Tolerant JSON extraction from free-form model replies.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, Iterator, Optional


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield every brace-balanced `{...}` candidate, skipping braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : index + 1]
                    break
        start = text.find("{", start + 1)


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first JSON object found in `text`, or None."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
        if isinstance(payload, dict):
            return payload
    except json.JSONDecodeError:
        pass

    for candidate in _balanced_objects(text):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload
    return None


def safe_float(value: object) -> Optional[float]:
    """Finite float or None; json.loads lets NaN and Infinity through."""
    try:
        if value is None or isinstance(value, bool):
            return None
        result = float(value)
    except (ValueError, TypeError):
        return None
    return result if math.isfinite(result) else None


__all__ = ["parse_json_object", "safe_float"]
