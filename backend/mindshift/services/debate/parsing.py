"""
Model Output Parsing.

WHAT THIS DOES:
Classifies a raw model reply exactly once into a ParsedResponse:

1. Structured — the whole reply is a JSON object
   (OpenAI JSON mode always lands here)
2. RawTextWithExtractedFields — freeform text (Ollama, reasoning models)
   that still contains the fields, either as an embedded JSON object:
        <think>...</think> {"aiResponse": "...", "newStance": 4.5, ...}
   or as delimited lines:
        Response: ...
        New Stance: 4.5
        Reasoning: ...
3. Unparseable — nothing usable

Downstream code only ever looks at the variant and its ParsedFields.
"""

import json
import math
import re
from typing import Any, Optional

from mindshift.services.debate.models import (
    ParsedFields,
    ParsedResponse,
    RawTextWithExtractedFields,
    Structured,
    Unparseable,
)

# Accepted spellings for each field
RESPONSE_KEYS = ("aiResponse", "ai_response", "response")
STANCE_KEYS = ("newStance", "new_stance", "stance")
REASONING_KEYS = ("reasoning", "shiftReasoning", "shift_reasoning")

# Delimited-text fallback: "Label: value" up to the next known label
_LABELS = r"(?:AI Response|Response|New Stance|Stance|Reasoning)"
_FIELD_PATTERN = r"^\s*\**{label}\**\s*:\s*(.+?)(?=^\s*\**{labels}\**\s*:|\Z)"
_RESPONSE_RE = re.compile(
    _FIELD_PATTERN.format(label=r"(?:AI Response|Response)", labels=_LABELS),
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
_STANCE_RE = re.compile(
    r"^\s*\**(?:New Stance|Stance)\**\s*:\s*(-?\d+(?:\.\d+)?)",
    re.IGNORECASE | re.MULTILINE,
)
_REASONING_RE = re.compile(
    _FIELD_PATTERN.format(label="Reasoning", labels=_LABELS),
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} object in text, or None.

    Braces inside JSON string literals are ignored.

    Example:
        extract_json_object('<think> {"stance":5}')   # '{"stance":5}'
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
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
                return text[start:i + 1]
    return None


def coerce_stance(value: Any) -> Optional[float]:
    """
    Interpret a model-supplied stance as a float.

    Returns None for missing, non-numeric, NaN or infinite values.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        stance = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(stance) or math.isinf(stance):
        return None
    return stance


def _first(data: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _fields_from_dict(data: dict) -> ParsedFields:
    return ParsedFields(
        response_text=_as_text(_first(data, RESPONSE_KEYS)),
        new_stance=_first(data, STANCE_KEYS),
        reasoning=_as_text(_first(data, REASONING_KEYS)),
    )


def _load_object(text: str) -> Optional[dict]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _find_embedded_object(text: str) -> Optional[dict]:
    """First balanced {...} in text that decodes to a JSON object."""
    pos = 0
    while True:
        start = text.find("{", pos)
        if start == -1:
            return None
        candidate = extract_json_object(text[start:])
        data = _load_object(candidate) if candidate is not None else None
        if data is not None:
            return data
        pos = start + 1


def _extract_delimited(text: str) -> Optional[ParsedFields]:
    response = _RESPONSE_RE.search(text)
    if not response:
        return None

    stance = _STANCE_RE.search(text)
    reasoning = _REASONING_RE.search(text)
    return ParsedFields(
        response_text=_as_text(response.group(1)),
        new_stance=stance.group(1) if stance else None,
        reasoning=_as_text(reasoning.group(1)) if reasoning else None,
    )


def parse_model_output(raw_text: Optional[str]) -> ParsedResponse:
    """Classify a raw model reply. Never raises."""
    text = (raw_text or "").strip()
    if not text:
        return Unparseable(raw_text=raw_text or "", reason="empty response")

    data = _load_object(text)
    if data is not None:
        return Structured(fields=_fields_from_dict(data))

    data = _find_embedded_object(text)
    if data is not None:
        return RawTextWithExtractedFields(fields=_fields_from_dict(data), raw_text=text)

    fields = _extract_delimited(text)
    if fields is not None:
        return RawTextWithExtractedFields(fields=fields, raw_text=text)

    return Unparseable(raw_text=text, reason="no JSON object or delimited fields found")
