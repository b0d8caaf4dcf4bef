"""Extract JSON objects from model replies.

Models wrap JSON in markdown fences, drop commas between fields, leave
trailing commas and truncate \\u escapes. extract_json() repairs each of
these in turn before giving up.
"""

from __future__ import annotations

import json
import re
from typing import Any

from readiness.observability.logging import get_logger

logger = get_logger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_INCOMPLETE_UNICODE = re.compile(r"\\u[0-9a-fA-F]{0,3}(?![0-9a-fA-F])")
_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")


def sanitize_json_string(text: str) -> str:
    """Drop truncated \\u escapes and decode complete ones to characters."""
    text = _INCOMPLETE_UNICODE.sub("", text)
    return _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)


def strip_code_fences(text: str) -> str:
    """Content of the first ``` / ```json block, or the stripped text."""
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _repair(json_text: str) -> str:
    repaired = re.sub(r'"\s*\n\s*"', '",\n"', json_text)
    repaired = re.sub(r"(\d+\.?\d*|true|false|null)\s*\n\s*\"", r'\1,\n"', repaired)
    repaired = re.sub(r'\}\s*\n\s*"', '},\n"', repaired)
    repaired = re.sub(r'\]\s*\n\s*"', '],\n"', repaired)
    return re.sub(r",\s*([\}\]])", r"\1", repaired)


def extract_json(text: str | None) -> dict[str, Any]:
    """Parse the first JSON object in a model reply.

    Raises:
        ValueError: Nothing in the reply parses as a JSON object.
    """
    if not text:
        raise ValueError("Empty model response")

    candidate = strip_code_fences(text)
    try:
        result = json.loads(candidate)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError as e:
        logger.debug("JSON parse error (attempting repair): %s", e)

    match = re.search(r"\{.*\}", candidate, re.DOTALL)
    if not match:
        raise ValueError("No JSON object found in model response")

    json_text = match.group(0)
    for attempt in (json_text, _repair(json_text), sanitize_json_string(_repair(json_text))):
        try:
            result = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    logger.warning("JSON repair failed for model response (%d chars)", len(text))
    raise ValueError("Model response is not valid JSON")
