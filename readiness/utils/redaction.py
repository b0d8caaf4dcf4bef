"""
Redaction helpers for logs and prompts.

- redact(): stable hash for correlating emails/tokens without exposing them
- sanitize_for_prompt(): strip prompt-injection markers from founder answers
"""

from __future__ import annotations

import re
from hashlib import sha256

INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"^\s*system\s*:",
    r"^\s*assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE | re.MULTILINE)


def redact(value: str | None) -> str:
    """Stable hash representation of a sensitive string."""
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def sanitize_for_prompt(text: str | None, max_length: int = 4000) -> str:
    """
    Truncate user text and blank out injection markers before prompt inclusion.

    Founder answers legitimately contain braces and pipes (tables, JSON), so
    only the markers are removed.
    """
    if not text:
        return ""
    text = text[:max_length]
    text = INJECTION_REGEX.sub("[REDACTED]", text)
    return text.strip()
