"""Text helpers: inbound extraction and reply formatting."""

import re
from typing import Any

# Ordered key paths into a WhatsApp message payload; the first non-empty wins.
_TEXT_PATHS: tuple[tuple[str, ...], ...] = (
    ("conversation",),
    ("extendedTextMessage", "text"),
)

_BLANK_RUNS = re.compile(r"\n{2,}")


def _dig(content: Any, path: tuple[str, ...]) -> Any:
    node = content
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_text(content: dict[str, Any] | None) -> str:
    """Return the first known text field of a message payload, or empty string."""
    for path in _TEXT_PATHS:
        value = _dig(content, path)
        if isinstance(value, str) and value:
            return value
    return ""


def normalize_reply(text: str) -> str:
    """Collapse runs of blank lines and trim surrounding whitespace."""
    return _BLANK_RUNS.sub("\n", text or "").strip()


def split_message(text: str, limit: int = 600) -> list[str]:
    """
    Split text into consecutive chunks of at most ``limit`` characters.

    Concatenating the result gives back ``text`` unchanged.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")
    return [text[i:i + limit] for i in range(0, len(text), limit)]
