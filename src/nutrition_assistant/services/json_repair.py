"""Lenient decoding of JSON emitted by language models."""

import json
import logging
import re
from collections.abc import Callable

_logger = logging.getLogger(__name__)

_PREFIXES = (
    re.compile(r"^Action completed\s*[:\-]?\s*", re.IGNORECASE),
    re.compile(r"^Here.*?JSON:\s*", re.IGNORECASE),
    re.compile(r"^The.*?result:\s*", re.IGNORECASE),
    re.compile(r"^Output:\s*", re.IGNORECASE),
)
_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)([A-Za-z0-9_]+)\s*:")


class LenientJsonError(ValueError):
    """Raised when no repair strategy yields valid JSON."""


def strip_llm_wrapping(text: str) -> str:
    """Remove prose prefixes, code fences, and surrounding text."""
    stripped = text.strip()
    for prefix in _PREFIXES:
        stripped = prefix.sub("", stripped, count=1)
    stripped = _FENCE_OPEN.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    stripped = stripped.strip()
    return _outermost_document(stripped)


def decode_lenient(text: str) -> dict | list:
    """Parse JSON, applying a bounded list of repairs on failure."""
    candidate = strip_llm_wrapping(text)
    if not candidate:
        raise LenientJsonError("empty document")

    strategies: list[tuple[str, Callable[[str], str]]] = [
        ("as-is", lambda value: value),
        ("trailing-commas", _remove_trailing_commas),
        ("unquoted-keys", _quote_keys),
        ("commas-and-keys", lambda value: _quote_keys(_remove_trailing_commas(value))),
        ("close-brackets", _close_brackets),
        (
            "all",
            lambda value: _close_brackets(_quote_keys(_remove_trailing_commas(value))),
        ),
    ]
    for name, repair in strategies:
        try:
            document = json.loads(repair(candidate))
        except json.JSONDecodeError:
            continue
        if not isinstance(document, dict | list):
            continue
        if name != "as-is":
            _logger.info("Repaired model JSON with strategy=%s", name)
        return document
    raise LenientJsonError(f"unparseable JSON: {candidate[:120]!r}")


def _outermost_document(text: str) -> str:
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text[start:]
    return text[start : end + 1]


def _remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def _quote_keys(text: str) -> str:
    return _UNQUOTED_KEY.sub(r'\1"\2":', text)


def _close_brackets(text: str) -> str:
    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
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
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()
    suffix = '"' if in_string else ""
    return text.rstrip().rstrip(",") + suffix + "".join(reversed(stack))
