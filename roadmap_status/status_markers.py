"""
Status heuristics for roadmap task text and status fields.

Task strings such as "[x] Ship CI config" or "Write docs (todo)" carry their
completion state inline. parse_task_string() strips a bullet prefix and then
runs an ordered chain of independent parsers:

    1. checkbox prefix      "[x] ...", "[ ] ..."
    2. emoji markers        "✅ ...", "... ❌"
    3. trailing keyword     "... (done)", "... - blocked"

Each parser returns (remaining_text, done) where done is True, False or None.
The first parser that yields a non-None value wins; later parsers only run
when the earlier ones found nothing.

parse_status_value() is the tri-state parser for explicit status fields
(booleans, numbers, percentages, keywords, nested lists and mappings).
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Optional

ParseResult = tuple[str, Optional[bool]]

POSITIVE_STATUS_KEYWORDS = (
    "done",
    "complete",
    "completed",
    "finished",
    "shipped",
    "launched",
    "achieved",
    "met",
    "approved",
    "ready",
    "live",
    "delivered",
    "published",
    "released",
    "true",
    "yes",
)

NEGATIVE_STATUS_KEYWORDS = (
    "todo",
    "to do",
    "backlog",
    "pending",
    "blocked",
    "not started",
    "tbd",
    "in progress",
    "wip",
    "no",
    "not",
    "never",
    "incomplete",
    "unfinished",
    "false",
    "open",
    "later",
    "skip",
    "hold",
    "paused",
    "stalled",
    "deferred",
)

# Keywords recognised at the end of a task string
SUFFIX_DONE_KEYWORDS = ("done", "complete", "completed", "finished", "shipped", "launched")
SUFFIX_TODO_KEYWORDS = (
    "todo",
    "to do",
    "backlog",
    "pending",
    "blocked",
    "tbd",
    "in progress",
    "wip",
    "later",
    "paused",
    "stalled",
    "not started",
    "incomplete",
    "unfinished",
) + tuple(
    # "not done", "not yet shipped", "never launched"
    f"{negation} {word}" for negation in ("not", "not yet", "never") for word in SUFFIX_DONE_KEYWORDS
)

CHECKBOX_TRUE_MARKS = frozenset({"x", "✔", "✓", "☑", "1", "y"})
CHECKBOX_FALSE_MARKS = frozenset({"", "-", "0"})

_DONE_EMOJI = "(?:\u2705|\u2611\ufe0f?|\u2714\ufe0f?|\u2713)"
_TODO_EMOJI = "(?:\u274c|\u26d4\ufe0f?|\U0001f6ab|\U0001f6d1)"

_BULLET_RE = re.compile(r"^\s*[-*+]\s+")
_CHECKBOX_RE = re.compile(r"^\s*(?:[-*+]\s*)?\[(?P<mark>[^\]])\]\s*(?P<rest>.+)$", re.DOTALL)
_LEADING_DONE_RE = re.compile(rf"^{_DONE_EMOJI}\s*(?P<rest>.+)$", re.DOTALL)
_LEADING_TODO_RE = re.compile(rf"^{_TODO_EMOJI}\s*(?P<rest>.+)$", re.DOTALL)
_TRAILING_DONE_RE = re.compile(rf"^(?P<rest>.+?)(?:\s*{_DONE_EMOJI})+$", re.DOTALL)
_TRAILING_TODO_RE = re.compile(rf"^(?P<rest>.+?)(?:\s*{_TODO_EMOJI})+$", re.DOTALL)
_ANY_DONE_EMOJI_RE = re.compile(_DONE_EMOJI)
_ANY_TODO_EMOJI_RE = re.compile(_TODO_EMOJI)
_PERCENT_RE = re.compile(r"(-?\d+(?:\.\d+)?)\s*%")
_NUMERIC_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


def _keyword_pattern(words: tuple[str, ...]) -> str:
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(word).replace(r"\ ", r"\s+") for word in ordered)


def _suffix_regex(words: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(
        rf"^(?P<rest>.*?\S)[\s\-–—:|,]*[(\[]\s*(?:{_keyword_pattern(words)})\s*[)\]][\s.!]*$"
        rf"|^(?P<bare>.*?\S)[\s\-–—:|,]+(?:{_keyword_pattern(words)})[\s.!]*$",
        re.IGNORECASE | re.DOTALL,
    )


_SUFFIX_DONE_RE = _suffix_regex(SUFFIX_DONE_KEYWORDS)
_SUFFIX_TODO_RE = _suffix_regex(SUFFIX_TODO_KEYWORDS)


def normalize_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def strip_bullet_prefix(value: str) -> str:
    return _BULLET_RE.sub("", value, count=1).strip()


def parse_checkbox_prefix(value: str) -> ParseResult:
    """Parse a leading Markdown checkbox.

    >>> parse_checkbox_prefix("[x] Ship CI config")
    ('Ship CI config', True)
    """
    match = _CHECKBOX_RE.match(value)
    if not match:
        return value.strip(), None
    mark = match.group("mark").strip().lower()
    rest = match.group("rest").strip()
    if mark in CHECKBOX_TRUE_MARKS:
        return rest, True
    if mark in CHECKBOX_FALSE_MARKS:
        return rest, False
    return rest, None


def parse_emoji_markers(value: str) -> ParseResult:
    """Parse a leading or trailing ✅/❌-style marker."""
    text = value.strip()
    for pattern, done in (
        (_LEADING_DONE_RE, True),
        (_LEADING_TODO_RE, False),
        (_TRAILING_DONE_RE, True),
        (_TRAILING_TODO_RE, False),
    ):
        match = pattern.match(text)
        if match and match.group("rest").strip():
            return match.group("rest").strip(), done
    return text, None


def parse_status_suffix(value: str) -> ParseResult:
    """Parse a trailing English status keyword such as "(done)" or "- blocked"."""
    text = value.strip()
    # Negative keywords are matched first so "not started" never reads as "started"
    for pattern, done in ((_SUFFIX_TODO_RE, False), (_SUFFIX_DONE_RE, True)):
        match = pattern.match(text)
        if not match:
            continue
        rest = match.group("rest") if match.group("rest") is not None else match.group("bare")
        rest = normalize_whitespace(rest).rstrip("-–—:|, ").strip()
        if rest:
            return rest, done
    return text, None


TASK_STRING_PARSERS: tuple[Callable[[str], ParseResult], ...] = (
    parse_checkbox_prefix,
    parse_emoji_markers,
    parse_status_suffix,
)


def parse_task_string(raw: str) -> ParseResult:
    """Split a task string into (name, done) using the parser chain."""
    text = strip_bullet_prefix(raw)
    for parser in TASK_STRING_PARSERS:
        text, done = parser(text)
        if done is not None:
            return normalize_whitespace(text), done
    return normalize_whitespace(text), None


def _contains_keyword(cleaned: str, keywords: tuple[str, ...]) -> bool:
    return re.search(rf"\b(?:{_keyword_pattern(keywords)})\b", cleaned) is not None


def _parse_number(value: float) -> Optional[bool]:
    if not math.isfinite(value):
        return None
    if value <= 0:
        return False
    if value >= 1:
        return True
    return None


def _parse_string(value: str) -> Optional[bool]:
    trimmed = value.strip()
    if not trimmed:
        return None
    if _ANY_DONE_EMOJI_RE.search(trimmed):
        return True
    if _ANY_TODO_EMOJI_RE.search(trimmed):
        return False

    lower = trimmed.lower()
    percent = _PERCENT_RE.search(lower)
    if percent:
        pct = float(percent.group(1))
        if pct >= 100:
            return True
        if pct <= 0:
            return False
    elif _NUMERIC_RE.match(lower):
        numeric = _parse_number(float(lower))
        if numeric is not None:
            return numeric

    cleaned = re.sub(r"[^a-z0-9]+", " ", lower).strip()
    if not cleaned:
        return None
    if _contains_keyword(cleaned, NEGATIVE_STATUS_KEYWORDS):
        return False
    if _contains_keyword(cleaned, POSITIVE_STATUS_KEYWORDS):
        return True
    return None


STATUS_FIELD_KEYS = (
    "done",
    "isDone",
    "is_done",
    "complete",
    "completed",
    "finished",
    "status",
    "state",
    "value",
    "result",
    "progress",
    "percent",
    "percentage",
)


def parse_status_value(value: Any, _seen: Optional[set[int]] = None) -> Optional[bool]:
    """Resolve an explicit status value to True, False or None (unknown)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return _parse_number(float(value))
    if isinstance(value, str):
        return _parse_string(value)

    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        return None
    seen.add(id(value))

    if isinstance(value, (list, tuple)):
        for entry in value:
            candidate = parse_status_value(entry, seen)
            if candidate is not None:
                return candidate
        return None
    if isinstance(value, dict):
        for key in STATUS_FIELD_KEYS:
            if key in value:
                candidate = parse_status_value(value[key], seen)
                if candidate is not None:
                    return candidate
    return None


__all__ = [
    "POSITIVE_STATUS_KEYWORDS",
    "NEGATIVE_STATUS_KEYWORDS",
    "TASK_STRING_PARSERS",
    "STATUS_FIELD_KEYS",
    "normalize_whitespace",
    "strip_bullet_prefix",
    "parse_checkbox_prefix",
    "parse_emoji_markers",
    "parse_status_suffix",
    "parse_task_string",
    "parse_status_value",
]
