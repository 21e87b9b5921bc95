"""
Glob matching over repository tree listings.

Patterns follow the usual source-tree conventions:

    *        any characters within one path segment
    ?        one character within a segment
    [abc]    a character class ([!abc] negates)
    **       zero or more whole directories
    {a,b}    alternatives (nested braces allowed)

Dot-files are matched like any other file and matching is case-sensitive.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable


def expand_braces(pattern: str) -> list[str]:
    """Expand `{a,b}` alternatives left to right, dropping duplicates.

    >>> expand_braces("src/**/*.{tsx,ts}")
    ['src/**/*.tsx', 'src/**/*.ts']
    """
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth == 0:
                body = pattern[start + 1 : index]
                options = _split_top_level(body)
                if len(options) < 2:
                    # A lone "{x}" is literal text
                    literal = pattern[: index + 1]
                    return [literal + rest for rest in expand_braces(pattern[index + 1 :])]
                prefix, suffix = pattern[:start], pattern[index + 1 :]
                expanded: list[str] = []
                for option in options:
                    for candidate in expand_braces(prefix + option + suffix):
                        if candidate not in expanded:
                            expanded.append(candidate)
                return expanded
    return [pattern]


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    parts.append(current)
    return parts


def _translate_segment(segment: str) -> str:
    out = ""
    index = 0
    while index < len(segment):
        char = segment[index]
        if char == "*":
            out += "[^/]*"
        elif char == "?":
            out += "[^/]"
        elif char == "[":
            search_from = index + 1
            if segment[search_from : search_from + 1] in ("!", "^"):
                search_from += 1
            # A "]" directly after the opening bracket is a literal member
            end = segment.find("]", search_from + 1)
            if end == -1:
                out += re.escape(char)
            else:
                inner = segment[index + 1 : end]
                if inner[:1] in ("!", "^"):
                    inner = "^" + inner[1:]
                out += f"[{inner.replace(chr(92), chr(92) * 2)}]"
                index = end
        else:
            out += re.escape(char)
        index += 1
    return out


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile one brace-free glob into an anchored regex."""
    segments = pattern.strip("/").split("/")
    parts: list[str] = []
    for position, segment in enumerate(segments):
        last = position == len(segments) - 1
        if segment == "**":
            # "**/" spans zero or more directories; a trailing "**" matches everything below
            parts.append(".*" if last else "(?:[^/]+/)*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))
    return re.compile("^" + "".join(parts) + "$")


def matches(path: str, pattern: str) -> bool:
    return any(glob_to_regex(expanded).match(path) for expanded in expand_braces(pattern))


def match_globs(paths: Iterable[str], patterns: Iterable[str]) -> list[str]:
    """Paths matching any pattern, de-duplicated and sorted."""
    compiled = [glob_to_regex(expanded) for pattern in patterns for expanded in expand_braces(pattern)]
    if not compiled:
        return []
    return sorted({path for path in paths if any(regex.match(path) for regex in compiled)})


__all__ = ["expand_braces", "glob_to_regex", "matches", "match_globs"]
