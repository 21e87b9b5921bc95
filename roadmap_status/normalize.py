"""
Roadmap document normalization.

Roadmap documents come in several shapes. The shape is resolved once, at
entry, and each variant is mapped through its own transform into canonical
Week/Item/Check entities:

    CANONICAL   {weeks: [{id, title, items: [...]}]}
    PHASED      {phases|roadmap: [{phase, milestones: [{week, title, tasks}]}]}
    BARE_LIST   [{id, title, items: [...]}, ...]

Items and tasks may be descriptor mappings or plain strings with inline
status markup ("[x] Ship CI config", "Write docs (todo)").

Usage:
    from roadmap_status.normalize import load_roadmap_text, normalize_roadmap_document

    weeks = normalize_roadmap_document(load_roadmap_text(raw_yaml))
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from enum import Enum
from typing import Any, Iterable, Optional

import yaml

from roadmap_status.exceptions import StructuralError
from roadmap_status.models import KNOWN_CHECK_TYPES, Check, Item, Week
from roadmap_status.status_markers import parse_status_value, parse_task_string

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 64
HASH_SUFFIX_LENGTH = 6

_FILE_KEYS = ("files", "file", "paths", "path")
_GLOB_KEYS = ("globs", "glob", "patterns")
_URL_KEYS = ("url", "endpoint", "href", "link", "target")
_QUERY_KEYS = ("query", "sql", "statement")
_MUST_MATCH_KEYS = ("must_match", "mustMatch", "contains", "expect", "matches")
_DETAIL_KEYS = ("detail", "note", "description")
_DONE_KEYS = ("done", "complete", "completed", "finished", "status", "state", "progress", "percent", "percentage")
_ITEM_COLLECTION_KEYS = ("items", "tasks", "entries", "deliverables", "goals")


class RoadmapShape(str, Enum):
    """The recognised top-level layouts of a roadmap document."""

    CANONICAL = "canonical"
    PHASED = "phased"
    BARE_LIST = "bare_list"


# ============================================================================
# Helpers
# ============================================================================


def _hash_suffix(value: str, length: int = HASH_SUFFIX_LENGTH) -> str:
    digest = 0
    for char in value:
        digest = (digest * 33 + ord(char)) & 0xFFFFFFFF
    alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""
    while True:
        digest, remainder = divmod(digest, 36)
        encoded = alphabet[remainder] + encoded
        if digest == 0:
            break
    if len(encoded) >= length:
        return encoded[-length:]
    return encoded.rjust(length, "0")


def slugify(value: Any, fallback: str) -> str:
    """Lowercase, hyphenated identifier of at most 64 characters.

    Over-long slugs are shortened and suffixed with a short hash so distinct
    long titles stay distinct. Returns `fallback` when nothing survives.
    """
    text = value if isinstance(value, str) else ("" if value is None else str(value))
    normalized = re.sub(r"[^a-z0-9]+", "-", text.lower())
    normalized = re.sub(r"-+", "-", normalized).strip("-")
    if not normalized:
        return fallback
    if len(normalized) <= MAX_SLUG_LENGTH:
        return normalized
    suffix = _hash_suffix(normalized)
    base = normalized[: MAX_SLUG_LENGTH - len(suffix) - 1].rstrip("-")
    return f"{base}-{suffix}" if base else suffix


def pick_string(*candidates: Any) -> Optional[str]:
    """First non-blank string among candidates (lists are searched too)."""
    for candidate in candidates:
        if isinstance(candidate, str):
            if candidate.strip():
                return candidate.strip()
        elif isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
            return str(candidate)
        elif isinstance(candidate, list):
            for entry in candidate:
                if isinstance(entry, str) and entry.strip():
                    return entry.strip()
    return None


def as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def collect_strings(value: Any) -> list[str]:
    """Flatten strings out of nested values, splitting on commas and newlines."""
    if isinstance(value, (list, tuple)):
        return [part for entry in value for part in collect_strings(entry)]
    if isinstance(value, str):
        return [part.strip() for part in re.split(r"[\n,]+", value) if part.strip()]
    if isinstance(value, dict):
        return collect_strings(list(value.values()))
    return []


def dedupe_strings(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        trimmed = value.strip()
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            out.append(trimmed)
    return out


def _gather(record: dict[str, Any], keys: tuple[str, ...]) -> list[str]:
    return dedupe_strings(part for key in keys for part in collect_strings(record.get(key)))


def dedupe_item_ids(items: Iterable[Item]) -> tuple[Item, ...]:
    """Make item ids unique within one week by appending -2, -3, ..."""
    seen: set[str] = set()
    out: list[Item] = []
    for item in items:
        candidate = item.id
        counter = 2
        while candidate in seen:
            suffix = f"-{counter}"
            candidate = f"{item.id[: MAX_SLUG_LENGTH - len(suffix)]}{suffix}"
            counter += 1
        seen.add(candidate)
        out.append(item if candidate == item.id else replace(item, id=candidate))
    return tuple(out)


# ============================================================================
# Checks
# ============================================================================


def detect_check_type(record: dict[str, Any]) -> str:
    """Explicit type (folded to snake_case) or one inferred from the fields."""
    raw_type = pick_string(record.get("type"), record.get("kind"), record.get("check"))
    if raw_type:
        return re.sub(r"[-\s]+", "_", raw_type.lower())
    if any(record.get(key) for key in ("url", "endpoint", "href", "link")):
        return "http_ok"
    if any(record.get(key) for key in _QUERY_KEYS):
        return "sql_exists"
    if any(record.get(key) for key in _FILE_KEYS + _GLOB_KEYS):
        return "files_exist"
    return ""


def normalize_check(entry: Any) -> Optional[Check]:
    """Canonicalize one check entry; returns None when nothing is checkable."""
    if isinstance(entry, str):
        trimmed = entry.strip()
        if not trimmed:
            return None
        if re.match(r"^https?://", trimmed, re.IGNORECASE):
            return Check(type="http_ok", url=trimmed)
        return Check(type="files_exist", files=(trimmed,))

    if not isinstance(entry, dict):
        return None

    check_type = detect_check_type(entry)
    if not check_type:
        return None
    detail = pick_string(*(entry.get(key) for key in _DETAIL_KEYS))

    if check_type == "files_exist":
        files = _gather(entry, _FILE_KEYS)
        globs = _gather(entry, _GLOB_KEYS)
        if detail:
            for token in collect_strings(detail):
                if token not in files and token not in globs and re.search(r"[./]", token):
                    files.append(token)
        if not files and not globs and not detail:
            return None
        return Check(type="files_exist", files=tuple(files), globs=tuple(globs), detail=detail)

    if check_type == "http_ok":
        url = pick_string(*(entry.get(key) for key in _URL_KEYS))
        if not url:
            return None
        return Check(
            type="http_ok",
            url=url,
            must_match=tuple(_gather(entry, _MUST_MATCH_KEYS)),
            detail=detail,
        )

    if check_type == "sql_exists":
        query = pick_string(*(entry.get(key) for key in _QUERY_KEYS))
        if not query:
            return None
        return Check(type="sql_exists", query=query, detail=detail)

    # Unknown types survive normalization; execution reports them as failed
    return Check(type=check_type, detail=detail)


def normalize_checks(record: dict[str, Any]) -> tuple[Check, ...]:
    provided = record.get("checks")
    if provided is None:
        provided = record.get("verifications", record.get("validation"))
    raw_checks = as_list(provided)

    if not raw_checks:
        files = _gather(record, _FILE_KEYS)
        globs = _gather(record, _GLOB_KEYS)
        url = pick_string(*(record.get(key) for key in _URL_KEYS))
        if files or globs:
            raw_checks = [{"type": "files_exist", "files": files, "globs": globs}]
        elif url:
            raw_checks = [{"type": "http_ok", "url": url}]

    checks = []
    for entry in raw_checks:
        check = normalize_check(entry)
        if check is None:
            logger.debug("Dropping uncheckable check entry: %r", entry)
            continue
        if check.type not in KNOWN_CHECK_TYPES:
            logger.warning("Unknown check type %r kept for reporting", check.type)
        checks.append(check)
    return tuple(checks)


# ============================================================================
# Items
# ============================================================================


def item_from_string(raw: str, id_source_prefix: str, fallback_id: str) -> Optional[Item]:
    """Build a manual item from a task string with inline status markup."""
    name, done = parse_task_string(raw)
    if not name:
        return None
    return Item(
        id=slugify(f"{id_source_prefix}-{name}", fallback_id),
        name=name,
        manual=True,
        done=done,
    )


def item_from_record(record: dict[str, Any], id_source_prefix: str, fallback_id: str) -> Optional[Item]:
    """Build an item from a descriptor mapping."""
    name = pick_string(
        record.get("name"),
        record.get("title"),
        record.get("task"),
        record.get("summary"),
        record.get("goal"),
        record.get("description"),
    ) or pick_string(record.get("id"))
    if not name:
        return None

    # Titles like "[x] Ship CI config" inside a mapping still carry status
    parsed_name, inline_done = parse_task_string(name)
    name = parsed_name or name

    id_source = pick_string(
        record.get("id"),
        record.get("key"),
        record.get("slug"),
        record.get("manualKey"),
        record.get("manual_key"),
    ) or f"{id_source_prefix}-{name}"

    checks = normalize_checks(record)
    manual_flag = record.get("manual")
    manual = manual_flag is True or (manual_flag is not False and not checks)

    done = None
    for key in _DONE_KEYS:
        if key in record and record[key] is not None:
            done = parse_status_value(record[key])
            break
    if done is None:
        done = inline_done

    return Item(
        id=slugify(id_source, fallback_id),
        name=name,
        checks=checks,
        manual=manual,
        done=done,
        note=pick_string(record.get("note"), record.get("notes")),
        manual_key=pick_string(record.get("manualKey"), record.get("manual_key"), record.get("key")),
    )


def canonicalize_item(entry: Any, id_source_prefix: str, fallback_id: str) -> Optional[Item]:
    if isinstance(entry, str):
        return item_from_string(entry, id_source_prefix, fallback_id)
    if isinstance(entry, dict):
        return item_from_record(entry, id_source_prefix, fallback_id)
    if entry is not None:
        logger.warning("Skipping roadmap item of type %s", type(entry).__name__)
    return None


# ============================================================================
# Shapes
# ============================================================================


def detect_shape(doc: Any) -> RoadmapShape:
    """Resolve the document layout, raising StructuralError when none fits."""
    if isinstance(doc, list):
        return RoadmapShape.BARE_LIST
    if not isinstance(doc, dict):
        raise StructuralError(
            "Roadmap document must be a mapping or a list",
            {"type": type(doc).__name__},
        )
    if "weeks" in doc:
        if not isinstance(doc["weeks"], list):
            raise StructuralError("Roadmap 'weeks' must be a list", {"type": type(doc["weeks"]).__name__})
        return RoadmapShape.CANONICAL
    for key in ("roadmap", "phases"):
        if key in doc:
            if not isinstance(doc[key], list):
                raise StructuralError(f"Roadmap '{key}' must be a list", {"type": type(doc[key]).__name__})
            return RoadmapShape.PHASED
    raise StructuralError(
        "Roadmap document has no weeks, phases or roadmap list",
        {"keys": sorted(str(key) for key in doc)},
    )


def canonical_week(record: Any, index: int) -> Optional[Week]:
    """Transform one canonical week entry."""
    if not isinstance(record, dict):
        logger.warning("Skipping week %d: expected a mapping, got %s", index + 1, type(record).__name__)
        return None

    week_label = pick_string(
        record.get("title"),
        record.get("name"),
        record.get("label"),
        record.get("summary"),
        record.get("heading"),
        record.get("week"),
    )
    title = week_label or f"Week {index + 1}"
    fallback_id = f"week-{index + 1}"
    week_id = slugify(
        pick_string(record.get("id"), record.get("slug"), record.get("key"), record.get("week"), title),
        fallback_id,
    )

    raw_items = [entry for key in _ITEM_COLLECTION_KEYS for entry in as_list(record.get(key))]
    items = []
    for item_index, entry in enumerate(raw_items):
        item = canonicalize_item(entry, week_id, f"item-{index + 1}-{item_index + 1}")
        if item is not None:
            items.append(item)
    return Week(id=week_id, title=title, items=dedupe_item_ids(items))


def phased_weeks(phases: list[Any]) -> list[Week]:
    """Flatten phases and their milestones into weeks."""
    weeks: list[Week] = []
    for phase_index, phase in enumerate(phases):
        if not isinstance(phase, dict):
            logger.warning("Skipping phase %d: expected a mapping", phase_index + 1)
            continue
        phase_label = pick_string(
            phase.get("phase"), phase.get("title"), phase.get("name"), phase.get("label")
        ) or f"Phase {phase_index + 1}"
        milestones = as_list(phase.get("milestones", phase.get("weeks", phase.get("items"))))

        for milestone_index, milestone in enumerate(milestones):
            if not isinstance(milestone, dict):
                logger.warning(
                    "Skipping milestone %d of %s: expected a mapping", milestone_index + 1, phase_label
                )
                continue
            week_label = pick_string(milestone.get("week"))
            milestone_title = pick_string(milestone.get("title"), milestone.get("name"))
            descriptor = milestone_title or (f"Weeks {week_label}" if week_label else "")
            title = f"{phase_label} — {descriptor}" if descriptor else phase_label
            id_source = week_label or milestone_title or f"{phase_index + 1}-{milestone_index + 1}"
            fallback_week_id = f"week-{len(weeks) + 1}"
            week_id = slugify(
                pick_string(milestone.get("id")) or f"{phase_label}-{id_source}",
                fallback_week_id,
            )

            raw_tasks = [entry for key in _ITEM_COLLECTION_KEYS for entry in as_list(milestone.get(key))]
            items = []
            for task_index, task in enumerate(raw_tasks):
                fallback_id = f"task-{phase_index + 1}-{milestone_index + 1}-{task_index + 1}"
                item = canonicalize_item(task, phase_label, fallback_id)
                if item is not None:
                    items.append(item)
            weeks.append(Week(id=week_id, title=title, items=dedupe_item_ids(items)))
    return weeks


def normalize_roadmap_document(doc: Any) -> list[Week]:
    """Normalize a parsed roadmap document into canonical weeks.

    Raises:
        StructuralError: if the document is not a recognised roadmap shape.
    """
    shape = detect_shape(doc)
    if shape is RoadmapShape.PHASED:
        phases = doc["roadmap"] if "roadmap" in doc else doc["phases"]
        weeks = phased_weeks(phases)
    else:
        entries = doc if shape is RoadmapShape.BARE_LIST else doc["weeks"]
        weeks = [week for index, entry in enumerate(entries) if (week := canonical_week(entry, index))]
    logger.debug("Normalized %s roadmap into %d weeks", shape.value, len(weeks))
    return weeks


def load_roadmap_text(text: str) -> Any:
    """Parse roadmap YAML (JSON is valid YAML) into Python objects."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise StructuralError("Roadmap document is not valid YAML", {"reason": str(exc)}) from exc


def normalize_roadmap_yaml(text: str) -> str:
    """Re-serialize a roadmap as canonical `version: 1` YAML."""
    weeks = normalize_roadmap_document(load_roadmap_text(text))
    document = {
        "version": 1,
        "weeks": [
            {"id": week.id, "title": week.title, "items": [item.to_document() for item in week.items]}
            for week in weeks
        ],
    }
    dumped = yaml.safe_dump(document, sort_keys=False, allow_unicode=True, width=1000)
    return dumped.rstrip() + "\n"


__all__ = [
    "RoadmapShape",
    "slugify",
    "pick_string",
    "collect_strings",
    "dedupe_strings",
    "dedupe_item_ids",
    "detect_check_type",
    "normalize_check",
    "normalize_checks",
    "canonicalize_item",
    "detect_shape",
    "normalize_roadmap_document",
    "load_roadmap_text",
    "normalize_roadmap_yaml",
]
