"""
Manual override merging.

Users amend computed weeks from outside the roadmap document: they remove
items, override an item's done flag or note, and add items of their own.
The amendments live in a store keyed by week; this module validates them and
merges them into freshly computed weeks without mutating either input.

Usage:
    from roadmap_status.overrides import apply_manual_overrides, sanitize_manual_state

    state = sanitize_manual_state(json.loads(raw))
    weeks = apply_manual_overrides(weeks, state)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from roadmap_status.models import (
    Item,
    ManualItem,
    ManualOverride,
    ManualOverrideState,
    ManualWeekState,
    OverrideEntry,
    Week,
)

logger = logging.getLogger(__name__)


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _clean_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def sanitize_manual_state(value: Any) -> ManualOverrideState:
    """Validate an untrusted store payload.

    Malformed entries are dropped; weeks left with no amendments are omitted.
    """
    safe: ManualOverrideState = {}
    if not isinstance(value, dict):
        return safe

    for week_key, raw_week in value.items():
        key = _clean_str(week_key)
        if key is None or not isinstance(raw_week, dict):
            continue

        removed = tuple(
            entry.strip() for entry in raw_week.get("removed") or [] if _clean_str(entry)
        )

        overrides = []
        for entry in raw_week.get("overrides") or []:
            if not isinstance(entry, dict) or _clean_str(entry.get("key")) is None:
                continue
            done = _clean_bool(entry.get("done"))
            note = _clean_str(entry.get("note"))
            if done is None and note is None:
                continue
            overrides.append(OverrideEntry(key=entry["key"].strip(), done=done, note=note))

        added = []
        for entry in raw_week.get("added") or []:
            if not isinstance(entry, dict):
                continue
            item_key = _clean_str(entry.get("key"))
            name = _clean_str(entry.get("name"))
            if item_key is None or name is None:
                continue
            note = entry.get("note") if isinstance(entry.get("note"), str) else None
            added.append(ManualItem(key=item_key, name=name, note=note, done=_clean_bool(entry.get("done"))))

        if removed or overrides or added:
            safe[key] = ManualWeekState(removed=removed, overrides=tuple(overrides), added=tuple(added))
    return safe


def derive_week_key(week: Week, index: int) -> str:
    return _clean_str(week.id) or _clean_str(week.title) or f"week-{index + 1}"


def derive_item_key(item: Item, index: int) -> str:
    return (
        _clean_str(item.manual_key)
        or _clean_str(item.id)
        or _clean_str(item.name)
        or f"item-{index + 1}"
    )


def _apply_override(item: Item, key: str, overrides: tuple[OverrideEntry, ...]) -> Item:
    manual_key = item.manual_key or key
    override = next((entry for entry in overrides if entry.key == manual_key), None)
    if override is None:
        return replace(item, manual_key=manual_key)
    recorded = ManualOverride(done=override.done, note=override.note)
    return replace(
        item,
        manual_key=manual_key,
        manual_override=recorded,
        done=override.done if override.done is not None else item.done,
        note=override.note or item.note,
    )


def _synthesize(added: ManualItem) -> Item:
    return Item(
        id=added.key,
        name=added.name,
        manual=True,
        done=added.done,
        note=added.note,
        manual_key=added.key,
    )


def merge_week(week: Week, amendments: ManualWeekState) -> Week:
    # Keys are computed once, before any amendment is applied
    keyed = [(item, derive_item_key(item, index)) for index, item in enumerate(week.items)]
    removed = set(amendments.removed)

    surviving = [
        _apply_override(item, key, amendments.overrides)
        for item, key in keyed
        if key not in removed
    ]
    present = {key for _, key in keyed if key not in removed}
    appended = [_synthesize(entry) for entry in amendments.added if entry.key not in present]
    return replace(week, items=tuple(surviving + appended))


def apply_manual_overrides(weeks: list[Week], state: Optional[ManualOverrideState]) -> list[Week]:
    """Merge manual amendments into weeks. Pure and idempotent."""
    if not state:
        return list(weeks)
    merged = []
    for index, week in enumerate(weeks):
        amendments = state.get(derive_week_key(week, index))
        if amendments is None:
            merged.append(week)
            continue
        logger.debug(
            "Applying manual overrides to %s: %d removed, %d overridden, %d added",
            week.id,
            len(amendments.removed),
            len(amendments.overrides),
            len(amendments.added),
        )
        merged.append(merge_week(week, amendments))
    return merged


__all__ = [
    "sanitize_manual_state",
    "derive_week_key",
    "derive_item_key",
    "merge_week",
    "apply_manual_overrides",
]
