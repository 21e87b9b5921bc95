"""
Progress aggregation.

An item with checks counts each check once: passed (ok is True), failed
(ok is False) or pending (ok is None). An item without checks is a single
unit counted by its explicit done flag. Week progress sums the counts of all
its items, so weeks are weighted by check count rather than item count.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal

from roadmap_status.models import Item, ProgressSummary, Week


def round2(value: float) -> float:
    """Round half-up to two decimals (66.665 -> 66.67)."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def percent(passed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round2(100 * passed / total)


def summarize_counts(passed: int, failed: int, pending: int) -> ProgressSummary:
    total = passed + failed + pending
    return ProgressSummary(
        passed=passed,
        failed=failed,
        pending=pending,
        total=total,
        progress_percent=percent(passed, total),
    )


def summarize_item(item: Item) -> ProgressSummary:
    if item.checks:
        outcomes = [result.ok for result in item.results]
        passed = sum(1 for ok in outcomes if ok is True)
        failed = sum(1 for ok in outcomes if ok is False)
        # Checks that have not produced a result yet are pending
        pending = len(item.checks) - passed - failed
        return summarize_counts(passed, failed, pending)
    if item.done is True:
        return summarize_counts(1, 0, 0)
    if item.done is False:
        return summarize_counts(0, 1, 0)
    return summarize_counts(0, 0, 1)


def derive_done(item: Item, summary: ProgressSummary) -> bool | None:
    """done for a checked item; an explicit manual override wins."""
    if item.manual_override is not None and item.manual_override.done is not None:
        return item.manual_override.done
    if not item.checks:
        return item.done
    return (
        summary.failed == 0
        and summary.pending == 0
        and summary.total > 0
        and summary.passed == summary.total
    )


def finalize_item(item: Item) -> Item:
    """Attach progress and derive done."""
    summary = summarize_item(item)
    return replace(item, progress=summary, done=derive_done(item, summary))


def aggregate_week(week: Week) -> Week:
    items = tuple(finalize_item(item) for item in week.items)
    summaries = [item.progress for item in items if item.progress is not None]
    progress = summarize_counts(
        sum(summary.passed for summary in summaries),
        sum(summary.failed for summary in summaries),
        sum(summary.pending for summary in summaries),
    )
    return replace(week, items=items, progress=progress)


def aggregate_weeks(weeks: list[Week]) -> list[Week]:
    return [aggregate_week(week) for week in weeks]


__all__ = [
    "round2",
    "percent",
    "summarize_counts",
    "summarize_item",
    "derive_done",
    "finalize_item",
    "aggregate_week",
    "aggregate_weeks",
]
