"""
Core data structures for roadmap status computation.

Weeks, items and checks are produced by the normalizer and flow through the
executor, aggregator, override merger and clarity annotator. Pipeline stages
build new instances with dataclasses.replace() rather than mutating their
input. to_dict() renders the wire shape used in roadmap-status.json.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

CheckType = Literal["files_exist", "http_ok", "sql_exists"]
KNOWN_CHECK_TYPES: frozenset[str] = frozenset({"files_exist", "http_ok", "sql_exists"})


def json_number(value: float) -> int | float:
    """Integral floats serialize as integers (100.0 -> 100)."""
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class Check:
    """A verifiable assertion attached to a roadmap item.

    `type` may hold an unknown value; execution reports it as a failure.
    """

    type: str
    files: tuple[str, ...] = ()
    globs: tuple[str, ...] = ()
    detail: Optional[str] = None
    url: Optional[str] = None
    must_match: tuple[str, ...] = ()
    query: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.files:
            data["files"] = list(self.files)
        if self.globs:
            data["globs"] = list(self.globs)
        if self.detail:
            data["detail"] = self.detail
        if self.url:
            data["url"] = self.url
        if self.must_match:
            data["must_match"] = list(self.must_match)
        if self.query:
            data["query"] = self.query
        return data


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check.

    ok is True/False for a determinate outcome and None when the outcome is
    indeterminate (counted as pending, never as failed).
    """

    ok: Optional[bool]
    diagnostic: Optional[str] = None
    files: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    status_code: Optional[int] = None

    @property
    def status(self) -> str:
        if self.ok is None:
            return "unknown"
        return "pass" if self.ok else "fail"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.ok is not None:
            data["ok"] = self.ok
        data["status"] = self.status
        if self.diagnostic:
            data["diagnostic"] = self.diagnostic
        if self.files:
            data["files"] = list(self.files)
        if self.files or self.missing:
            data["missing"] = list(self.missing)
        if self.status_code is not None:
            data["code"] = self.status_code
        return data


@dataclass(frozen=True)
class ProgressSummary:
    """Pass/fail/pending counts for an item or a week."""

    passed: int = 0
    failed: int = 0
    pending: int = 0
    total: int = 0
    progress_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "pending": self.pending,
            "total": self.total,
            "progressPercent": json_number(self.progress_percent),
        }


@dataclass(frozen=True)
class ManualOverride:
    """Fields a user override changed on an item."""

    done: Optional[bool] = None
    note: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.done is not None:
            data["done"] = self.done
        if self.note:
            data["note"] = self.note
        return data


@dataclass(frozen=True)
class Item:
    """A roadmap item and everything computed about it."""

    id: str
    name: str
    checks: tuple[Check, ...] = ()
    manual: bool = False
    done: Optional[bool] = None
    note: Optional[str] = None
    manual_key: Optional[str] = None
    results: tuple[CheckResult, ...] = ()
    progress: Optional[ProgressSummary] = None
    manual_override: Optional[ManualOverride] = None
    clarity_score: Optional[float] = None
    clarity_missing_details: tuple[str, ...] = ()
    clarity_follow_ups: tuple[str, ...] = ()
    clarity_explanation: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.done is not None:
            data["done"] = self.done
        if self.results:
            data["checks"] = [
                {**check.to_dict(), **result.to_dict()}
                for check, result in zip(self.checks, self.results)
            ]
        else:
            data["checks"] = [check.to_dict() for check in self.checks]
        if self.progress is not None:
            data["progress"] = self.progress.to_dict()
            data["progressPercent"] = json_number(self.progress.progress_percent)
        if self.manual:
            data["manual"] = True
        if self.note:
            data["note"] = self.note
        if self.manual_key:
            data["manualKey"] = self.manual_key
        if self.manual_override is not None:
            data["manualOverride"] = self.manual_override.to_dict()
        if self.clarity_score is not None:
            data["clarityScore"] = self.clarity_score
        if self.clarity_missing_details:
            data["clarityMissingDetails"] = list(self.clarity_missing_details)
        if self.clarity_follow_ups:
            data["clarityFollowUps"] = list(self.clarity_follow_ups)
        if self.clarity_explanation:
            data["clarityExplanation"] = self.clarity_explanation
        return data

    def to_document(self) -> dict[str, Any]:
        """Render the item as it appears in a normalized roadmap document."""
        data: dict[str, Any] = {"id": self.id, "name": self.name, "checks": [c.to_dict() for c in self.checks]}
        if self.manual:
            data["manual"] = True
        if self.done is not None:
            data["done"] = self.done
        if self.note:
            data["note"] = self.note
        if self.manual_key:
            data["manualKey"] = self.manual_key
        return data


@dataclass(frozen=True)
class Week:
    """A group of roadmap items (a week, milestone or phase slice)."""

    id: str
    title: str
    items: tuple[Item, ...] = ()
    progress: Optional[ProgressSummary] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "items": [item.to_dict() for item in self.items],
        }
        if self.progress is not None:
            data["progress"] = self.progress.to_dict()
            data["progressPercent"] = json_number(self.progress.progress_percent)
        return data


@dataclass(frozen=True)
class OverrideEntry:
    key: str
    done: Optional[bool] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class ManualItem:
    key: str
    name: str
    note: Optional[str] = None
    done: Optional[bool] = None


@dataclass(frozen=True)
class ManualWeekState:
    """User-authored amendments for one week."""

    removed: tuple[str, ...] = ()
    overrides: tuple[OverrideEntry, ...] = ()
    added: tuple[ManualItem, ...] = ()


# week key -> amendments; owned by an external store, read-only here
ManualOverrideState = dict[str, ManualWeekState]


@dataclass(frozen=True)
class DiscoveredBacklogItem:
    id: str
    title: str
    status: str = "complete"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "status": self.status}


@dataclass
class StatusReport:
    """The canonical status artifact."""

    generated_at: str
    owner: str
    repo: str
    branch: str
    weeks: list[Week] = field(default_factory=list)
    project: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "generated_at": self.generated_at,
            "owner": self.owner,
            "repo": self.repo,
            "branch": self.branch,
        }
        if self.project:
            data["project"] = self.project
        data["weeks"] = [week.to_dict() for week in self.weeks]
        return data


__all__ = [
    "CheckType",
    "KNOWN_CHECK_TYPES",
    "json_number",
    "Check",
    "CheckResult",
    "ProgressSummary",
    "ManualOverride",
    "Item",
    "Week",
    "OverrideEntry",
    "ManualItem",
    "ManualWeekState",
    "ManualOverrideState",
    "DiscoveredBacklogItem",
    "StatusReport",
]
