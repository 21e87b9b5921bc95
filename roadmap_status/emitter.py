"""
Status and plan artifact emission.

A StatusReport is rendered twice, as canonical JSON (roadmap-status.json)
and as a Markdown plan (project-plan.md), and each rendering is written to
both the current docs/ location and the legacy docs/roadmap/ location.

A failed write never aborts the others: the manifest records it as
"<path> (FAILED: <reason>)" and processing continues.

Usage:
    from roadmap_status.emitter import emit_status_artifacts

    manifest = await emit_status_artifacts(report, writer=repo)
    print(manifest.wrote)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from roadmap_status.models import Item, ProgressSummary, StatusReport, Week
from roadmap_status.progress import round2
from roadmap_status.project_paths import normalize_project_key, project_aware_path
from roadmap_status.repository import ArtifactWriter

logger = logging.getLogger(__name__)

STATUS_PATHS = ("docs/roadmap-status.json", "docs/roadmap/roadmap-status.json")
PLAN_PATHS = ("docs/project-plan.md", "docs/roadmap/project-plan.md")


@dataclass
class WriteManifest:
    """Paths written during one emission, with failure markers."""

    wrote: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, object]:
        return {"ok": self.ok, "wrote": list(self.wrote)}


def commit_message(subject: str, project: Optional[str] = None) -> str:
    scope = normalize_project_key(project) or "roadmap"
    return f"chore({scope}): {subject} [skip ci]"


async def safe_put(
    writer: ArtifactWriter,
    manifest: WriteManifest,
    owner: str,
    repo: str,
    path: str,
    content: str,
    branch: str,
    message: str,
    credential: Optional[str] = None,
) -> None:
    """Write one artifact, recording success or failure in the manifest."""
    try:
        await writer.put_file(owner, repo, path, content, branch, message, credential=credential)
    except Exception as exc:
        reason = getattr(exc, "reason", None) or str(exc) or type(exc).__name__
        logger.error("Failed to write %s: %s", path, reason)
        manifest.wrote.append(f"{path} (FAILED: {reason})")
        manifest.failures.append(f"{path}: {reason}")
        return
    manifest.wrote.append(path)


def render_status_json(report: StatusReport) -> str:
    """Canonical pretty JSON with keys in fixed order."""
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def format_percent_label(value: Optional[float]) -> Optional[str]:
    """Two decimals with trailing zeros trimmed: 66.67%, 12.5%, 100%."""
    if value is None:
        return None
    fixed = f"{round2(value):.2f}"
    if fixed.endswith(".00"):
        fixed = fixed[:-3]
    elif fixed.endswith("0"):
        fixed = fixed[:-1]
    return f"{fixed}%"


def _progress_label(progress: Optional[ProgressSummary], separator: str) -> Optional[str]:
    if progress is None:
        return None
    label = format_percent_label(progress.progress_percent)
    if progress.total > 0:
        return f"{label}{separator}{progress.passed}/{progress.total}"
    return label


def _week_heading(week: Week) -> str:
    title = week.title or week.id or "Untitled week"
    if week.progress is None:
        return f"## {title}"
    label = format_percent_label(week.progress.progress_percent)
    if week.progress.total > 0:
        return f"## {title} — {label} complete ({week.progress.passed}/{week.progress.total})"
    return f"## {title} — {label} complete"


def _item_line(item: Item) -> str:
    badge = "✅" if item.done else "❌"
    name = item.name or item.id or "Untitled task"
    identifier = f" ({item.id})" if item.id else ""
    label = _progress_label(item.progress, " – ")
    detail = f" ({label})" if label else ""
    return f"{badge}{detail} **{name}**{identifier}"


def render_plan_markdown(report: StatusReport) -> str:
    lines = ["# Project Plan", f"Generated: {report.generated_at}", ""]
    for week in report.weeks:
        lines.append(_week_heading(week))
        lines.append("")
        lines.extend(_item_line(item) for item in week.items)
        lines.append("")
    return "\n".join(lines) + "\n"


async def emit_status_artifacts(
    report: StatusReport,
    writer: ArtifactWriter,
    credential: Optional[str] = None,
) -> WriteManifest:
    """Write status JSON and plan Markdown to the current and legacy paths."""
    manifest = WriteManifest()
    status_json = render_status_json(report)
    plan = render_plan_markdown(report)

    for paths, content, subject in (
        (STATUS_PATHS, status_json, "update status"),
        (PLAN_PATHS, plan, "update plan"),
    ):
        message = commit_message(subject, report.project)
        for path in paths:
            await safe_put(
                writer,
                manifest,
                report.owner,
                report.repo,
                project_aware_path(path, report.project),
                content,
                report.branch,
                message,
                credential=credential,
            )
    return manifest


__all__ = [
    "STATUS_PATHS",
    "PLAN_PATHS",
    "WriteManifest",
    "commit_message",
    "safe_put",
    "render_status_json",
    "format_percent_label",
    "render_plan_markdown",
    "emit_status_artifacts",
]
