"""
Status computation orchestration.

compute_status() runs one full pass over a repository's roadmap:

    fetch docs/roadmap.yml -> normalize -> execute checks -> aggregate
    -> merge manual overrides -> re-aggregate -> annotate clarity -> emit

Every record logged during the pass carries the same run_id, owner and repo.

Usage:
    from roadmap_status.runner import StatusDeps, StatusRequest, compute_status

    run = await compute_status(
        StatusRequest(owner="acme", repo="app", branch="main"),
        StatusDeps(file_accessor=repo, writer=repo),
    )
    print(run.manifest.wrote)
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from roadmap_status.checks import CheckContext, execute_weeks
from roadmap_status.clarity import ClarityScorer, annotate_clarity
from roadmap_status.emitter import WriteManifest, emit_status_artifacts
from roadmap_status.exceptions import MissingInputError
from roadmap_status.logging_config import LogContext, get_logger
from roadmap_status.manual_store import ManualStateStore
from roadmap_status.models import ManualOverrideState, StatusReport, Week
from roadmap_status.normalize import load_roadmap_text, normalize_roadmap_document
from roadmap_status.overrides import apply_manual_overrides
from roadmap_status.probe import ProbeHeaders, ReadOnlyProbe
from roadmap_status.progress import aggregate_weeks
from roadmap_status.project_paths import normalize_project_key, project_aware_path
from roadmap_status.repository import ArtifactWriter, FileAccessor

logger = get_logger(__name__)

ROADMAP_PATH = "docs/roadmap.yml"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class StatusRequest:
    owner: str
    repo: str
    branch: str = "main"
    project: Optional[str] = None
    probe_url: Optional[str] = None
    probe_headers: ProbeHeaders = field(default_factory=dict)
    credential: Optional[str] = None
    concurrency: int = 1


@dataclass
class StatusDeps:
    """Collaborators for one status computation.

    writer, manual_store and clarity_scorer are optional: without a writer
    nothing is emitted, without a store no overrides apply, and without a
    scorer items are left unannotated.
    """

    file_accessor: FileAccessor
    writer: Optional[ArtifactWriter] = None
    probe: ReadOnlyProbe = field(default_factory=ReadOnlyProbe)
    manual_store: Optional[ManualStateStore] = None
    clarity_scorer: Optional[ClarityScorer] = None
    cancel_event: Optional[asyncio.Event] = None
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)


@dataclass
class StatusRun:
    report: StatusReport
    manifest: WriteManifest

    def to_dict(self) -> dict[str, object]:
        return self.manifest.to_dict()


async def load_manual_state(deps: StatusDeps, request: StatusRequest, project: Optional[str]) -> ManualOverrideState:
    if deps.manual_store is None:
        return {}
    try:
        result = await deps.manual_store.load_manual_state(request.owner, request.repo, project)
    except Exception as exc:
        logger.warning("Failed to load manual roadmap overrides", error=str(exc))
        return {}
    if not result.available:
        logger.warning("Manual override store unavailable; continuing without overrides")
        return {}
    return result.state


async def build_weeks(
    raw_roadmap: str,
    request: StatusRequest,
    deps: StatusDeps,
    project: Optional[str],
) -> list[Week]:
    """Everything between the raw document and the report."""
    weeks = normalize_roadmap_document(load_roadmap_text(raw_roadmap))
    context = CheckContext(
        owner=request.owner,
        repo=request.repo,
        file_accessor=deps.file_accessor,
        ref=request.branch,
        credential=request.credential,
        probe=deps.probe,
        probe_url=request.probe_url,
        probe_headers=dict(request.probe_headers),
    )
    weeks = aggregate_weeks(await execute_weeks(weeks, context, concurrency=request.concurrency))

    state = await load_manual_state(deps, request, project)
    if state:
        weeks = aggregate_weeks(apply_manual_overrides(weeks, state))

    if deps.clarity_scorer is not None:
        weeks = await annotate_clarity(weeks, deps.clarity_scorer, cancel_event=deps.cancel_event)
    return weeks


async def compute_status(request: StatusRequest, deps: StatusDeps, emit: bool = True) -> StatusRun:
    """Compute the status report and, when a writer is present, emit artifacts.

    Raises:
        MissingInputError: the roadmap document does not exist.
        StructuralError: the roadmap document is malformed.
        CollaboratorUnavailable: the roadmap document could not be fetched.
    """
    project = normalize_project_key(request.project)
    run_id = uuid.uuid4().hex[:12]
    with LogContext(run_id=run_id, owner=request.owner, repo=request.repo):
        roadmap_path = project_aware_path(ROADMAP_PATH, project)
        raw = await deps.file_accessor.get_file_raw(
            request.owner, request.repo, roadmap_path, ref=request.branch, credential=request.credential
        )
        if raw is None:
            raise MissingInputError(roadmap_path)

        weeks = await build_weeks(raw, request, deps, project)
        report = StatusReport(
            generated_at=utc_timestamp(deps.clock()),
            owner=request.owner,
            repo=request.repo,
            branch=request.branch,
            weeks=weeks,
            project=project,
        )
        logger.info(
            "Computed status",
            weeks=len(weeks),
            items=sum(len(week.items) for week in weeks),
            project=project,
        )

        manifest = WriteManifest()
        if emit and deps.writer is not None:
            manifest = await emit_status_artifacts(report, deps.writer, credential=request.credential)
        return StatusRun(report=report, manifest=manifest)


__all__ = [
    "ROADMAP_PATH",
    "utc_timestamp",
    "StatusRequest",
    "StatusDeps",
    "StatusRun",
    "load_manual_state",
    "build_weeks",
    "compute_status",
]
