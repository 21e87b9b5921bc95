"""
Discovery sweep.

Finds work that was completed outside the roadmap: database assertions the
read-only probe confirms and source paths matching configured globs. Each
hit becomes a backlog candidate unless an item already marked done in the
last status report covers it.

Configuration lives in docs/discover.yml (project-aware):

    db_queries:
      - ext:pgcrypto
    code_globs:
      - src/screens/**/*.{tsx,ts}

Usage:
    from roadmap_status.discovery import DiscoveryRequest, DiscoveryDeps, run_discovery

    outcome = await run_discovery(
        DiscoveryRequest(owner="acme", repo="app", probe_url=url),
        DiscoveryDeps(file_accessor=repo, tree_lister=repo, writer=repo),
    )
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import yaml

from roadmap_status.emitter import WriteManifest, commit_message, safe_put
from roadmap_status.exceptions import CollaboratorUnavailable
from roadmap_status.globbing import match_globs
from roadmap_status.logging_config import LogContext, get_logger
from roadmap_status.models import DiscoveredBacklogItem
from roadmap_status.normalize import slugify
from roadmap_status.probe import ProbeHeaders, ReadOnlyProbe
from roadmap_status.project_paths import project_aware_path
from roadmap_status.repository import ArtifactWriter, FileAccessor, TreeLister

logger = get_logger(__name__)

DEFAULT_DB_QUERIES = ("ext:pgcrypto",)
DEFAULT_CODE_GLOBS = ("src/screens/**/*.{tsx,ts}",)

DISCOVER_CONFIG_PATH = "docs/discover.yml"
STATUS_PATH = "docs/roadmap-status.json"
BACKLOG_PATH = "docs/backlog-discovered.yml"
SUMMARY_PATH = "docs/summary.txt"


@dataclass
class DiscoveryConfig:
    db_queries: list[str] = field(default_factory=lambda: list(DEFAULT_DB_QUERIES))
    code_globs: list[str] = field(default_factory=lambda: list(DEFAULT_CODE_GLOBS))
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"db_queries": self.db_queries, "code_globs": self.code_globs, "notes": self.notes}


@dataclass(frozen=True)
class ProbeFinding:
    query: str
    ok: bool
    why: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"q": self.query, "ok": self.ok}
        if self.why:
            data["why"] = self.why
        return data


@dataclass(frozen=True)
class DiscoveryRequest:
    owner: str
    repo: str
    branch: str = "main"
    project: Optional[str] = None
    probe_url: Optional[str] = None
    probe_headers: ProbeHeaders = field(default_factory=dict)
    credential: Optional[str] = None


@dataclass
class DiscoveryDeps:
    """Collaborators used by a discovery sweep."""

    file_accessor: FileAccessor
    tree_lister: TreeLister
    writer: ArtifactWriter
    probe: ReadOnlyProbe = field(default_factory=ReadOnlyProbe)


@dataclass
class DiscoveryOutcome:
    config: DiscoveryConfig
    probes: list[ProbeFinding]
    matched_paths: list[str]
    items: list[DiscoveredBacklogItem]
    manifest: WriteManifest

    @property
    def ok(self) -> bool:
        return self.manifest.ok

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "discovered": len(self.items),
            "items": [item.to_dict() for item in self.items],
            "wrote": list(self.manifest.wrote),
            "config": self.config.to_dict(),
            "db": [finding.to_dict() for finding in self.probes],
            "code_matches": list(self.matched_paths),
        }


def _string_list(value: Any, fallback: tuple[str, ...]) -> list[str]:
    if not isinstance(value, list):
        return list(fallback)
    cleaned = [entry.strip() for entry in value if isinstance(entry, str) and entry.strip()]
    return cleaned or list(fallback)


def parse_discover_config(raw: Optional[str], path_label: str) -> DiscoveryConfig:
    """Parse discover.yml, falling back to defaults with an explanatory note."""
    if not raw:
        return DiscoveryConfig(notes=[f"{path_label} not found; using defaults"])
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        return DiscoveryConfig(notes=[f"Failed to parse {path_label} ({exc}); using defaults"])
    if not isinstance(parsed, dict):
        return DiscoveryConfig(notes=[f"{path_label} is not a mapping; using defaults"])
    return DiscoveryConfig(
        db_queries=_string_list(parsed.get("db_queries", parsed.get("dbQueries")), DEFAULT_DB_QUERIES),
        code_globs=_string_list(parsed.get("code_globs", parsed.get("codeGlobs")), DEFAULT_CODE_GLOBS),
    )


def collect_done_names(status_raw: Optional[str]) -> set[str]:
    """Names of items marked done in a previous roadmap-status.json."""
    if not status_raw:
        return set()
    try:
        parsed = json.loads(status_raw)
    except ValueError:
        logger.warning("Previous status artifact is not valid JSON; ignoring it")
        return set()
    names: set[str] = set()
    for week in parsed.get("weeks", []) if isinstance(parsed, dict) else []:
        for item in week.get("items", []) if isinstance(week, dict) else []:
            if isinstance(item, dict) and item.get("done") and isinstance(item.get("name"), str):
                names.add(item["name"])
    return names


def already_tracked(title: str, done_names: set[str]) -> bool:
    lower = title.lower()
    return any(lower == name or name in lower for name in (n.lower() for n in done_names) if name)


def discovered_items(
    db_successes: list[str],
    matched_paths: list[str],
    done_names: set[str],
) -> list[DiscoveredBacklogItem]:
    """Backlog candidates not already covered by a done item; ids are unique."""
    candidates = [(f"db-{query}", f"Database check present: {query}") for query in db_successes]
    candidates += [(f"code-{path}", f"Code path matched: {path}") for path in matched_paths]

    items: list[DiscoveredBacklogItem] = []
    seen: set[str] = set()
    for id_source, title in candidates:
        if already_tracked(title, done_names):
            continue
        base = slugify(id_source, "item")
        item_id = base
        counter = 2
        while item_id in seen:
            item_id = f"{base}-{counter}"
            counter += 1
        seen.add(item_id)
        items.append(DiscoveredBacklogItem(id=item_id, title=title))
    return items


def backlog_yaml(items: list[DiscoveredBacklogItem], config_label: str) -> str:
    header = f"# Auto-discovered items generated from {config_label}\n"
    if not items:
        return header + "# (none detected)\n"
    body = yaml.safe_dump(
        [item.to_dict() for item in items],
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    )
    return header + body


def build_summary(
    request: DiscoveryRequest,
    config: DiscoveryConfig,
    probes: list[ProbeFinding],
    matched_paths: list[str],
    items: list[DiscoveredBacklogItem],
    generated_at: str,
) -> str:
    successes = [finding.query for finding in probes if finding.ok]
    failures = [finding for finding in probes if not finding.ok]

    def bullets(entries: list[str]) -> list[str]:
        return [f"- {entry}" for entry in entries] or ["- none"]

    lines = [f"Repo: {request.owner}/{request.repo}"]
    if request.project:
        lines.append(f"Project: {request.project}")
    lines += [
        f"Branch: {request.branch}",
        f"Generated: {generated_at}",
        "",
        "Discovery configuration:",
        f"- db_queries ({len(config.db_queries)}): {', '.join(config.db_queries) or '(none)'}",
        f"- code_globs ({len(config.code_globs)}): {', '.join(config.code_globs) or '(none)'}",
    ]
    if config.notes:
        lines += ["", "Notes:", *bullets(config.notes)]
    lines += ["", f"Successful database probes ({len(successes)}):", *bullets(successes)]
    lines += [
        "",
        f"Failed database probes ({len(failures)}):",
        *bullets([f"{f.query} → {f.why}" if f.why else f.query for f in failures]),
    ]
    lines += ["", f"Matched code paths ({len(matched_paths)}):", *bullets(matched_paths)]
    lines += ["", f"Newly discovered backlog items ({len(items)}):", *bullets([i.title for i in items])]
    return "\n".join(lines) + "\n"


async def probe_queries(request: DiscoveryRequest, probe: ReadOnlyProbe, queries: list[str]) -> list[ProbeFinding]:
    if not request.probe_url:
        return [ProbeFinding(query, False, "READ_ONLY_CHECKS_URL not configured") for query in queries]

    async def run(query: str) -> ProbeFinding:
        try:
            outcome = await probe.probe(request.probe_url or "", query, request.probe_headers)
        except Exception as exc:
            logger.error("Probe raised unexpectedly", exc_info=True, query=query, error=str(exc))
            return ProbeFinding(query, False, f"probe error: {exc}")
        if outcome.ok:
            return ProbeFinding(query, True)
        why = " ".join(part for part in (str(outcome.status or ""), outcome.why or "") if part).strip()
        return ProbeFinding(query, False, why or None)

    return list(await asyncio.gather(*(run(query) for query in queries)))


async def _read_optional(deps: DiscoveryDeps, request: DiscoveryRequest, path: str) -> Optional[str]:
    try:
        return await deps.file_accessor.get_file_raw(
            request.owner, request.repo, path, ref=request.branch, credential=request.credential
        )
    except CollaboratorUnavailable as exc:
        logger.warning("Could not read optional file", path=path, reason=exc.reason)
        return None


async def run_discovery(request: DiscoveryRequest, deps: DiscoveryDeps) -> DiscoveryOutcome:
    """Run one discovery sweep and write its artifacts."""
    with LogContext(owner=request.owner, repo=request.repo, sweep="discover"):
        return await _sweep(request, deps)


async def _sweep(request: DiscoveryRequest, deps: DiscoveryDeps) -> DiscoveryOutcome:
    done_names = collect_done_names(
        await _read_optional(deps, request, project_aware_path(STATUS_PATH, request.project))
    )

    config_path = project_aware_path(DISCOVER_CONFIG_PATH, request.project)
    config = parse_discover_config(await _read_optional(deps, request, config_path), config_path)

    probes = await probe_queries(request, deps.probe, config.db_queries)

    try:
        tree = await deps.tree_lister.list_tree(
            request.owner, request.repo, ref=request.branch, credential=request.credential
        )
    except CollaboratorUnavailable as exc:
        logger.warning("Tree listing unavailable", reason=exc.reason)
        config.notes.append(f"Tree listing unavailable: {exc.reason}")
        tree = []
    matched_paths = match_globs(tree, config.code_globs)

    items = discovered_items([p.query for p in probes if p.ok], matched_paths, done_names)
    logger.info(
        "Discovery finished",
        items=len(items),
        probes_ok=sum(1 for p in probes if p.ok),
        paths_matched=len(matched_paths),
    )

    manifest = WriteManifest()
    generated_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    for path, content, subject in (
        (BACKLOG_PATH, backlog_yaml(items, config_path), "update backlog-discovered"),
        (
            SUMMARY_PATH,
            build_summary(request, config, probes, matched_paths, items, generated_at),
            "update summary",
        ),
    ):
        await safe_put(
            deps.writer,
            manifest,
            request.owner,
            request.repo,
            project_aware_path(path, request.project),
            content,
            request.branch,
            commit_message(subject, request.project),
            credential=request.credential,
        )
    return DiscoveryOutcome(
        config=config,
        probes=probes,
        matched_paths=matched_paths,
        items=items,
        manifest=manifest,
    )


__all__ = [
    "DEFAULT_DB_QUERIES",
    "DEFAULT_CODE_GLOBS",
    "DiscoveryConfig",
    "ProbeFinding",
    "DiscoveryRequest",
    "DiscoveryDeps",
    "DiscoveryOutcome",
    "parse_discover_config",
    "collect_done_names",
    "already_tracked",
    "discovered_items",
    "backlog_yaml",
    "build_summary",
    "probe_queries",
    "run_discovery",
]
