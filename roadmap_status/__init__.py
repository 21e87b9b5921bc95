"""
roadmap-status: live completion status for repository roadmaps.

Normalizes roadmap documents (docs/roadmap.yml) of several shapes, verifies
each item against real signals, and emits a status artifact plus a
human-readable plan.

PIPELINE:
- Document normalization (canonical weeks, phased milestones, task strings)
- Check execution (files_exist, http_ok, sql_exists via a read-only probe)
- Progress aggregation weighted by check count
- Manual override merging (remove, override, add)
- Clarity annotation (heuristic or model-backed)
- Artifact emission (roadmap-status.json, project-plan.md)

DISCOVERY:
- Read-only database probes and source-tree globs surface completed work
  that never landed on the roadmap (backlog-discovered.yml, summary.txt)
"""

from __future__ import annotations

import importlib
from typing import Any

from roadmap_status.__version__ import __version__

_EXPORT_MAP = {
    # Models
    "Check": ("roadmap_status.models", "Check"),
    "CheckResult": ("roadmap_status.models", "CheckResult"),
    "Item": ("roadmap_status.models", "Item"),
    "Week": ("roadmap_status.models", "Week"),
    "ProgressSummary": ("roadmap_status.models", "ProgressSummary"),
    "StatusReport": ("roadmap_status.models", "StatusReport"),
    # Pipeline
    "normalize_roadmap_document": ("roadmap_status.normalize", "normalize_roadmap_document"),
    "normalize_roadmap_yaml": ("roadmap_status.normalize", "normalize_roadmap_yaml"),
    "parse_task_string": ("roadmap_status.status_markers", "parse_task_string"),
    "parse_status_value": ("roadmap_status.status_markers", "parse_status_value"),
    "execute_check": ("roadmap_status.checks", "execute_check"),
    "execute_weeks": ("roadmap_status.checks", "execute_weeks"),
    "aggregate_weeks": ("roadmap_status.progress", "aggregate_weeks"),
    "apply_manual_overrides": ("roadmap_status.overrides", "apply_manual_overrides"),
    "annotate_clarity": ("roadmap_status.clarity", "annotate_clarity"),
    "emit_status_artifacts": ("roadmap_status.emitter", "emit_status_artifacts"),
    "compute_status": ("roadmap_status.runner", "compute_status"),
    "run_discovery": ("roadmap_status.discovery", "run_discovery"),
    # Collaborators
    "LocalRepository": ("roadmap_status.repository", "LocalRepository"),
    "GitHubRepository": ("roadmap_status.github", "GitHubRepository"),
    "ReadOnlyProbe": ("roadmap_status.probe", "ReadOnlyProbe"),
    "LocalManualStore": ("roadmap_status.manual_store", "LocalManualStore"),
    "Settings": ("roadmap_status.config", "Settings"),
    # Errors
    "RoadmapStatusError": ("roadmap_status.exceptions", "RoadmapStatusError"),
    "StructuralError": ("roadmap_status.exceptions", "StructuralError"),
    "MissingInputError": ("roadmap_status.exceptions", "MissingInputError"),
    "CollaboratorUnavailable": ("roadmap_status.exceptions", "CollaboratorUnavailable"),
    "ConfigurationError": ("roadmap_status.exceptions", "ConfigurationError"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public symbols to avoid heavy import side effects."""
    try:
        module_name, attr_name = _EXPORT_MAP[name]
    except KeyError as exc:
        raise AttributeError(f"module 'roadmap_status' has no attribute {name!r}") from exc
    module = importlib.import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))


__all__ = ["__version__", *_EXPORT_MAP]
