"""
Project-aware artifact paths.

One repository can host several roadmaps. A project key relocates every
`docs/...` path to `docs/projects/<key>/...`; without a key paths are used
as given.
"""

from __future__ import annotations

import re
from typing import Optional

PROJECTS_PREFIX = "docs/projects/"


def normalize_project_key(value: Optional[str]) -> Optional[str]:
    """Lowercase slug form of a project key, or None when blank."""
    if not isinstance(value, str):
        return None
    normalized = re.sub(r"[^a-z0-9-]+", "-", value.strip().lower())
    normalized = re.sub(r"-+", "-", normalized).strip("-")[:64]
    return normalized or None


def project_aware_path(path: str, project: Optional[str] = None) -> str:
    """Map a repository path into the project's namespace.

    >>> project_aware_path("docs/roadmap.yml", "Mobile App")
    'docs/projects/mobile-app/roadmap.yml'
    """
    key = normalize_project_key(project)
    if not key:
        return path
    if path.startswith("docs/"):
        return f"{PROJECTS_PREFIX}{key}/{path[len('docs/'):]}"
    if path == ".github/workflows/roadmap.yml":
        return f".github/workflows/roadmap-{key}.yml"
    return path


__all__ = ["PROJECTS_PREFIX", "normalize_project_key", "project_aware_path"]
