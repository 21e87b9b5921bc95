"""
Local manual-override store.

Manual amendments are kept in a JSON file of records keyed by owner, repo
and project:

    {"records": [{"owner": "acme", "repo": "app", "project_id": "",
                  "state": {...}, "updated_at": "..."}]}

Owner and repo keys are compared lowercase; the project id is the
normalized project key ("" for the default project).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

from roadmap_status.models import ManualOverrideState
from roadmap_status.overrides import sanitize_manual_state
from roadmap_status.project_paths import normalize_project_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualStateResult:
    """Outcome of a store lookup; `available` is False when the store failed."""

    available: bool
    state: ManualOverrideState = field(default_factory=dict)
    updated_at: Optional[str] = None


class ManualStateStore(Protocol):
    async def load_manual_state(
        self, owner: str, repo: str, project: Optional[str] = None
    ) -> ManualStateResult: ...


class LocalManualStore:
    """ManualStateStore backed by a JSON file."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def _read_records(self) -> list[dict[str, Any]]:
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        records = payload.get("records") if isinstance(payload, dict) else None
        return [record for record in records or [] if isinstance(record, dict)]

    async def load_manual_state(
        self, owner: str, repo: str, project: Optional[str] = None
    ) -> ManualStateResult:
        owner_key = (owner or "").strip().lower()
        repo_key = (repo or "").strip().lower()
        project_id = normalize_project_key(project) or ""
        if not owner_key or not repo_key or not self.path.exists():
            return ManualStateResult(available=True)

        try:
            records = self._read_records()
        except (OSError, ValueError) as exc:
            logger.warning("Manual store %s is unreadable: %s", self.path, exc)
            return ManualStateResult(available=False)

        for record in records:
            if (
                str(record.get("owner", "")).lower() == owner_key
                and str(record.get("repo", "")).lower() == repo_key
                and (record.get("project_id") or "") == project_id
            ):
                updated_at = record.get("updated_at")
                return ManualStateResult(
                    available=True,
                    state=sanitize_manual_state(record.get("state")),
                    updated_at=updated_at if isinstance(updated_at, str) else None,
                )
        return ManualStateResult(available=True)


__all__ = ["ManualStateResult", "ManualStateStore", "LocalManualStore"]
