"""
Repository collaborators.

The engine reads roadmap files, lists source trees and writes artifacts
through these protocols; adapters decide where the repository lives.
LocalRepository serves a checkout on disk, GitHubRepository
(roadmap_status.github) serves the GitHub contents API.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from roadmap_status.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = frozenset({".git", "node_modules", "__pycache__"})


@runtime_checkable
class FileAccessor(Protocol):
    async def get_file_raw(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> Optional[str]:
        """Return file text, or None when the file does not exist."""
        ...


@runtime_checkable
class TreeLister(Protocol):
    async def list_tree(
        self,
        owner: str,
        repo: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> list[str]:
        """Return every file path in the tree, slash-separated."""
        ...


@runtime_checkable
class ArtifactWriter(Protocol):
    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        branch: str,
        message: str,
        credential: Optional[str] = None,
    ) -> None:
        """Create or replace a file; raises on failure."""
        ...


class LocalRepository:
    """A repository checkout on the local filesystem.

    Args:
        root: Checkout directory that files are read from.
        output_dir: Directory artifacts are written under (defaults to root).
    """

    def __init__(self, root: str | os.PathLike[str], output_dir: str | os.PathLike[str] | None = None):
        self.root = Path(root).resolve()
        self.output_dir = Path(output_dir).resolve() if output_dir else self.root

    def _resolve(self, base: Path, path: str) -> Path:
        target = (base / path.lstrip("/")).resolve()
        if target != base and base not in target.parents:
            raise CollaboratorUnavailable("local repository", f"path escapes repository: {path}")
        return target

    async def get_file_raw(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> Optional[str]:
        target = self._resolve(self.root, path)
        if not target.is_file():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            # Binary files still exist
            return target.read_bytes().decode("utf-8", errors="replace")
        except OSError as exc:
            raise CollaboratorUnavailable("local repository", f"{path}: {exc.strerror or exc}") from exc

    async def list_tree(
        self,
        owner: str,
        repo: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> list[str]:
        paths: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(name for name in dirnames if name not in SKIPPED_DIRECTORIES)
            relative = Path(dirpath).relative_to(self.root)
            for filename in sorted(filenames):
                paths.append((relative / filename).as_posix())
        return paths

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        branch: str,
        message: str,
        credential: Optional[str] = None,
    ) -> None:
        target = self._resolve(self.output_dir, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise CollaboratorUnavailable("local repository", f"{path}: {exc.strerror or exc}") from exc
        logger.debug("Wrote %s (%s)", target, message)


__all__ = ["FileAccessor", "TreeLister", "ArtifactWriter", "LocalRepository", "SKIPPED_DIRECTORIES"]
