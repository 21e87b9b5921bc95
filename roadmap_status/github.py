"""
Read-only GitHub repository adapter.

Files are fetched through the contents API when a token is available, with a
fallback to raw.githubusercontent.com; tree listings use the recursive git
trees API. Writes are not supported here: artifacts are written through a
LocalRepository.

Usage:
    from roadmap_status.github import GitHubRepository

    async with GitHubRepository(token=settings.github_token) as github:
        text = await github.get_file_raw("acme", "app", "docs/roadmap.yml", ref="main")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from roadmap_status.exceptions import CollaboratorUnavailable
from roadmap_status.http_client import DEFAULT_TIMEOUT, create_client_session

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
RAW_URL = "https://raw.githubusercontent.com"
API_VERSION = "2022-11-28"
RAW_ACCEPT = "application/vnd.github.v3.raw"


def encode_repo_path(path: str) -> str:
    return "/".join(quote(segment, safe="") for segment in path.strip("/").split("/"))


class GitHubRepository:
    """FileAccessor and TreeLister backed by GitHub.

    Args:
        token: Default credential; per-call credentials take precedence.
        session: Optional shared aiohttp session (not closed by this adapter).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        api_url: str = API_URL,
        raw_url: str = RAW_URL,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> GitHubRepository:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_client_session(timeout=DEFAULT_TIMEOUT)
        return self._session

    def _api_headers(self, credential: Optional[str], accept: str = RAW_ACCEPT) -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": API_VERSION}
        token = credential or self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get_text(self, url: str, headers: dict[str, str]) -> tuple[int, str]:
        try:
            async with self._get_session().get(url, headers=headers) as response:
                return response.status, await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise CollaboratorUnavailable("github", str(exc) or type(exc).__name__) from exc

    async def get_file_raw(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> Optional[str]:
        encoded = encode_repo_path(path)
        if credential or self.token:
            url = f"{self.api_url}/repos/{owner}/{repo}/contents/{encoded}"
            if ref:
                url += f"?ref={quote(ref, safe='')}"
            status, body = await self._get_text(url, self._api_headers(credential))
            if 200 <= status < 300:
                return body
            logger.debug("Contents API returned %d for %s; trying raw host", status, path)

        branch = quote(ref or "main", safe="")
        status, body = await self._get_text(
            f"{self.raw_url}/{owner}/{repo}/{branch}/{encoded}",
            {"Accept": RAW_ACCEPT},
        )
        if 200 <= status < 300:
            return body
        if status >= 500:
            raise CollaboratorUnavailable("github", f"HTTP {status} fetching {path}")
        return None

    async def list_tree(
        self,
        owner: str,
        repo: str,
        ref: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> list[str]:
        url = f"{self.api_url}/repos/{owner}/{repo}/git/trees/{quote(ref or 'main', safe='')}?recursive=1"
        headers = self._api_headers(credential, accept="application/vnd.github+json")
        try:
            async with self._get_session().get(url, headers=headers) as response:
                if response.status != 200:
                    raise CollaboratorUnavailable("github", f"HTTP {response.status} listing tree")
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise CollaboratorUnavailable("github", str(exc) or type(exc).__name__) from exc

        if payload.get("truncated"):
            logger.warning("Tree listing for %s/%s was truncated by GitHub", owner, repo)
        return [
            entry["path"]
            for entry in payload.get("tree", [])
            if entry.get("type") == "blob" and isinstance(entry.get("path"), str)
        ]


__all__ = ["GitHubRepository", "encode_repo_path", "API_URL", "RAW_URL"]
