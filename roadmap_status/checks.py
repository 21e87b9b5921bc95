"""
Check execution.

Each check type maps to an async handler in CHECK_HANDLERS. execute_check()
dispatches through the registry and never raises: collaborator failures come
back as failed results, unexpected handler errors as indeterminate ones.

Usage:
    from roadmap_status.checks import CheckContext, execute_weeks

    context = CheckContext(owner="acme", repo="app", ref="main", file_accessor=repo)
    weeks = await execute_weeks(weeks, context, concurrency=4)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Optional

import aiohttp

from roadmap_status.exceptions import CollaboratorUnavailable
from roadmap_status.http_client import NO_CACHE_HEADERS, create_client_session
from roadmap_status.models import Check, CheckResult, Item, Week
from roadmap_status.normalize import collect_strings, dedupe_strings
from roadmap_status.probe import ProbeHeaders, ReadOnlyProbe
from roadmap_status.repository import FileAccessor

logger = logging.getLogger(__name__)


@dataclass
class CheckContext:
    """Collaborators and coordinates shared by every check in one run."""

    owner: str
    repo: str
    file_accessor: FileAccessor
    ref: Optional[str] = None
    credential: Optional[str] = None
    probe: ReadOnlyProbe = field(default_factory=ReadOnlyProbe)
    probe_url: Optional[str] = None
    probe_headers: ProbeHeaders = field(default_factory=dict)
    http_session: Optional[aiohttp.ClientSession] = None


CheckHandler = Callable[[Check, CheckContext], Awaitable[CheckResult]]


def check_paths(check: Check) -> list[str]:
    """De-duplicated paths from globs, files and the comma-separated detail."""
    return dedupe_strings([*check.globs, *check.files, *collect_strings(check.detail)])


async def files_exist(check: Check, context: CheckContext) -> CheckResult:
    paths = check_paths(check)
    if not paths:
        return CheckResult(ok=False, diagnostic="no files provided")

    missing: list[str] = []
    errors: list[str] = []
    for path in paths:
        try:
            raw = await context.file_accessor.get_file_raw(
                context.owner, context.repo, path, ref=context.ref, credential=context.credential
            )
        except CollaboratorUnavailable as exc:
            logger.warning("File lookup failed for %s: %s", path, exc.reason)
            errors.append(f"{path}: {exc.reason}")
            raw = None
        if raw is None:
            missing.append(path)

    diagnostic = None
    if missing:
        diagnostic = f"missing: {', '.join(missing)}"
        if errors:
            diagnostic += f" (lookup errors: {'; '.join(errors)})"
    return CheckResult(
        ok=not missing,
        diagnostic=diagnostic,
        files=tuple(paths),
        missing=tuple(missing),
    )


async def _fetch(session: aiohttp.ClientSession, url: str, read_body: bool) -> tuple[int, str]:
    async with session.get(url, headers=NO_CACHE_HEADERS) as response:
        # Non-UTF-8 bodies decode with replacement characters
        body = await response.text(errors="replace") if read_body else ""
        return response.status, body


async def http_ok(check: Check, context: CheckContext) -> CheckResult:
    if not check.url:
        return CheckResult(ok=False, diagnostic="no url provided")
    read_body = bool(check.must_match)
    try:
        if context.http_session is not None:
            status, body = await _fetch(context.http_session, check.url, read_body)
        else:
            async with create_client_session() as session:
                status, body = await _fetch(session, check.url, read_body)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        reason = str(exc) or type(exc).__name__
        logger.warning("GET %s failed: %s", check.url, reason)
        return CheckResult(ok=False, diagnostic=f"request failed: {reason}")

    if not 200 <= status < 300:
        return CheckResult(ok=False, diagnostic=f"HTTP {status}", status_code=status)

    unmatched = [needle for needle in check.must_match if needle not in body]
    if unmatched:
        return CheckResult(
            ok=False,
            diagnostic=f"unmatched: {', '.join(unmatched)}",
            status_code=status,
        )
    return CheckResult(ok=True, status_code=status)


async def sql_exists(check: Check, context: CheckContext) -> CheckResult:
    if not context.probe_url:
        return CheckResult(ok=False, diagnostic="probe url not provided")
    if not check.query:
        return CheckResult(ok=False, diagnostic="no query provided")

    outcome = await context.probe.probe(context.probe_url, check.query, context.probe_headers)
    if outcome.ok:
        return CheckResult(ok=True)

    parts = []
    if outcome.status is not None:
        parts.append(f"HTTP {outcome.status}")
    if outcome.why:
        parts.append(outcome.why)
    return CheckResult(
        ok=False,
        diagnostic=" — ".join(parts) or "probe failed",
        status_code=outcome.status,
    )


CHECK_HANDLERS: dict[str, CheckHandler] = {
    "files_exist": files_exist,
    "http_ok": http_ok,
    "sql_exists": sql_exists,
}


async def execute_check(check: Check, context: CheckContext) -> CheckResult:
    """Run one check. Never raises."""
    handler = CHECK_HANDLERS.get(check.type)
    if handler is None:
        return CheckResult(ok=False, diagnostic="unknown check")
    try:
        return await handler(check, context)
    except CollaboratorUnavailable as exc:
        logger.warning("%s check degraded: %s", check.type, exc.message)
        return CheckResult(ok=False, diagnostic=exc.message)
    except Exception as exc:
        logger.warning("%s check raised unexpectedly: %s", check.type, exc, exc_info=True)
        return CheckResult(ok=None, diagnostic=f"check error: {exc}")


async def execute_item(
    item: Item,
    context: CheckContext,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> Item:
    """Return a copy of the item with one result per check, in check order."""
    if not item.checks:
        return item
    if semaphore is None:
        results = [await execute_check(check, context) for check in item.checks]
    else:

        async def bounded(check: Check) -> CheckResult:
            async with semaphore:
                return await execute_check(check, context)

        results = await asyncio.gather(*(bounded(check) for check in item.checks))
    return replace(item, results=tuple(results))


async def execute_weeks(weeks: list[Week], context: CheckContext, concurrency: int = 1) -> list[Week]:
    """Execute every check in document order.

    With concurrency > 1 the checks of each item run concurrently, bounded
    by a semaphore; result order always matches check order.
    """
    semaphore = asyncio.Semaphore(concurrency) if concurrency > 1 else None
    executed: list[Week] = []
    for week in weeks:
        items = []
        for item in week.items:
            items.append(await execute_item(item, context, semaphore))
        executed.append(replace(week, items=tuple(items)))
    logger.debug(
        "Executed %d checks across %d weeks",
        sum(len(item.checks) for week in executed for item in week.items),
        len(executed),
    )
    return executed


__all__ = [
    "CheckContext",
    "CheckHandler",
    "CHECK_HANDLERS",
    "check_paths",
    "files_exist",
    "http_ok",
    "sql_exists",
    "execute_check",
    "execute_item",
    "execute_weeks",
]
