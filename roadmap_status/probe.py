"""
Read-only database probe client.

The probe endpoint evaluates a single assertion ("ext:pgcrypto",
"table:public.users", a SELECT ...) against a database without writing to it.
Endpoints in the wild accept several request shapes, so each one is tried in
order until a response yields a determinate boolean:

    {"queries": [q]}, {"query": q}, {"symbols": [q]}, {"symbol": q},
    {"symbols": q}, q

Usage:
    from roadmap_status.probe import ReadOnlyProbe

    probe = ReadOnlyProbe()
    outcome = await probe.probe(url, "ext:pgcrypto", {"Authorization": "Bearer ..."})
    if outcome.ok:
        ...
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import aiohttp

from roadmap_status.http_client import NO_CACHE_HEADERS, PROBE_TIMEOUT, create_client_session

logger = logging.getLogger(__name__)

ProbeHeaders = dict[str, str]

_PLAIN_SUCCESS_BODIES = frozenset({"ok", "true", "ok:true"})

PAYLOAD_BUILDERS: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("queries", lambda query: {"queries": [query]}),
    ("query", lambda query: {"query": query}),
    ("symbols", lambda query: {"symbols": [query]}),
    ("symbol", lambda query: {"symbol": query}),
    ("symbols_single", lambda query: {"symbols": query}),
    ("raw", lambda query: query),
)


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one probe call. `why` and `status` explain a failure."""

    ok: bool
    why: Optional[str] = None
    status: Optional[int] = None


def parse_probe_headers(raw: Any) -> ProbeHeaders:
    """Parse probe headers from a mapping, a JSON string or `key: value` lines.

    Lines may be separated by newlines, semicolons or commas. Blank keys and
    values are dropped.
    """
    if not raw:
        return {}
    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return {}
        try:
            return parse_probe_headers(json.loads(trimmed))
        except ValueError:
            pass
        headers: ProbeHeaders = {}
        for line in re.split(r"[\n;,]+", trimmed):
            key, sep, value = line.strip().partition(":")
            if sep and key.strip() and value.strip():
                headers[key.strip()] = value.strip()
        return headers
    if isinstance(raw, dict):
        return {
            str(key).strip(): value.strip()
            for key, value in raw.items()
            if isinstance(value, str) and value.strip()
        }
    return {}


def _match_entry(query: str, entry: Any) -> Optional[bool]:
    if isinstance(entry, bool):
        return entry
    if isinstance(entry, dict):
        if isinstance(entry.get("ok"), bool):
            return entry["ok"]
        candidate = entry.get(query)
        if isinstance(candidate, bool):
            return candidate
        if isinstance(candidate, dict) and isinstance(candidate.get("ok"), bool):
            return candidate["ok"]
    return None


def _extract_from_container(query: str, container: Any) -> Optional[bool]:
    if isinstance(container, list):
        for entry in container:
            if not entry:
                continue
            matched = _match_entry(query, entry)
            if matched is not None:
                return matched
        return None
    if isinstance(container, dict):
        if isinstance(container.get("ok"), bool):
            return container["ok"]
        direct = container.get(query)
        if isinstance(direct, bool):
            return direct
        if isinstance(direct, dict) and isinstance(direct.get("ok"), bool):
            return direct["ok"]
        for value in container.values():
            nested = _extract_from_container(query, value)
            if nested is not None:
                return nested
    return None


def extract_check_result(query: str, payload: Any) -> Optional[bool]:
    """Pull a boolean outcome for `query` out of a probe response body."""
    if isinstance(payload, bool):
        return payload
    if not payload:
        return None
    if isinstance(payload, dict):
        if isinstance(payload.get("ok"), bool):
            return payload["ok"]
        data = payload.get("data")
        containers = (
            payload.get("results"),
            payload.get("result"),
            data,
            data.get("results") if isinstance(data, dict) else None,
            payload.get("payload"),
        )
        for container in containers:
            if not container:
                continue
            matched = _extract_from_container(query, container)
            if matched is not None:
                return matched
        return None
    if isinstance(payload, list):
        return _extract_from_container(query, payload)
    return None


def _response_detail(parsed: Any, text: str, label: str) -> str:
    if isinstance(parsed, dict):
        for key in ("error", "message"):
            if parsed.get(key):
                return str(parsed[key])
    return text.strip() or f"Unexpected response via {label}"


class ReadOnlyProbe:
    """aiohttp client for a read-only checks endpoint."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session

    async def probe(self, url: str, query: str, headers: Optional[ProbeHeaders] = None) -> ProbeOutcome:
        """Evaluate one query, trying each payload shape until one is determinate."""
        if not url:
            return ProbeOutcome(ok=False, why="READ_ONLY_CHECKS_URL not configured")

        request_headers = {"Content-Type": "application/json", **NO_CACHE_HEADERS, **(headers or {})}
        if self._session is not None:
            return await self._attempt_all(self._session, url, query, request_headers)
        async with create_client_session(timeout=PROBE_TIMEOUT) as session:
            return await self._attempt_all(session, url, query, request_headers)

    async def _attempt_all(
        self,
        session: aiohttp.ClientSession,
        url: str,
        query: str,
        headers: ProbeHeaders,
    ) -> ProbeOutcome:
        last_why = ""
        last_status: Optional[int] = None

        for label, build in PAYLOAD_BUILDERS:
            try:
                async with session.post(url, data=json.dumps(build(query)), headers=headers) as response:
                    text = await response.text(errors="replace")
                    status = response.status
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_why = str(exc) or type(exc).__name__
                logger.debug("Probe attempt %s failed for %r: %s", label, query, last_why)
                continue

            parsed: Any = None
            if text:
                try:
                    parsed = json.loads(text)
                except ValueError:
                    if text.strip().lower() in _PLAIN_SUCCESS_BODIES:
                        return ProbeOutcome(ok=True)

            ok = extract_check_result(query, parsed)
            if ok is not None:
                return ProbeOutcome(ok=ok)

            last_why = _response_detail(parsed, text, label)
            if not 200 <= status < 300:
                last_status = status

        logger.warning("Read-only probe gave no determinate result for %r: %s", query, last_why)
        return ProbeOutcome(
            ok=False,
            why=last_why or "Unexpected read_only_checks response",
            status=last_status,
        )


__all__ = [
    "ProbeHeaders",
    "ProbeOutcome",
    "PAYLOAD_BUILDERS",
    "ReadOnlyProbe",
    "parse_probe_headers",
    "extract_check_result",
]
