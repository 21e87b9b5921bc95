"""
Clarity annotation for roadmap items.

A clarity scorer rates how well an item describes its outcome (0..1) and
suggests what is missing. Two scorers are provided:

- HeuristicClarityScorer: offline scoring by title length, placeholder
  words, outcome verbs and specificity cues.
- OpenAIClarityScorer: asks a chat-completions model when the heuristic is
  unsure, falling back to the heuristic on any failure.

annotate_clarity() attaches scores to every item that has none yet. Scorer
failures leave the item unannotated; a set cancel_event stops the pass and
returns the remaining items unannotated.

Usage:
    from roadmap_status.clarity import HeuristicClarityScorer, annotate_clarity

    weeks = await annotate_clarity(weeks, HeuristicClarityScorer())
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Optional, Protocol

import aiohttp

from roadmap_status.http_client import LONG_TIMEOUT, create_client_session
from roadmap_status.models import Check, Item, Week

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"

FALLBACK_SCORE = 0.55
CONFIDENT_SCORE = 0.72
MIN_WORDS_FOR_CONFIDENCE = 6

GENERIC_PLACEHOLDERS = (
    "tbd",
    "todo",
    "stuff",
    "things",
    "misc",
    "???",
    "n/a",
    "later",
    "ongoing",
    "investigate",
    "look into",
)
OUTCOME_CUES = ("launch", "ship", "write", "document", "migrate", "measure", "design", "implement", "review")
SPECIFICITY_CUES = (
    re.compile(r"\bv?\d+(?:\.\d+)*\b", re.IGNORECASE),
    re.compile(r"\b(?:q[1-4]|week|sprint)\b", re.IGNORECASE),
    re.compile(r"\b[a-z]+\s+spec\b", re.IGNORECASE),
)


@dataclass(frozen=True)
class ClarityCandidate:
    """What a scorer sees of an item."""

    title: str
    note: Optional[str] = None
    checks: tuple[Check, ...] = ()


@dataclass(frozen=True)
class ClarityReport:
    clarity_score: float
    missing_details: tuple[str, ...] = ()
    follow_up_questions: tuple[str, ...] = ()
    explanation: Optional[str] = None
    used_model: bool = False


class ClarityScorer(Protocol):
    async def score(
        self,
        candidate: ClarityCandidate,
        key: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ClarityReport: ...


def _normalize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


def _context_text(candidate: ClarityCandidate) -> str:
    parts = [_normalize_text(candidate.title), _normalize_text(candidate.note)]
    parts.extend(_normalize_text(check.detail) for check in candidate.checks)
    return ". ".join(part for part in parts if part)


def _has_placeholder(text: str) -> bool:
    lower = text.lower()
    return any(token in lower for token in GENERIC_PLACEHOLDERS)


def _has_outcome_cue(text: str) -> bool:
    lower = text.lower()
    return any(token in lower for token in OUTCOME_CUES)


def _has_specificity_cue(text: str) -> bool:
    return any(pattern.search(text) for pattern in SPECIFICITY_CUES)


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _explain(score: float) -> str:
    if score < 0.5:
        return "Heuristic scan flagged this item as vague."
    if score < 0.75:
        return "Heuristics suggest adding more detail for confidence."
    return "Heuristics consider this item mostly clear."


def heuristic_assessment(candidate: ClarityCandidate) -> ClarityReport:
    """Score a candidate without any network access."""
    title = _normalize_text(candidate.title)
    note = _normalize_text(candidate.note)
    combined = _context_text(candidate)
    words = len(title.split())
    placeholder = _has_placeholder(combined)
    outcome = _has_outcome_cue(combined)
    specific = _has_specificity_cue(combined)

    missing: list[str] = []
    follow_ups: list[str] = []

    if not title:
        missing.append("Task is missing a clear title or description.")
        follow_ups.append("What outcome or deliverable should this item produce?")
    if title and words < MIN_WORDS_FOR_CONFIDENCE and not note:
        missing.append("Description is very short; add more context.")
        follow_ups.append("Can you provide a short sentence describing the expected result?")
    if placeholder:
        missing.append("Task still contains TBD-style placeholders.")
        follow_ups.append("Replace any TBD or placeholder text with the actual decision or owner.")
    if not outcome:
        missing.append("Task does not mention an action-oriented outcome.")
        follow_ups.append("What concrete action signals completion (e.g., launch docs, migrate data)?")
    if not specific:
        follow_ups.append("Are there milestones, dates, or owners that would make this clearer?")

    if not title:
        score = 0.1
    else:
        score = 1.0
        if words < MIN_WORDS_FOR_CONFIDENCE:
            score -= 0.25
        if not note and not outcome:
            score -= 0.15
        if placeholder:
            score -= 0.3
        if not specific:
            score -= 0.1
        if score > 0.85 and follow_ups:
            score = min(score, 0.8)

    if score < 0.2 and not missing:
        missing.append("Not enough information to evaluate clarity.")
    score = max(0.0, min(1.0, round(score, 4)))

    return ClarityReport(
        clarity_score=score,
        missing_details=_unique(missing),
        follow_up_questions=_unique(follow_ups),
        explanation=_explain(score),
    )


class HeuristicClarityScorer:
    """Offline scorer."""

    async def score(
        self,
        candidate: ClarityCandidate,
        key: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ClarityReport:
        return heuristic_assessment(candidate)


def _parse_model_content(content: str) -> Optional[dict[str, Any]]:
    try:
        parsed = json.loads(content)
    except ValueError:
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


def _string_list(value: Any) -> Optional[tuple[str, ...]]:
    if not isinstance(value, list):
        return None
    return tuple(entry.strip() for entry in value if isinstance(entry, str) and entry.strip())


class OpenAIClarityScorer:
    """Chat-completions scorer used when the heuristic is not confident.

    Args:
        api_key: OpenAI API key.
        model: Chat model name.
        session: Optional shared aiohttp session.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        session: Optional[aiohttp.ClientSession] = None,
        url: str = OPENAI_CHAT_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self._session = session

    def build_payload(self, candidate: ClarityCandidate, baseline: ClarityReport) -> dict[str, Any]:
        prompt = [
            f"Roadmap item: {_normalize_text(candidate.title) or '(missing title)'}",
            f"Notes: {_normalize_text(candidate.note) or '(no extra notes)'}",
        ]
        details = [_normalize_text(check.detail) for check in candidate.checks]
        details = [detail for detail in details if detail][:4]
        if details:
            prompt.append(f"Linked checks: {'; '.join(details)}")
        if baseline.missing_details:
            prompt.append(f"Heuristic concerns: {'; '.join(baseline.missing_details)}")

        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are a product operations assistant who evaluates roadmap items for clarity. "
                        "Respond with strict JSON and do not include markdown fences."
                    ),
                },
                {
                    "role": "user",
                    "content": (
                        "\n".join(prompt)
                        + "\n\nReturn a JSON object with keys clarityScore (0-1), missingDetails "
                        "(array of short bullet points), and followUpQuestions (array). "
                        "Only ask for follow-ups that would materially improve the description."
                    ),
                },
            ],
        }

    async def _post(self, session: aiohttp.ClientSession, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        async with session.post(self.url, json=payload, headers=headers) as response:
            if response.status != 200:
                logger.warning("Clarity model returned HTTP %d", response.status)
                return None
            return await response.json(content_type=None)

    async def _call_model(self, candidate: ClarityCandidate, baseline: ClarityReport) -> Optional[ClarityReport]:
        payload = self.build_payload(candidate, baseline)
        if self._session is not None:
            data = await self._post(self._session, payload)
        else:
            async with create_client_session(timeout=LONG_TIMEOUT) as session:
                data = await self._post(session, payload)
        if not isinstance(data, dict):
            return None

        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            return None
        parsed = _parse_model_content(content)
        if parsed is None:
            return None

        raw_score = parsed.get("clarityScore")
        if isinstance(raw_score, (int, float)) and not isinstance(raw_score, bool):
            score = float(raw_score)
        else:
            score = baseline.clarity_score
        missing = _string_list(parsed.get("missingDetails")) or baseline.missing_details
        follow_ups = _string_list(parsed.get("followUpQuestions")) or baseline.follow_up_questions
        explanation = parsed.get("explanation")
        if not isinstance(explanation, str) or not explanation.strip():
            explanation = baseline.explanation

        return ClarityReport(
            clarity_score=max(0.0, min(1.0, score)),
            missing_details=missing,
            follow_up_questions=follow_ups,
            explanation=explanation.strip() if explanation else None,
            used_model=True,
        )

    async def score(
        self,
        candidate: ClarityCandidate,
        key: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ClarityReport:
        baseline = heuristic_assessment(candidate)
        if baseline.clarity_score >= CONFIDENT_SCORE or (
            not baseline.missing_details and not baseline.follow_up_questions
        ):
            return baseline
        try:
            report = await self._call_model(candidate, baseline)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, KeyError, AttributeError) as exc:
            logger.warning("Clarity model call failed for %s: %s", key or candidate.title, exc)
            return baseline
        return report or baseline


def candidate_for(item: Item) -> ClarityCandidate:
    return ClarityCandidate(title=(item.name or "").strip() or item.id, note=item.note, checks=item.checks)


def apply_report(item: Item, report: ClarityReport) -> Item:
    return replace(
        item,
        clarity_score=report.clarity_score,
        clarity_missing_details=tuple(report.missing_details),
        clarity_follow_ups=tuple(report.follow_up_questions),
        clarity_explanation=report.explanation or None,
    )


async def _score_unless_cancelled(
    scorer: ClarityScorer,
    candidate: ClarityCandidate,
    key: str,
    cancel_event: Optional[asyncio.Event],
) -> Optional[ClarityReport]:
    """Await one scorer call, abandoning it if cancel_event fires first."""
    if cancel_event is None:
        return await scorer.score(candidate, key=key, cancel_event=None)

    score_task = asyncio.ensure_future(scorer.score(candidate, key=key, cancel_event=cancel_event))
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({score_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
    if score_task.done():
        return score_task.result()
    score_task.cancel()
    try:
        await score_task
    except asyncio.CancelledError:
        pass
    return None


async def annotate_clarity(
    weeks: list[Week],
    scorer: ClarityScorer,
    cancel_event: Optional[asyncio.Event] = None,
) -> list[Week]:
    """Attach clarity scores to every item that has none yet."""
    annotated: list[Week] = []
    for week in weeks:
        items = []
        for item in week.items:
            cancelled = cancel_event is not None and cancel_event.is_set()
            if item.clarity_score is not None or cancelled:
                items.append(item)
                continue
            key = item.manual_key or item.id
            try:
                report = await _score_unless_cancelled(scorer, candidate_for(item), key, cancel_event)
            except Exception as exc:
                logger.warning("Failed to evaluate task clarity for %s: %s", key, exc)
                report = None
            items.append(apply_report(item, report) if report is not None else item)
        annotated.append(replace(week, items=tuple(items)))
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Clarity annotation cancelled; returning partial result")
    return annotated


__all__ = [
    "ClarityCandidate",
    "ClarityReport",
    "ClarityScorer",
    "HeuristicClarityScorer",
    "OpenAIClarityScorer",
    "heuristic_assessment",
    "candidate_for",
    "apply_report",
    "annotate_clarity",
]
