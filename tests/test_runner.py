"""End-to-end tests for status computation."""

import json
import logging
from datetime import datetime, timezone

import pytest

from roadmap_status.clarity import HeuristicClarityScorer
from roadmap_status.exceptions import MissingInputError, StructuralError
from roadmap_status.models import ManualItem, ManualWeekState, OverrideEntry
from roadmap_status.runner import StatusDeps, StatusRequest, compute_status, utc_timestamp
from tests.fakes import FakeManualStore, InMemoryRepository

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_repo(sample_roadmap: str) -> InMemoryRepository:
    return InMemoryRepository(
        {
            "docs/roadmap.yml": sample_roadmap,
            ".github/workflows/ci.yml": "on: push",
            "docs/onboarding.md": "# Onboarding",
        }
    )


def make_deps(repo, **kwargs) -> StatusDeps:
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return StatusDeps(file_accessor=repo, writer=repo, **kwargs)


REQUEST = StatusRequest(owner="acme", repo="app", branch="main")


class TestUtcTimestamp:
    def test_millisecond_precision(self):
        assert utc_timestamp(FIXED_NOW) == "2026-01-02T03:04:05.000Z"


class TestComputeStatus:
    @pytest.mark.asyncio
    async def test_full_pass(self, sample_roadmap):
        repo = make_repo(sample_roadmap)
        run = await compute_status(REQUEST, make_deps(repo))

        week1, week2 = run.report.weeks
        assert [item.id for item in week1.items] == ["ci", "docs", "w1-kickoff-meeting"]
        ci, docs, kickoff = week1.items
        assert ci.done is True
        assert docs.done is False
        assert docs.results[0].missing == ("docs/setup.md",)
        assert kickoff.done is True
        assert (week1.progress.passed, week1.progress.total) == (2, 3)
        assert week1.progress.progress_percent == 66.67

        assert week2.items[0].id == "w2-write-release-notes"
        assert week2.progress.progress_percent == 0.0

        assert run.report.generated_at == "2026-01-02T03:04:05.000Z"
        assert run.manifest.ok is True
        assert set(repo.writes) == {
            "docs/roadmap-status.json",
            "docs/roadmap/roadmap-status.json",
            "docs/project-plan.md",
            "docs/roadmap/project-plan.md",
        }
        assert ("docs/roadmap.yml", "main") in repo.read_calls

    @pytest.mark.asyncio
    async def test_missing_roadmap(self):
        with pytest.raises(MissingInputError) as excinfo:
            await compute_status(REQUEST, make_deps(InMemoryRepository()))
        assert excinfo.value.path == "docs/roadmap.yml"

    @pytest.mark.asyncio
    async def test_missing_project_roadmap(self):
        request = StatusRequest(owner="acme", repo="app", project="Mobile")
        with pytest.raises(MissingInputError) as excinfo:
            await compute_status(request, make_deps(InMemoryRepository()))
        assert excinfo.value.path == "docs/projects/mobile/roadmap.yml"

    @pytest.mark.asyncio
    async def test_malformed_roadmap(self):
        repo = InMemoryRepository({"docs/roadmap.yml": "title: not a roadmap\n"})
        with pytest.raises(StructuralError):
            await compute_status(REQUEST, make_deps(repo))
        assert repo.writes == {}

    @pytest.mark.asyncio
    async def test_manual_overrides_are_merged_and_reaggregated(self, sample_roadmap):
        store = FakeManualStore(
            {
                "w1": ManualWeekState(
                    removed=("docs",),
                    added=(ManualItem(key="extra", name="Extra task", done=True),),
                ),
                "w2": ManualWeekState(overrides=(OverrideEntry(key="w2-write-release-notes", done=True),)),
            }
        )
        run = await compute_status(REQUEST, make_deps(make_repo(sample_roadmap), manual_store=store))

        week1, week2 = run.report.weeks
        assert [item.id for item in week1.items] == ["ci", "w1-kickoff-meeting", "extra"]
        assert week1.progress.progress_percent == 100.0
        assert week2.items[0].done is True
        assert week2.progress.progress_percent == 100.0

    @pytest.mark.asyncio
    async def test_unavailable_store_is_ignored(self, sample_roadmap):
        store = FakeManualStore({"w1": ManualWeekState(removed=("ci",))}, available=False)
        run = await compute_status(REQUEST, make_deps(make_repo(sample_roadmap), manual_store=store))
        assert run.report.weeks[0].items[0].id == "ci"

    @pytest.mark.asyncio
    async def test_clarity_annotation(self, sample_roadmap):
        deps = make_deps(make_repo(sample_roadmap), clarity_scorer=HeuristicClarityScorer())
        run = await compute_status(REQUEST, deps)
        assert all(item.clarity_score is not None for week in run.report.weeks for item in week.items)

    @pytest.mark.asyncio
    async def test_emit_false_writes_nothing(self, sample_roadmap):
        repo = make_repo(sample_roadmap)
        run = await compute_status(REQUEST, make_deps(repo), emit=False)
        assert repo.writes == {}
        assert run.manifest.wrote == []

    @pytest.mark.asyncio
    async def test_reruns_differ_only_in_timestamp(self, sample_roadmap):
        first_repo = make_repo(sample_roadmap)
        second_repo = make_repo(sample_roadmap)
        later = datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)

        await compute_status(REQUEST, make_deps(first_repo))
        await compute_status(REQUEST, make_deps(second_repo, clock=lambda: later))

        first = json.loads(first_repo.writes["docs/roadmap-status.json"])
        second = json.loads(second_repo.writes["docs/roadmap-status.json"])
        assert first.pop("generated_at") != second.pop("generated_at")
        assert first == second

    @pytest.mark.asyncio
    async def test_same_clock_is_byte_identical(self, sample_roadmap):
        first_repo = make_repo(sample_roadmap)
        second_repo = make_repo(sample_roadmap)
        await compute_status(REQUEST, make_deps(first_repo))
        await compute_status(REQUEST, make_deps(second_repo))
        assert first_repo.writes == second_repo.writes

    @pytest.mark.asyncio
    async def test_logs_structured_summary(self, sample_roadmap, caplog):
        with caplog.at_level(logging.INFO, logger="roadmap_status.runner"):
            await compute_status(REQUEST, make_deps(make_repo(sample_roadmap)), emit=False)
        record = next(r for r in caplog.records if r.getMessage() == "Computed status")
        assert record.structured_fields == {"weeks": 2, "items": 4, "project": None}
