"""Tests for status and plan artifact emission."""

import json

import pytest

from roadmap_status.emitter import (
    commit_message,
    emit_status_artifacts,
    format_percent_label,
    render_plan_markdown,
    render_status_json,
)
from roadmap_status.models import Check, CheckResult, Item, StatusReport, Week
from roadmap_status.progress import aggregate_weeks
from tests.fakes import InMemoryRepository

GENERATED_AT = "2026-01-02T03:04:05.000Z"


def make_report(project=None) -> StatusReport:
    ci = Item(
        id="ci",
        name="Ship CI",
        checks=(Check(type="files_exist", files=("ci.yml",)),),
        results=(CheckResult(ok=True, files=("ci.yml",)),),
    )
    docs = Item(
        id="docs",
        name="Write docs",
        checks=(Check(type="files_exist", files=("a.md",)), Check(type="files_exist", files=("b.md",))),
        results=(CheckResult(ok=True), CheckResult(ok=False, diagnostic="missing: b.md")),
    )
    weeks = aggregate_weeks([Week(id="w1", title="Week 1", items=(ci, docs)), Week(id="w2", title="Empty")])
    return StatusReport(
        generated_at=GENERATED_AT,
        owner="acme",
        repo="app",
        branch="main",
        weeks=weeks,
        project=project,
    )


class TestFormatPercentLabel:
    @pytest.mark.parametrize(
        "value,expected",
        [(66.666, "66.67%"), (12.5, "12.5%"), (100.0, "100%"), (0, "0%"), (33.3, "33.3%"), (None, None)],
    )
    def test_labels(self, value, expected):
        assert format_percent_label(value) == expected


class TestRenderers:
    def test_plan_markdown(self):
        assert render_plan_markdown(make_report()) == (
            "# Project Plan\n"
            f"Generated: {GENERATED_AT}\n"
            "\n"
            "## Week 1 — 66.67% complete (2/3)\n"
            "\n"
            "✅ (100% – 1/1) **Ship CI** (ci)\n"
            "❌ (50% – 1/2) **Write docs** (docs)\n"
            "\n"
            "## Empty — 0% complete\n"
            "\n"
            "\n"
        )

    def test_status_json_key_order(self):
        data = json.loads(render_status_json(make_report(project="mobile")))
        assert list(data) == ["generated_at", "owner", "repo", "branch", "project", "weeks"]

    def test_status_json_omits_blank_project(self):
        data = json.loads(render_status_json(make_report()))
        assert "project" not in data

    def test_status_json_check_entries(self):
        data = json.loads(render_status_json(make_report()))
        week = data["weeks"][0]
        assert week["progressPercent"] == 66.67
        docs = week["items"][1]
        assert docs["done"] is False
        assert docs["checks"][1] == {
            "type": "files_exist",
            "files": ["b.md"],
            "ok": False,
            "status": "fail",
            "diagnostic": "missing: b.md",
        }

    def test_status_json_is_stable(self):
        assert render_status_json(make_report()) == render_status_json(make_report())


class TestCommitMessage:
    def test_default_scope(self):
        assert commit_message("update status") == "chore(roadmap): update status [skip ci]"

    def test_project_scope(self):
        assert commit_message("update plan", "Mobile App") == "chore(mobile-app): update plan [skip ci]"


class TestEmitStatusArtifacts:
    @pytest.mark.asyncio
    async def test_writes_current_and_legacy_paths(self):
        writer = InMemoryRepository()
        manifest = await emit_status_artifacts(make_report(), writer)
        assert manifest.ok is True
        assert manifest.wrote == [
            "docs/roadmap-status.json",
            "docs/roadmap/roadmap-status.json",
            "docs/project-plan.md",
            "docs/roadmap/project-plan.md",
        ]
        assert writer.writes["docs/roadmap-status.json"] == writer.writes["docs/roadmap/roadmap-status.json"]
        assert writer.messages["docs/project-plan.md"] == "chore(roadmap): update plan [skip ci]"

    @pytest.mark.asyncio
    async def test_project_paths(self):
        writer = InMemoryRepository()
        manifest = await emit_status_artifacts(make_report(project="Mobile App"), writer)
        assert manifest.wrote[0] == "docs/projects/mobile-app/roadmap-status.json"
        assert "docs/projects/mobile-app/roadmap/project-plan.md" in writer.writes

    @pytest.mark.asyncio
    async def test_failed_write_does_not_stop_others(self):
        writer = InMemoryRepository()
        writer.failing_writes["docs/roadmap/roadmap-status.json"] = "permission denied"
        manifest = await emit_status_artifacts(make_report(), writer)
        assert manifest.ok is False
        assert "docs/roadmap/roadmap-status.json (FAILED: permission denied)" in manifest.wrote
        assert len(manifest.wrote) == 4
        assert len(writer.writes) == 3
        assert manifest.to_dict()["ok"] is False
