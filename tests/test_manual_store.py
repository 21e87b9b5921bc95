"""Tests for the local manual-override store."""

import json

import pytest

from roadmap_status.manual_store import LocalManualStore
from roadmap_status.models import ManualWeekState, OverrideEntry


def write_store(path, records):
    path.write_text(json.dumps({"records": records}), encoding="utf-8")


class TestLocalManualStore:
    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, temp_dir):
        result = await LocalManualStore(temp_dir / "missing.json").load_manual_state("acme", "app")
        assert result.available is True
        assert result.state == {}

    @pytest.mark.asyncio
    async def test_matching_record(self, temp_dir):
        path = temp_dir / "store.json"
        write_store(
            path,
            [
                {"owner": "other", "repo": "app", "project_id": "", "state": {"w1": {"removed": ["x"]}}},
                {
                    "owner": "ACME",
                    "repo": "App",
                    "project_id": "",
                    "state": {"w1": {"overrides": [{"key": "ci", "done": True}]}},
                    "updated_at": "2026-01-01T00:00:00Z",
                },
            ],
        )
        result = await LocalManualStore(path).load_manual_state("acme", "app")
        assert result.available is True
        assert result.state == {"w1": ManualWeekState(overrides=(OverrideEntry(key="ci", done=True),))}
        assert result.updated_at == "2026-01-01T00:00:00Z"

    @pytest.mark.asyncio
    async def test_project_scoped_record(self, temp_dir):
        path = temp_dir / "store.json"
        write_store(
            path,
            [
                {"owner": "acme", "repo": "app", "project_id": "", "state": {"w1": {"removed": ["a"]}}},
                {"owner": "acme", "repo": "app", "project_id": "mobile-app", "state": {"w1": {"removed": ["b"]}}},
            ],
        )
        result = await LocalManualStore(path).load_manual_state("acme", "app", "Mobile App")
        assert result.state["w1"].removed == ("b",)

    @pytest.mark.asyncio
    async def test_unreadable_store(self, temp_dir):
        path = temp_dir / "store.json"
        path.write_text("{not json", encoding="utf-8")
        result = await LocalManualStore(path).load_manual_state("acme", "app")
        assert result.available is False

    @pytest.mark.asyncio
    async def test_blank_owner(self, temp_dir):
        path = temp_dir / "store.json"
        write_store(path, [{"owner": "", "repo": "app", "state": {"w1": {"removed": ["a"]}}}])
        result = await LocalManualStore(path).load_manual_state("", "app")
        assert result.available is True
        assert result.state == {}
