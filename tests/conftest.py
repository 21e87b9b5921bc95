"""
Shared pytest fixtures for the roadmap_status test suite.

Collaborator fakes live in tests/fakes.py so tests never touch the network.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from tests.fakes import FakeProbe, InMemoryRepository


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def memory_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove roadmap_status environment variables for isolated tests."""
    for name in (
        "READ_ONLY_CHECKS_URL",
        "READ_ONLY_CHECKS_HEADERS",
        "OPENAI_API_KEY",
        "GITHUB_TOKEN",
        "ROADMAP_STATUS_MANUAL_STORE_PATH",
        "ROADMAP_STATUS_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch


@pytest.fixture
def sample_roadmap() -> str:
    return """
weeks:
  - id: w1
    title: Week 1
    items:
      - id: ci
        name: Ship CI config
        checks:
          - type: files_exist
            files: [.github/workflows/ci.yml]
      - id: docs
        name: Write onboarding docs
        checks:
          - type: files_exist
            files: [docs/onboarding.md, docs/setup.md]
      - "[x] Kickoff meeting"
  - id: w2
    title: Week 2
    items:
      - Write release notes (todo)
"""
