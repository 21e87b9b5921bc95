"""Tests for the local repository adapter and project-aware paths."""

import pytest

from roadmap_status.exceptions import CollaboratorUnavailable
from roadmap_status.project_paths import normalize_project_key, project_aware_path
from roadmap_status.repository import ArtifactWriter, FileAccessor, LocalRepository, TreeLister


@pytest.fixture
def checkout(temp_dir):
    (temp_dir / "docs").mkdir()
    (temp_dir / "docs" / "roadmap.yml").write_text("weeks: []\n", encoding="utf-8")
    (temp_dir / "src" / "lib").mkdir(parents=True)
    (temp_dir / "src" / "lib" / "b.ts").write_text("export {}\n", encoding="utf-8")
    (temp_dir / ".env.example").write_text("A=1\n", encoding="utf-8")
    (temp_dir / ".git").mkdir()
    (temp_dir / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    return temp_dir


class TestLocalRepository:
    def test_satisfies_protocols(self, checkout):
        repo = LocalRepository(checkout)
        assert isinstance(repo, FileAccessor)
        assert isinstance(repo, TreeLister)
        assert isinstance(repo, ArtifactWriter)

    @pytest.mark.asyncio
    async def test_get_file_raw(self, checkout):
        repo = LocalRepository(checkout)
        assert await repo.get_file_raw("acme", "app", "docs/roadmap.yml") == "weeks: []\n"
        assert await repo.get_file_raw("acme", "app", "docs/missing.yml") is None
        assert await repo.get_file_raw("acme", "app", "docs") is None

    @pytest.mark.asyncio
    async def test_paths_cannot_escape(self, checkout):
        repo = LocalRepository(checkout / "docs")
        with pytest.raises(CollaboratorUnavailable):
            await repo.get_file_raw("acme", "app", "../src/lib/b.ts")

    @pytest.mark.asyncio
    async def test_list_tree_skips_git(self, checkout):
        repo = LocalRepository(checkout)
        assert await repo.list_tree("acme", "app") == [".env.example", "docs/roadmap.yml", "src/lib/b.ts"]

    @pytest.mark.asyncio
    async def test_put_file_creates_directories(self, checkout, temp_dir):
        out = temp_dir / "out"
        repo = LocalRepository(checkout, output_dir=out)
        await repo.put_file("acme", "app", "docs/roadmap/project-plan.md", "# Plan\n", "main", "chore")
        assert (out / "docs" / "roadmap" / "project-plan.md").read_text(encoding="utf-8") == "# Plan\n"
        assert await repo.get_file_raw("acme", "app", "docs/roadmap/project-plan.md") is None


class TestProjectPaths:
    def test_normalize_project_key(self):
        assert normalize_project_key(" Mobile App ") == "mobile-app"
        assert normalize_project_key("   ") is None
        assert normalize_project_key(None) is None

    def test_docs_paths_move_under_project(self):
        assert project_aware_path("docs/roadmap.yml", "Mobile App") == "docs/projects/mobile-app/roadmap.yml"
        assert project_aware_path("docs/roadmap/project-plan.md", "web") == "docs/projects/web/roadmap/project-plan.md"

    def test_workflow_path(self):
        assert project_aware_path(".github/workflows/roadmap.yml", "web") == ".github/workflows/roadmap-web.yml"

    def test_without_project(self):
        assert project_aware_path("docs/roadmap.yml", None) == "docs/roadmap.yml"
        assert project_aware_path("README.md", "web") == "README.md"
