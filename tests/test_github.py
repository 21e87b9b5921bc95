"""Tests for the read-only GitHub adapter."""

import aiohttp
import pytest

from roadmap_status.exceptions import CollaboratorUnavailable
from roadmap_status.github import GitHubRepository, encode_repo_path
from tests.fakes import make_response, make_session


def requested_urls(session) -> list[str]:
    return [call.args[0] for call in session.get.call_args_list]


class TestEncodeRepoPath:
    def test_segments_are_quoted(self):
        assert encode_repo_path("/docs/my plan.md") == "docs/my%20plan.md"


class TestGetFileRaw:
    @pytest.mark.asyncio
    async def test_contents_api_with_token(self):
        session = make_session(get=make_response(200, "weeks: []"))
        github = GitHubRepository(token="ghp_test", session=session)

        body = await github.get_file_raw("acme", "app", "docs/roadmap.yml", ref="main")

        assert body == "weeks: []"
        assert requested_urls(session) == [
            "https://api.github.com/repos/acme/app/contents/docs/roadmap.yml?ref=main"
        ]
        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer ghp_test"

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_host(self):
        session = make_session(get=[make_response(404, "Not Found"), make_response(200, "raw body")])
        github = GitHubRepository(token="ghp_test", session=session)

        body = await github.get_file_raw("acme", "app", "docs/roadmap.yml", ref="dev")

        assert body == "raw body"
        assert requested_urls(session)[1] == "https://raw.githubusercontent.com/acme/app/dev/docs/roadmap.yml"

    @pytest.mark.asyncio
    async def test_binary_file_is_present(self):
        session = make_session(get=make_response(200, body=b"\x89PNG\r\n\x1a\n\xff"))
        github = GitHubRepository(session=session)

        body = await github.get_file_raw("acme", "app", "docs/logo.png")

        assert body is not None
        assert body.startswith("\ufffdPNG")

    @pytest.mark.asyncio
    async def test_without_token_uses_raw_host_only(self):
        session = make_session(get=make_response(404, "404: Not Found"))
        github = GitHubRepository(session=session)
        assert await github.get_file_raw("acme", "app", "docs/roadmap.yml") is None
        assert requested_urls(session) == ["https://raw.githubusercontent.com/acme/app/main/docs/roadmap.yml"]

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        session = make_session(get=make_response(503, "unavailable"))
        github = GitHubRepository(session=session)
        with pytest.raises(CollaboratorUnavailable, match="HTTP 503"):
            await github.get_file_raw("acme", "app", "docs/roadmap.yml")

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        session = make_session(get=aiohttp.ClientConnectionError("reset"))
        github = GitHubRepository(session=session)
        with pytest.raises(CollaboratorUnavailable) as excinfo:
            await github.get_file_raw("acme", "app", "docs/roadmap.yml")
        assert excinfo.value.reason == "reset"


class TestListTree:
    @pytest.mark.asyncio
    async def test_blobs_only(self):
        payload = {
            "tree": [
                {"path": "src", "type": "tree"},
                {"path": "src/a.ts", "type": "blob"},
                {"path": "README.md", "type": "blob"},
            ]
        }
        session = make_session(get=make_response(200, json_body=payload))
        github = GitHubRepository(session=session)

        assert await github.list_tree("acme", "app", ref="main") == ["src/a.ts", "README.md"]
        assert requested_urls(session) == ["https://api.github.com/repos/acme/app/git/trees/main?recursive=1"]

    @pytest.mark.asyncio
    async def test_error_status(self):
        session = make_session(get=make_response(404, json_body={"message": "Not Found"}))
        with pytest.raises(CollaboratorUnavailable, match="HTTP 404"):
            await GitHubRepository(session=session).list_tree("acme", "app")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_shared_session_is_not_closed(self):
        session = make_session()
        async with GitHubRepository(session=session):
            pass
        session.close.assert_not_called()
