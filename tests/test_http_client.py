"""Tests for the shared aiohttp session factory."""

import pytest

from roadmap_status.__version__ import PACKAGE_NAME, __version__
from roadmap_status.http_client import DEFAULT_TIMEOUT, PROBE_TIMEOUT, USER_AGENT, create_client_session


class TestCreateClientSession:
    def test_user_agent_names_the_package(self):
        assert USER_AGENT == f"{PACKAGE_NAME}/{__version__}"

    @pytest.mark.asyncio
    async def test_defaults(self):
        async with create_client_session() as session:
            assert session.timeout == DEFAULT_TIMEOUT
            assert session.headers["User-Agent"] == USER_AGENT
            assert "no-store" in session.headers["Cache-Control"]

    @pytest.mark.asyncio
    async def test_custom_timeout_and_headers(self):
        async with create_client_session(timeout=PROBE_TIMEOUT, headers={"apikey": "k"}) as session:
            assert session.timeout == PROBE_TIMEOUT
            assert session.headers["apikey"] == "k"
