"""
roadmap-status command line.

Usage:
    roadmap-status run --repo-dir . --owner acme --repo app
    roadmap-status discover --repo-dir . --owner acme --repo app --probe-url URL
    roadmap-status normalize docs/roadmap.yml

Examples:
    # Compute status for a local checkout, writing artifacts under ./out
    roadmap-status run --repo-dir ~/src/app --owner acme --repo app --output-dir ./out

    # Read the roadmap from GitHub instead of the checkout
    GITHUB_TOKEN=... roadmap-status run --github --owner acme --repo app --branch main

    # Probe a read-only database endpoint with extra headers
    roadmap-status run --owner acme --repo app \\
        --probe-url https://probe.example/run --probe-header "apikey: secret"

Exit codes:
    0  success
    1  one or more artifact writes failed
    2  missing or malformed roadmap, or invalid configuration
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Optional, Sequence

from roadmap_status.__version__ import __version__
from roadmap_status.clarity import ClarityScorer, HeuristicClarityScorer, OpenAIClarityScorer
from roadmap_status.config import DEFAULT_BRANCH, Settings
from roadmap_status.discovery import DiscoveryDeps, DiscoveryRequest, run_discovery
from roadmap_status.exceptions import MissingInputError, RoadmapStatusError, error_payload
from roadmap_status.github import GitHubRepository
from roadmap_status.logging_config import configure_logging
from roadmap_status.manual_store import LocalManualStore
from roadmap_status.normalize import normalize_roadmap_yaml
from roadmap_status.probe import ReadOnlyProbe
from roadmap_status.repository import LocalRepository
from roadmap_status.runner import StatusDeps, StatusRequest, compute_status

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WRITE_FAILED = 1
EXIT_INPUT_ERROR = 2


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def parse_header_args(values: Optional[Sequence[str]]) -> dict[str, str]:
    """Parse repeated --probe-header "Name: value" arguments."""
    headers: dict[str, str] = {}
    for value in values or []:
        key, sep, header_value = value.partition(":")
        if sep and key.strip() and header_value.strip():
            headers[key.strip()] = header_value.strip()
    return headers


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        probe_url=args.probe_url,
        probe_headers=parse_header_args(args.probe_header),
        concurrency=getattr(args, "concurrency", None),
    )


def select_scorer(args: argparse.Namespace, settings: Settings) -> Optional[ClarityScorer]:
    if args.no_clarity:
        return None
    if settings.openai_api_key:
        return OpenAIClarityScorer(settings.openai_api_key)
    return HeuristicClarityScorer()


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    local = LocalRepository(args.repo_dir, output_dir=args.output_dir)
    async with AsyncExitStack() as stack:
        accessor = local
        if args.github:
            accessor = await stack.enter_async_context(GitHubRepository(token=settings.github_token))
        run = await compute_status(
            StatusRequest(
                owner=args.owner,
                repo=args.repo,
                branch=args.branch,
                project=args.project,
                probe_url=settings.probe_url,
                probe_headers=settings.probe_headers,
                credential=settings.github_token if args.github else None,
                concurrency=settings.concurrency,
            ),
            StatusDeps(
                file_accessor=accessor,
                writer=local,
                probe=ReadOnlyProbe(),
                manual_store=LocalManualStore(settings.manual_store_path),
                clarity_scorer=select_scorer(args, settings),
            ),
        )
    print_json(run.to_dict())
    return EXIT_OK if run.manifest.ok else EXIT_WRITE_FAILED


async def _discover(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    local = LocalRepository(args.repo_dir, output_dir=args.output_dir)
    async with AsyncExitStack() as stack:
        source = local
        if args.github:
            source = await stack.enter_async_context(GitHubRepository(token=settings.github_token))
        outcome = await run_discovery(
            DiscoveryRequest(
                owner=args.owner,
                repo=args.repo,
                branch=args.branch,
                project=args.project,
                probe_url=settings.probe_url,
                probe_headers=settings.probe_headers,
                credential=settings.github_token if args.github else None,
            ),
            DiscoveryDeps(file_accessor=source, tree_lister=source, writer=local),
        )
    print_json(outcome.to_dict())
    return EXIT_OK if outcome.ok else EXIT_WRITE_FAILED


def cmd_run(args: argparse.Namespace) -> int:
    """Compute roadmap status and write artifacts."""
    return asyncio.run(_run(args))


def cmd_discover(args: argparse.Namespace) -> int:
    """Run the discovery sweep."""
    return asyncio.run(_discover(args))


def cmd_normalize(args: argparse.Namespace) -> int:
    """Print the canonical YAML form of a roadmap file."""
    path = Path(args.file)
    if not path.is_file():
        raise MissingInputError(str(path))
    sys.stdout.write(normalize_roadmap_yaml(path.read_text(encoding="utf-8")))
    return EXIT_OK


def _add_repository_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--repo-dir", default=".", help="Repository checkout (default: current directory)")
    parser.add_argument("--owner", required=True, help="Repository owner")
    parser.add_argument("--repo", required=True, help="Repository name")
    parser.add_argument("--branch", default=DEFAULT_BRANCH, help=f"Branch or ref (default: {DEFAULT_BRANCH})")
    parser.add_argument("--project", default=None, help="Project key for multi-roadmap repositories")
    parser.add_argument("--probe-url", default=None, help="Read-only probe endpoint (default: READ_ONLY_CHECKS_URL)")
    parser.add_argument(
        "--probe-header",
        action="append",
        metavar="NAME:VALUE",
        help="Extra probe header; may be repeated",
    )
    parser.add_argument("--output-dir", default=None, help="Directory artifacts are written under (default: --repo-dir)")
    parser.add_argument("--github", action="store_true", help="Read repository files from GitHub")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roadmap-status",
        description="Compute live roadmap status from repository signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Log level (default: ROADMAP_STATUS_LOG_LEVEL or INFO)")
    parser.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Compute status and write artifacts")
    _add_repository_arguments(run_parser)
    run_parser.add_argument("--concurrency", type=int, default=None, help="Concurrent checks per item")
    run_parser.add_argument("--no-clarity", action="store_true", help="Skip clarity annotation")
    run_parser.set_defaults(handler=cmd_run)

    discover_parser = subparsers.add_parser("discover", help="Find completed work missing from the roadmap")
    _add_repository_arguments(discover_parser)
    discover_parser.set_defaults(handler=cmd_discover)

    normalize_parser = subparsers.add_parser("normalize", help="Print a roadmap in canonical form")
    normalize_parser.add_argument("file", help="Roadmap YAML or JSON file")
    normalize_parser.set_defaults(handler=cmd_normalize)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_output=args.json_logs)

    try:
        return args.handler(args)
    except RoadmapStatusError as exc:
        _, payload = error_payload(exc)
        print_json(payload)
        return EXIT_INPUT_ERROR


if __name__ == "__main__":
    sys.exit(main())
