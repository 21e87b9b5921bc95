"""
Runtime settings.

Settings are read from the environment once per invocation and passed down
explicitly; nothing below the entry point consults os.environ again.

Environment variables:
    READ_ONLY_CHECKS_URL: read-only probe endpoint
    READ_ONLY_CHECKS_HEADERS: probe headers (JSON or "key: value" lines)
    OPENAI_API_KEY: enables the model-backed clarity scorer
    GITHUB_TOKEN: credential for the GitHub adapter
    ROADMAP_STATUS_MANUAL_STORE_PATH: local manual-override store
    ROADMAP_STATUS_CONCURRENCY: per-item check concurrency

Example:
    settings = Settings.from_env().with_overrides(probe_url="https://probe.example/run")
    headers = merge_probe_headers(settings.probe_headers, request_headers)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from roadmap_status.exceptions import ConfigurationError
from roadmap_status.probe import ProbeHeaders, parse_probe_headers

DEFAULT_MANUAL_STORE_PATH = ".roadmap-status/manual-store.json"
DEFAULT_BRANCH = "main"


def _get_env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    """Get a non-blank string from the environment, or None."""
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_env_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Get an integer from the environment, raising on invalid values."""
    value = _get_env_str(env, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer", {"value": value}) from exc


@dataclass(frozen=True)
class Settings:
    """Configuration for one status computation.

    Attributes:
        probe_url: Read-only probe endpoint; sql_exists checks fail without it.
        probe_headers: Headers sent with every probe request.
        openai_api_key: Enables OpenAIClarityScorer when set.
        github_token: Credential passed to the GitHub adapter.
        manual_store_path: JSON file holding manual overrides.
        concurrency: Maximum concurrent checks per item.
    """

    probe_url: Optional[str] = None
    probe_headers: ProbeHeaders = field(default_factory=dict)
    openai_api_key: Optional[str] = None
    github_token: Optional[str] = None
    manual_store_path: str = DEFAULT_MANUAL_STORE_PATH
    concurrency: int = 1

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigurationError(
                "concurrency must be at least 1", {"value": self.concurrency}
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from environment variables."""
        source = os.environ if env is None else env
        return cls(
            probe_url=_get_env_str(source, "READ_ONLY_CHECKS_URL"),
            probe_headers=parse_probe_headers(source.get("READ_ONLY_CHECKS_HEADERS", "")),
            openai_api_key=_get_env_str(source, "OPENAI_API_KEY"),
            github_token=_get_env_str(source, "GITHUB_TOKEN"),
            manual_store_path=(
                _get_env_str(source, "ROADMAP_STATUS_MANUAL_STORE_PATH") or DEFAULT_MANUAL_STORE_PATH
            ),
            concurrency=_get_env_int(source, "ROADMAP_STATUS_CONCURRENCY", 1),
        )

    def with_overrides(
        self,
        probe_url: Optional[str] = None,
        probe_headers: Optional[ProbeHeaders] = None,
        concurrency: Optional[int] = None,
        manual_store_path: Optional[str] = None,
    ) -> Settings:
        """Create new settings with command-line or request overrides applied.

        Probe headers are merged on top of the existing ones.
        """
        return Settings(
            probe_url=probe_url if probe_url else self.probe_url,
            probe_headers=merge_probe_headers(self.probe_headers, probe_headers),
            openai_api_key=self.openai_api_key,
            github_token=self.github_token,
            manual_store_path=manual_store_path if manual_store_path else self.manual_store_path,
            concurrency=concurrency if concurrency is not None else self.concurrency,
        )


def merge_probe_headers(*layers: Any) -> ProbeHeaders:
    """Merge header layers; later layers win (env < request < payload)."""
    merged: ProbeHeaders = {}
    for layer in layers:
        merged.update(parse_probe_headers(layer))
    return merged


__all__ = ["DEFAULT_MANUAL_STORE_PATH", "DEFAULT_BRANCH", "Settings", "merge_probe_headers"]
