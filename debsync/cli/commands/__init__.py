"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path

from debsync.cli.renderer import ReportRenderer
from debsync.config import SyncConfig

renderer = ReportRenderer()


def load_config(*, repo: str | None = None, keyring: str | None = None) -> SyncConfig:
    """Build the env-driven config with CLI overrides applied."""
    overrides: dict[str, Path] = {}
    if repo:
        overrides["repo_path"] = Path(repo)
    if keyring:
        overrides["keyring_path"] = Path(keyring)
    return SyncConfig(**overrides)
