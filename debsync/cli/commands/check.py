"""``debsync check`` — report whether an update is available, without fetching it."""

from __future__ import annotations

import typer

from debsync.cli.commands import load_config, renderer
from debsync.core.orchestrator import SyncOrchestrator
from debsync.errors import DebsyncError, DeploymentConfigError
from debsync.models.reports import SyncStatus


def check_cmd(
    repo: str = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository root (overrides DEBSYNC_REPO_PATH).",
    ),
    exit_code: bool = typer.Option(
        False,
        "--exit-code",
        help="Exit with status 3 when an update is available.",
    ),
) -> None:
    """Resolve the latest release and compare it with the local copy."""
    config = load_config(repo=repo)
    try:
        report = SyncOrchestrator(config).check()
    except DeploymentConfigError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=2)
    except DebsyncError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    renderer.print_report(report)
    if exit_code and report.status == SyncStatus.UPDATE_AVAILABLE:
        raise typer.Exit(code=3)
