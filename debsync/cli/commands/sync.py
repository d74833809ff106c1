"""``debsync sync`` — mirror the latest signed release into the repository.

Exit status: 0 when the package was installed or is already current, 1 on
any fatal sync error, 2 when the deployment guard rejects the config.
"""

from __future__ import annotations

import typer

from debsync.cli.commands import load_config, renderer
from debsync.core.orchestrator import SyncOrchestrator
from debsync.errors import DebsyncError, DeploymentConfigError


def sync_cmd(
    repo: str = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository root (overrides DEBSYNC_REPO_PATH).",
    ),
    keyring: str = typer.Option(
        None,
        "--keyring",
        "-k",
        help="Pinned keyring file (overrides DEBSYNC_KEYRING_PATH).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Print nothing on success.",
    ),
) -> None:
    """Fetch, verify and publish the newest release artifact if it changed."""
    config = load_config(repo=repo, keyring=keyring)
    try:
        report = SyncOrchestrator(config).run()
    except DeploymentConfigError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=2)
    except DebsyncError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    if not quiet:
        renderer.print_report(report)
