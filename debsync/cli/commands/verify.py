"""``debsync verify ARTIFACT SIGNATURE`` — check a local file against the keyring.

Uses the same verifier backend and keyring as ``sync``; handy for
confirming a keyring rotation before the scheduler picks it up.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from debsync.bridge.verifiers import build_verifier, keyring_fingerprint
from debsync.cli.commands import load_config, renderer
from debsync.core.executor import QuietRunner
from debsync.errors import DebsyncError


def verify_cmd(
    artifact: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="The artifact file.",
    ),
    signature: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Its detached signature.",
    ),
    keyring: str = typer.Option(
        None,
        "--keyring",
        "-k",
        help="Pinned keyring file (overrides DEBSYNC_KEYRING_PATH).",
    ),
) -> None:
    """Verify a detached signature against the pinned keyring."""
    config = load_config(keyring=keyring)
    runner = QuietRunner(timeout_seconds=config.command_timeout_seconds)
    verifier = build_verifier(config, runner)
    try:
        verifier.verify(signature, artifact)
    except DebsyncError as exc:
        renderer.print_error(exc)
        raise typer.Exit(code=1)

    renderer.console.print(
        f"[bold green]Signature OK[/bold green] {escape(artifact.name)} "
        f"[dim](keyring {keyring_fingerprint(config.keyring_path)})[/dim]"
    )
