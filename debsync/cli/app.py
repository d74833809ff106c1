"""Main Typer application — imports and registers all CLI commands.

Entry point: ``debsync`` (configured via pyproject.toml console_scripts).

Commands: sync, check, verify, config.
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from debsync.cli.commands import load_config, renderer
from debsync.cli.commands.check import check_cmd
from debsync.cli.commands.sync import sync_cmd
from debsync.cli.commands.verify import verify_cmd

app = typer.Typer(
    name="debsync",
    help="debsync: mirror a signed upstream Debian package into a local repository.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="sync", help="Fetch, verify and publish the latest release.")(sync_cmd)
app.command(name="check", help="Report whether an update is available.")(check_cmd)
app.command(name="verify", help="Verify a local artifact against the keyring.")(verify_cmd)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level."
    ),
) -> None:
    """Configure logging once for every command."""
    level = "DEBUG" if verbose else load_config().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=renderer.err_console, show_path=False)],
        force=True,
    )


@app.command(name="config", help="Show the effective configuration.")
def config_cmd() -> None:
    """Print the configuration after environment and .env overrides."""
    renderer.console.print(renderer.render_config(load_config()))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
