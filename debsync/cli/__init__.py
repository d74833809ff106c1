"""debsync CLI — Typer-based command-line interface.

Provides the ``debsync`` command with subcommands for syncing, checking
for updates, verifying local files, and showing configuration.

All output uses Rich for formatted terminal display.
"""
