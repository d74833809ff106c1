"""Rich terminal rendering for sync reports and failures.

Color scheme
------------
- green  : INSTALLED
- cyan   : UP_TO_DATE
- yellow : UPDATE_AVAILABLE
- red    : failures
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from debsync.config import SyncConfig
from debsync.errors import CommandError, DebsyncError, VerificationError
from debsync.models.reports import SyncReport, SyncStatus

_STATUS_STYLES: dict[SyncStatus, tuple[str, str]] = {
    SyncStatus.INSTALLED: ("green", "[bold green]Installed[/bold green]"),
    SyncStatus.UP_TO_DATE: ("cyan", "[bold cyan]Already up to date[/bold cyan]"),
    SyncStatus.UPDATE_AVAILABLE: ("yellow", "[bold yellow]Update available[/bold yellow]"),
}


class ReportRenderer:
    """Renders ``SyncReport`` and ``DebsyncError`` for the terminal.

    Parameters
    ----------
    console:
        Console for normal output.
    err_console:
        Console for failures (stderr).
    """

    def __init__(
        self,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def render_report(self, report: SyncReport) -> Panel:
        border, headline = _STATUS_STYLES[report.status]
        lines = [headline, ""]
        release = report.release
        if release is not None:
            lines.append(f"[bold]Package:[/bold]  {escape(release.sanitized_name)}")
            lines.append(f"[bold]Release:[/bold]  {escape(release.tag_name or '(untagged)')}")
            lines.append(f"[bold]Updated:[/bold]  {release.updated_at.isoformat()}")
        if report.freshness is not None:
            lines.append(f"[bold]Local:[/bold]    {report.freshness.value}")
        if report.destination is not None:
            lines.append(f"[bold]Path:[/bold]     {report.destination}")
        if report.index_path is not None:
            lines.append(f"[bold]Index:[/bold]    {report.index_path}")
        if report.sha256:
            lines.append(f"[bold]SHA-256:[/bold]  {report.sha256}")
        return Panel(
            "\n".join(lines),
            title="[bold]debsync[/bold]",
            border_style=border,
            padding=(1, 2),
        )

    def print_report(self, report: SyncReport) -> None:
        self.console.print(self.render_report(report))

    def print_error(self, exc: DebsyncError) -> None:
        """Print the failure and, for command failures, that command's stderr only."""
        label = "Verification failed" if isinstance(exc, VerificationError) else "Sync failed"
        self.err_console.print(f"[bold red]{label}:[/bold red] {escape(str(exc))}", highlight=False)
        if isinstance(exc, CommandError) and exc.stderr:
            # markup=False: diagnostics are untrusted tool output
            self.err_console.print(exc.stderr, markup=False, highlight=False)

    def render_config(self, config: SyncConfig) -> Table:
        table = Table(title="Effective configuration")
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value")
        for name, value in config.model_dump().items():
            table.add_row(name, escape(str(value)))
        table.add_row("release_url", config.release_url)
        table.add_row("index_path", str(config.index_path))
        return table
