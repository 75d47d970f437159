"""
ConsoleUI - Rich-based console output.

Human-readable output goes to stderr so that stdout carries only
command results (snapshot and instance names, connection strings).
"""

import logging
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..snapshot.models import ProjectStatus, SnapshotInfo


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Route pg_here logs through rich on stderr."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=verbose,
        markup=False,
    )
    root = logging.getLogger("pg_here")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False
    return root


class ConsoleUI:
    """
    Rich console interface for pg_here.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console(stderr=True)

    def print(self, *args, **kwargs):
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_error(self, message: str, details: Optional[List[str]] = None):
        """Errors are printed even in quiet mode."""
        self.console.print(f"[bold red]Error:[/] {escape(message)}", highlight=False)
        for line in details or []:
            self.console.print(f"[dim]{escape(line)}[/]", highlight=False)

    def print_success(self, message: str):
        self.print(f"[green]{message}[/]", highlight=False)

    def print_snapshots(self, snapshots: List[SnapshotInfo]):
        """Table of snapshots (for `list --long`)."""
        if self.quiet:
            return
        if not snapshots:
            self.console.print("[dim]No snapshots yet[/]")
            return

        table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
        table.add_column("Snapshot")
        table.add_column("Created")
        table.add_column("Path", style="dim")
        for snap in snapshots:
            created = snap.created_at.strftime("%Y-%m-%d %H:%M:%S") if snap.created_at else "-"
            table.add_row(snap.name, created, str(snap.path))
        self.console.print(table)

    def print_status(self, status: ProjectStatus):
        """Project overview panel plus instance table."""
        if self.quiet:
            return

        if status.current_is_symlink:
            current = f"[cyan]{status.current_name}[/]"
        elif status.current_exists:
            current = "[red](not a symlink)[/]"
        else:
            current = "[yellow](not initialised)[/]"

        body = (
            f"Project:   {status.project_dir}\n"
            f"Current:   {current}\n"
            f"Instances: {len(status.instances)}\n"
            f"Snapshots: {len(status.snapshots)}"
        )
        self.console.print(Panel(body, title="pg_here", border_style="cyan"))

        if status.instances:
            table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
            table.add_column("")
            table.add_column("Instance")
            table.add_column("Created")
            for inst in status.instances:
                created = inst.created_at.strftime("%Y-%m-%d %H:%M:%S") if inst.created_at else "-"
                table.add_row("*" if inst.is_current else "", inst.name, created)
            self.console.print(table)
