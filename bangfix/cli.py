"""Typer-based CLI for bangfix."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .analyzer import TscAnalyzer
from .diff_engine import DiffEngine
from .engine import FixEngine
from .errors import ProjectError
from .models import RunReport
from .project import Project

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    help="❗ bangfix: silence \"possibly undefined\" TypeScript errors with non-null assertions.",
    add_completion=False,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"bangfix v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    root = logging.getLogger("bangfix")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def _show_backups(engine: DiffEngine) -> None:
    backups = engine.list_backups()
    if not backups:
        typer.echo("No backups found.")
        return

    table = Table(title="Backups")
    table.add_column("ID", style="cyan")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Description")
    for backup in backups:
        table.add_row(
            backup["backup_id"],
            backup["timestamp"],
            str(len(backup["files"])),
            backup.get("description", ""),
        )
    console.print(table)


def _show_report(report: RunReport, project: Project) -> None:
    table = Table(title="bangfix summary", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Generations", str(report.generations))
    table.add_row("Assertions inserted", f"[green]{report.num_fixed}[/green]")
    table.add_row("Left for manual review", f"[yellow]{report.num_skipped}[/yellow]")
    if report.backup_id:
        table.add_row("Backup", report.backup_id)
    console.print(table)

    for path, count in sorted(report.fixes_by_file().items()):
        try:
            shown = path.relative_to(project.root_dir)
        except ValueError:
            shown = path
        console.print(f"  {shown}: {count}")


@app.command()
def main(
    tsconfig: Path = typer.Argument(
        Path(config.DEFAULT_TSCONFIG),
        help="Path to the project's tsconfig.json.",
    ),
    show_diff: bool = typer.Option(False, "--diff", help="Print a unified diff of every change."),
    backup: bool = typer.Option(
        config.BACKUP_ENABLED,
        "--backup/--no-backup",
        help="Back up files before they are first rewritten.",
    ),
    tsc: Optional[str] = typer.Option(None, "--tsc", help="Command used to run the TypeScript compiler."),
    keyword: str = typer.Option(
        config.ABSENT_VALUE_KEYWORD,
        "--keyword",
        "-k",
        help="Diagnostics whose message contains this text are fixed.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log every resolution step."),
    list_backups: bool = typer.Option(False, "--list-backups", help="List backups and exit."),
    restore: Optional[str] = typer.Option(None, "--restore", help="Restore a backup by ID and exit."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Insert non-null assertions until no fixable "undefined" diagnostics remain."""
    _configure_logging(verbose)
    diff_engine = DiffEngine()

    if list_backups:
        _show_backups(diff_engine)
        return

    if restore:
        if not diff_engine.rollback(restore):
            typer.echo(f"❌ Backup '{restore}' not found or could not be restored.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Restored backup '{restore}'.")
        return

    try:
        project = Project.load(
            tsconfig,
            analyzer=TscAnalyzer(tsc_command=tsc),
            diff_engine=diff_engine,
            backup=backup,
        )
        console.print(f"tsconfig: [cyan]{project.config_path}[/cyan]")
        console.print(f"typescript lib: [cyan]{project.lib_dir or 'not found'}[/cyan]")

        report = FixEngine(project, keyword=keyword).run()
    except ProjectError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception:
        logger.exception("bangfix failed")
        raise typer.Exit(code=1)

    _show_report(report, project)

    if show_diff:
        changes = project.changes()
        if changes:
            typer.echo(diff_engine.preview_changes(changes, root=project.root_dir))
        else:
            typer.echo("No changes.")


if __name__ == "__main__":
    app()
