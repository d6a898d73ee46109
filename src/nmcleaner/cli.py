"""CLI interface for nmcleaner."""

import logging
import os
from typing import List, Optional

import typer
from rich.logging import RichHandler

from nmcleaner import __version__, commands
from nmcleaner.config import ScanConfig
from nmcleaner.display import (
    confirm_action,
    console,
    err_console,
    describe_progress,
    show_delete_results,
    show_deletion_preview,
    show_drives,
    show_match_tree,
    show_matches,
    show_root_errors,
    show_scan_summary,
    show_scanning_progress,
)
from nmcleaner.exceptions import FolderOpenError, InvalidScanRequestError, ScanInProgressError
from nmcleaner.models import ScanProgress

# Create Typer app
app = typer.Typer(
    name="nmcleaner",
    help="Find node_modules folders and move them to the trash",
    add_completion=False,
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nmcleaner version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """nmcleaner - find and trash node_modules folders."""
    _setup_logging(verbose)


@app.command()
def drives() -> None:
    """List drives and volumes that can be scanned."""
    show_drives(commands.list_drives())


@app.command()
def scan(
    paths: Optional[List[str]] = typer.Argument(None, help="Folders to scan (default: current directory)"),
    drive: Optional[str] = typer.Option(None, "--drive", "-d", help="Scan a whole drive or mount point"),
    all_drives: bool = typer.Option(False, "--all-drives", help="Scan every drive (entire computer)"),
    sizes: bool = typer.Option(True, "--sizes/--no-sizes", help="Measure each node_modules folder"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Traversal threads"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=1, help="Deepest level to enter"),
    follow_symlinks: bool = typer.Option(False, "--follow-symlinks", help="Traverse symlinked folders"),
    skip: Optional[List[str]] = typer.Option(None, "--skip", help="Extra folder name to never enter"),
    min_size: float = typer.Option(0.0, "--min-size", min=0.0, help="Only keep matches of at least this many MB"),
    tree: bool = typer.Option(False, "--tree", help="Show results grouped by folder"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    clean: bool = typer.Option(False, "--clean", help="Move every match found to the trash"),
    dry_run: bool = typer.Option(False, "--dry-run", help="With --clean, only show what would be deleted"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """Scan for node_modules folders."""
    if all_drives:
        roots = [d.path for d in commands.list_drives()]
    elif drive:
        roots = [drive]
    else:
        roots = list(paths or [os.getcwd()])

    config_args = {"follow_symlinks": follow_symlinks, "max_depth": max_depth, "extra_skip_names": skip or []}
    if workers:
        config_args["workers"] = workers
    config = ScanConfig(**config_args)

    try:
        if as_json:
            report = commands.run_scan(roots, include_sizes=sizes, config=config)
        else:
            with show_scanning_progress() as progress:
                task = progress.add_task("Starting scan...", total=None, found=0)

                def update_progress(snapshot: ScanProgress) -> None:
                    progress.update(
                        task,
                        description=describe_progress(snapshot),
                        completed=snapshot.folders_scanned,
                        total=snapshot.total_folders_estimated or None,
                        found=snapshot.node_modules_found,
                    )

                report = commands.run_scan(
                    roots, include_sizes=sizes, on_progress=update_progress, config=config
                )
    except (InvalidScanRequestError, ScanInProgressError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    matches = report.matches
    if min_size > 0:
        threshold = int(min_size * 1000**2)
        matches = [m for m in matches if m.size is not None and m.size >= threshold]

    if as_json:
        typer.echo(report.model_copy(update={"matches": matches}).model_dump_json(indent=2))
    else:
        if tree:
            show_match_tree(matches)
        else:
            show_matches(matches)
        if report.root_errors:
            console.print("\n[red]Some roots could not be scanned:[/red]")
            show_root_errors(report.root_errors)
        console.print()
        show_scan_summary(report)

    if not clean or not matches:
        return

    console.print()
    show_deletion_preview(matches, dry_run=dry_run)
    if not yes and not dry_run:
        console.print()
        if not confirm_action("Move these folders to the trash?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    results = commands.delete_node_modules([m.node_modules_path for m in matches], dry_run=dry_run)
    console.print()
    show_delete_results(results)
    if not all(r.success for r in results):
        raise typer.Exit(1)


@app.command()
def delete(
    paths: List[str] = typer.Argument(..., help="node_modules folders to move to the trash"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without deleting"),
    verify: bool = typer.Option(False, "--verify", help="Refuse folders that don't look like installed packages"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """Move specific node_modules folders to the trash."""
    targets = [os.path.abspath(os.path.expanduser(p)) for p in paths]

    if not yes and not dry_run:
        for target in targets:
            console.print(f"  • {target}")
        if not confirm_action(f"Move {len(targets)} folder(s) to the trash?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        results = commands.delete_node_modules(targets, dry_run=dry_run, verify_contents=verify)
    except ScanInProgressError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    show_delete_results(results)
    if not all(r.success for r in results):
        raise typer.Exit(1)


@app.command(name="open")
def open_folder(
    path: str = typer.Argument(..., help="Folder to show in the file manager"),
) -> None:
    """Open a folder in the system file manager."""
    try:
        commands.open_folder_in_explorer(os.path.abspath(os.path.expanduser(path)))
    except FolderOpenError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
