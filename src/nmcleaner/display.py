"""Rich terminal display for nmcleaner."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.tree import Tree

from nmcleaner.models import (
    DeleteResult,
    DriveInfo,
    NodeModulesMatch,
    RootError,
    ScanProgress,
    ScanReport,
    ScanState,
    format_size,
)

console = Console()

# Log records go to stderr so --json output stays parseable
err_console = Console(stderr=True)


def _by_size(matches: list[NodeModulesMatch]) -> list[NodeModulesMatch]:
    """Largest first, unknown sizes last, then by path."""
    return sorted(
        matches,
        key=lambda m: (m.size is None, -(m.size or 0), m.node_modules_path),
    )


def show_drives(drives: list[DriveInfo]) -> None:
    """Display available drives."""
    if not drives:
        console.print("[yellow]No drives found.[/yellow]")
        return

    table = Table(title="Drives", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Path")

    for drive in drives:
        table.add_row(escape(drive.name), escape(drive.path))

    console.print(table)


def show_matches(matches: list[NodeModulesMatch]) -> None:
    """Display matches as a table."""
    if not matches:
        console.print("[yellow]No node_modules directories found.[/yellow]")
        return

    table = Table(title="node_modules", show_header=True, header_style="bold")
    table.add_column("Project", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Path", style="dim")

    for match in _by_size(matches):
        table.add_row(escape(match.project_path), match.size_human, escape(match.node_modules_path))

    console.print(table)


def build_match_tree(matches: list[NodeModulesMatch], label: str = "node_modules") -> Tree:
    """Group matches by their project directories into a rich Tree."""
    tree = Tree(f"[bold]{label}[/bold]")
    nodes: dict[tuple[str, ...], Tree] = {}

    for match in sorted(matches, key=lambda m: m.project_path):
        parts = [p for p in match.project_path.replace("\\", "/").split("/") if p]
        parent = tree
        for depth in range(len(parts)):
            key = tuple(parts[: depth + 1])
            if key not in nodes:
                nodes[key] = parent.add(f"[cyan]{escape(parts[depth])}[/cyan]")
            parent = nodes[key]
        parent.add(f"[green]node_modules[/green] [dim]{match.size_human}[/dim]")

    return tree


def show_match_tree(matches: list[NodeModulesMatch]) -> None:
    """Display matches grouped by directory."""
    if not matches:
        console.print("[yellow]No node_modules directories found.[/yellow]")
        return
    console.print(build_match_tree(matches))


def show_root_errors(errors: list[RootError]) -> None:
    """Display roots that could not be scanned."""
    for error in errors:
        console.print(f"  [red]✗[/red] {escape(error.root)}: {error.reason}")


def show_scan_summary(report: ScanReport) -> None:
    """Display counters and totals of a finished scan."""
    progress = report.progress
    if report.state == ScanState.ABORTED:
        title = "[yellow]Scan cancelled[/yellow]"
        border = "yellow"
    else:
        title = "[green]Scan complete[/green]"
        border = "green"

    lines = [
        f"[bold]node_modules found:[/bold] {len(report.matches)}",
        f"  Folders scanned: {progress.folders_scanned}",
        f"  Directories skipped: {progress.directories_skipped}",
    ]
    if any(m.size is not None for m in report.matches):
        lines.append(f"  Total size: {format_size(report.total_size)}")
    if report.abort_reason:
        lines.append(f"  Reason: {report.abort_reason}")

    console.print(Panel("\n".join(lines), title=title, border_style=border))


def show_delete_results(results: list[DeleteResult]) -> None:
    """Display the outcome of a deletion batch."""
    for result in results:
        if result.success and result.dry_run:
            console.print(f"  [cyan]~[/cyan] {escape(result.path)}: would move to trash")
        elif result.success:
            console.print(f"  [green]✓[/green] {escape(result.path)}: moved to trash")
        else:
            console.print(f"  [red]✗[/red] {escape(result.path)}: {result.error}")

    success_count = sum(1 for r in results if r.success)
    failure_count = len(results) - success_count

    console.print()
    if failure_count:
        console.print(
            f"[yellow]Deleted {success_count} folder(s) successfully. {failure_count} failed.[/yellow]"
        )
    else:
        console.print(f"[green]Successfully deleted {success_count} folder(s).[/green]")


def show_deletion_preview(matches: list[NodeModulesMatch], dry_run: bool = False) -> None:
    """Display what is about to be trashed."""
    if dry_run:
        console.print("[yellow]DRY RUN - Nothing will be moved to the trash[/yellow]\n")

    table = Table(title="Deletion Preview", show_header=True, header_style="bold")
    table.add_column("Path")
    table.add_column("Size", justify="right")

    for match in _by_size(matches):
        table.add_row(escape(match.node_modules_path), match.size_human)

    console.print(table)
    total = sum(m.size for m in matches if m.size is not None)
    console.print(f"\n[bold]{len(matches)} folder(s), {format_size(total)}[/bold]")


def show_scanning_progress() -> Progress:
    """Create progress bar for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} folders"),
        TextColumn("[green]{task.fields[found]}[/green] found"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def describe_progress(snapshot: ScanProgress, width: int = 50) -> str:
    """Short description of the folder currently being scanned."""
    folder = snapshot.current_folder or "Starting scan..."
    if len(folder) > width:
        folder = "…" + folder[-(width - 1) :]
    return escape(folder)


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
