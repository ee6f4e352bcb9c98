"""
Terminal rendering of group views and prune results.

Shows the ranked images of a group side by side with their metadata and keep
scores, and summarizes bulk deletions.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dupe_review.core.deletion import DeleteResult
from dupe_review.core.models import GroupView, ScoredImage


def _size_mb(size_bytes: int) -> float:
    return size_bytes / (1024 * 1024)


def _resolution(image: ScoredImage) -> str:
    if image.record.width and image.record.height:
        return f"{image.record.width}x{image.record.height}"
    return "N/A"


def _modified(image: ScoredImage) -> str:
    if not image.record.modified_date:
        return "N/A"
    try:
        return datetime.fromtimestamp(image.record.modified_date).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return "N/A"


def _camera(image: ScoredImage) -> str:
    camera = " ".join(
        part for part in (image.metadata.camera_make, image.metadata.camera_model) if part
    )
    return escape(camera) or "N/A"


class ReviewUI:
    """Terminal-based review output using Rich."""

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize review UI.

        Args:
            console: Rich console instance (creates new one if None)
        """
        self.console = console or Console()

    def group_table(self, view: GroupView, total_groups: Optional[int] = None) -> Table:
        """
        Build the comparison table for one group.

        Args:
            view: Ranked group view
            total_groups: Number of groups in the partition, for the title

        Returns:
            Rich table, best-ranked image first
        """
        title = f"Group {view.index}"
        if total_groups is not None:
            title += f"/{total_groups - 1}"
        title += f"  (similarity score {view.group_similarity_score:.2f})"

        table = Table(
            title=title,
            box=box.DOUBLE,
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("#", style="dim", width=3)
        table.add_column("File", style="cyan")
        table.add_column("Resolution", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Modified", justify="right")
        table.add_column("Date Taken")
        table.add_column("Camera")
        table.add_column("Subject")
        table.add_column("Score", justify="right")

        for rank, image in enumerate(view.images):
            score_style = "green" if rank == 0 else "white"
            subject = escape(image.metadata.subject) or "[dim]none[/dim]"
            if not image.metadata.has_metadata:
                subject = "[red]no metadata[/red]"
            table.add_row(
                str(rank),
                escape(image.display_path or Path(image.record.path).name),
                _resolution(image),
                f"{_size_mb(image.record.size):.2f} MB",
                _modified(image),
                escape(image.metadata.date_taken) or "N/A",
                _camera(image),
                subject,
                f"[{score_style}]{image.score}[/{score_style}]",
            )
        return table

    def show_group(self, view: GroupView, total_groups: Optional[int] = None) -> None:
        """Print one group's comparison table."""
        self.console.print(self.group_table(view, total_groups))

    def show_prune_plan(self, to_delete: Sequence[ScoredImage], groups: int) -> None:
        """
        Show what a prune run is about to delete.

        Args:
            to_delete: Images selected for deletion
            groups: Number of groups involved
        """
        total_size = sum(image.record.size for image in to_delete)
        panel = Panel(
            f"[bold red]Delete {len(to_delete)} files[/bold red] "
            f"from [bold]{groups}[/bold] groups\n\n"
            f"[yellow]Space to recover: {_size_mb(total_size):.1f} MB[/yellow]",
            title="Prune Plan",
            box=box.DOUBLE,
        )
        self.console.print(panel)

        self.console.print("\n[red]Files to delete (sample):[/red]")
        for i, image in enumerate(to_delete[:10], 1):
            self.console.print(f"  {i}. {escape(image.record.path)}")
        if len(to_delete) > 10:
            self.console.print(f"  ... and {len(to_delete) - 10} more")

    def show_prune_results(self, results: List[DeleteResult]) -> None:
        """Summarize a prune run, listing every failure."""
        deleted = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        summary = Table(title="Prune Summary", box=box.ROUNDED)
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="green")
        summary.add_row("Deleted", str(len(deleted)))
        summary.add_row("Failed", str(len(failed)))
        self.console.print(summary)

        if failed:
            failures = Table(title="Failures", box=box.SIMPLE, header_style="bold red")
            failures.add_column("File")
            failures.add_column("Status")
            failures.add_column("Error")
            for result in failed:
                failures.add_row(
                    escape(result.path), result.status.value, escape(result.error or "")
                )
            self.console.print(failures)
