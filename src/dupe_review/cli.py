"""Command-line interface for dupe-review."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
import uvicorn
from rich.console import Console
from rich.markup import escape
from tqdm import tqdm

from dupe_review import __version__
from dupe_review.api import create_app
from dupe_review.context import ReviewContext, build_context
from dupe_review.core.deletion import DeleteResult
from dupe_review.core.errors import ConfigError, GroupNotFoundError
from dupe_review.core.models import GroupView, ScoredImage
from dupe_review.ui.review import ReviewUI
from dupe_review.utils.config import Config
from dupe_review.utils.logger import setup_logger

console = Console()
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="dupe-review")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON config file (default: ~/.dupe-review/config.json)",
)
@click.option(
    "--image-root",
    "--imagepath",
    "image_root",
    envvar="DUPE_REVIEW_IMAGE_ROOT",
    help="Directory that every reviewed image lives under",
)
@click.option(
    "--groups",
    "--duplicates",
    "groups_file",
    envvar="DUPE_REVIEW_GROUPS",
    help="Group partition file written by the similarity tool (default: groups.json)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write DEBUG logs to this file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_file: Optional[Path],
    image_root: Optional[str],
    groups_file: Optional[str],
    log_file: Optional[Path],
) -> None:
    """
    dupe-review - Review groups of near-duplicate images and delete the rejects.

    Images in each group are ranked by how worth keeping they look: embedded
    metadata, a human-written caption, and resolution all count in their favor.
    """
    ctx.ensure_object(dict)

    try:
        config = Config(config_file)
    except ConfigError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    # Command-line options win over the config file
    if image_root:
        config.set("image_root", image_root)
    if groups_file:
        config.set("groups_file", groups_file)
    if log_file:
        config.set("logging.file", str(log_file))

    setup_logger(
        "dupe_review",
        level=logging.DEBUG if verbose else logging.INFO,
        log_file=config.get_log_file(),
    )

    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config


def _load_context(config: Config) -> ReviewContext:
    """Build the review context, exiting with status 1 on configuration errors."""
    try:
        return build_context(config)
    except ConfigError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)


@cli.command()
@click.option("--host", envvar="DUPE_REVIEW_HOST", help="Interface to listen on")
@click.option("--port", "-p", type=int, envvar="DUPE_REVIEW_PORT", help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """
    Start the review web server.

    Example:
        dupe-review --image-root ~/Pictures --groups groups.json serve --port 8080
    """
    config: Config = ctx.obj["config"]
    if host:
        config.set("server.host", host)
    if port is not None:
        config.set("server.port", port)

    review_ctx = _load_context(config)
    host = config.get("server.host", "127.0.0.1")
    port = int(config.get("server.port", 8080))

    console.print(
        f"\n[bold cyan]dupe-review v{__version__}[/bold cyan] - "
        f"{len(review_ctx.store)} groups from {review_ctx.image_root}"
    )
    console.print(f"[green]Serving on[/green] http://{host}:{port}\n")

    try:
        uvicorn.run(create_app(review_ctx), host=host, port=port)
    finally:
        review_ctx.close()


@cli.command()
@click.argument("idx", type=int)
@click.pass_context
def inspect(ctx: click.Context, idx: int) -> None:
    """
    Show the ranked images of one group.

    IDX: Group index in the partition file (0-based)
    """
    review_ctx = _load_context(ctx.obj["config"])
    try:
        try:
            view = review_ctx.query.query_group(idx)
        except GroupNotFoundError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            sys.exit(1)

        ReviewUI(console).show_group(view, total_groups=len(review_ctx.query))
    finally:
        review_ctx.close()


def _collect_views(review_ctx: ReviewContext, group: Optional[int]) -> List[GroupView]:
    """Views of every group with at least two surviving images."""
    indices = [group] if group is not None else range(len(review_ctx.query))
    views: List[GroupView] = []
    for index in indices:
        try:
            view = review_ctx.query.query_group(index)
        except GroupNotFoundError as e:
            if group is not None:
                raise
            logger.debug(f"Skipping group {index}: {e.reason}")
            continue
        if len(view.images) >= 2:
            views.append(view)
    return views


@cli.command()
@click.option("--group", "-g", type=int, help="Only prune this group index")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted and stop")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option(
    "--show-progress/--no-progress",
    default=True,
    help="Show progress bars",
)
@click.pass_context
def prune(
    ctx: click.Context,
    group: Optional[int],
    dry_run: bool,
    yes: bool,
    show_progress: bool,
) -> None:
    """
    Keep the best-ranked image of each group and delete the rest.

    Deletion is permanent. Failures are reported per file and do not stop
    the run.

    Example:
        dupe-review --image-root ~/Pictures prune --dry-run
    """
    review_ctx = _load_context(ctx.obj["config"])
    try:
        try:
            views = _collect_views(review_ctx, group)
        except GroupNotFoundError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            sys.exit(1)

        to_delete: List[ScoredImage] = [
            image for view in views for image in view.images[1:]
        ]
        if not to_delete:
            console.print("[green]✓ Nothing to prune.[/green]")
            return

        review_ui = ReviewUI(console)
        review_ui.show_prune_plan(to_delete, groups=len(views))

        if dry_run:
            console.print("\n[dim]Dry run: no files were deleted.[/dim]")
            return

        if not yes and not click.confirm("\nDelete these files permanently?", default=False):
            console.print("[yellow]Prune cancelled. No files were deleted.[/yellow]")
            return

        results: List[DeleteResult] = []
        for image in tqdm(
            to_delete, desc="Deleting", unit="file", disable=not show_progress
        ):
            results.append(review_ctx.deletion.delete_image(image.record.path))

        review_ui.show_prune_results(results)
        if any(not result.success for result in results):
            sys.exit(1)
    finally:
        review_ctx.close()


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
