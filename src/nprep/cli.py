"""CLI entry point for notion-prep."""

import logging
import sys
import tempfile
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DEFAULT_CONFIG, load_config, options_from_config
from .errors import PrepError

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Notion Prep - reorganize a markdown notes export into import-ready sections."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_config(ctx) -> dict:
    config = load_config(ctx.obj.get("config_path"))
    level = logging.DEBUG if ctx.obj.get("verbose") else config.get("log_level", "INFO")
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return config


def _fail(error: Exception):
    console.print(f"[red]✗ {error}[/]")
    sys.exit(1)


def _section_table(sections) -> Table:
    table = Table(title="Sections")
    table.add_column("#", style="dim", width=3)
    table.add_column("Label", style="cyan")
    table.add_column("Notes", justify="right", style="green")
    table.add_column("Sample", max_width=60)
    for i, section in enumerate(sections, 1):
        table.add_row(str(i), section.label, str(len(section.notes)), ", ".join(n.title for n in section.notes[:3]))
    return table


@cli.command()
@click.option("--path", default=None, help="Custom base path")
@click.pass_context
def init(ctx, path):
    """Create working directories and a config file."""
    import yaml

    base = Path(path).expanduser().resolve() if path else Path("~/.nprep").expanduser()
    console.print(f"[bold green]Initializing notion-prep at {base}[/]")

    for d in ("jobs", "inbox", "outbox"):
        (base / d).mkdir(parents=True, exist_ok=True)

    config_file = base / "config.yaml"
    if not config_file.exists():
        cfg = dict(DEFAULT_CONFIG)
        cfg["work_dir"] = str(base / "jobs")
        cfg["inbox_path"] = str(base / "inbox")
        cfg["outbox_path"] = str(base / "outbox")
        header = (
            "# grouping_strategy: cluster | headings | tags\n"
            "# clustering_k: auto or an integer >= 1\n"
            "# status_backend: filesystem | memory\n\n"
        )
        config_file.write_text(header + yaml.dump(cfg, default_flow_style=False, sort_keys=False))
        console.print(f"  Created config: {config_file}")

    console.print("[bold green]✓ notion-prep initialized![/]")
    console.print(f"  Drop archives in: {base / 'inbox'}")
    console.print("  Run: nprep watch")


@cli.command()
@click.argument("notes_zip", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--assets", "assets_zip", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Optional assets archive")
@click.option("--k", "clustering_k", default=None, help="Number of clusters, or 'auto'")
@click.option("--strategy", type=click.Choice(["cluster", "headings", "tags"]), default=None,
              help="Grouping strategy")
@click.option("--seed", type=int, default=None, help="Random seed for clustering")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=Path("notion_ready.zip"),
              help="Where to write the packaged result")
@click.pass_context
def run(ctx, notes_zip, assets_zip, clustering_k, strategy, seed, output):
    """Process a notes archive into an import-ready archive."""
    from .pipeline import ProcessingPipeline
    from .storage import get_status_store
    from .vault.writer import copy_file

    config = _get_config(ctx)
    store = get_status_store(config)

    def on_status(status):
        store.put(status)
        console.print(f"  [dim]{status.progress:>3}%[/] {status.state.value}: {status.message}")

    try:
        options = options_from_config(config, clustering_k=clustering_k, grouping_strategy=strategy, seed=seed)
        pipeline = ProcessingPipeline(config, status_callback=on_status)
        console.print(f"[blue]Job {pipeline.job_id}[/]")
        result = pipeline.process(notes_zip, assets_zip, options)
        copy_file(Path(result.zip_path), output)
    except PrepError as e:
        _fail(e)

    table = Table(title="Sections")
    table.add_column("Label", style="cyan")
    table.add_column("Notes", justify="right", style="green")
    table.add_column("Sample", max_width=60)
    for section in result.sections:
        table.add_row(section.label, str(len(section.note_filenames)), ", ".join(section.sample_titles))
    console.print(table)

    console.print(f"[green]✓ {result.total_notes} note(s), {result.total_assets} asset(s) → {output}[/]")
    if result.unresolved_links or result.unresolved_images:
        console.print(
            f"  [yellow]{result.unresolved_links} unresolved link(s), "
            f"{result.unresolved_images} unresolved image(s); see RUN_REPORT.md[/]"
        )


@cli.command()
@click.argument("notes_zip", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--k", "clustering_k", default=None, help="Number of clusters, or 'auto'")
@click.option("--strategy", type=click.Choice(["cluster", "headings", "tags"]), default=None,
              help="Grouping strategy")
@click.option("--seed", type=int, default=None, help="Random seed for clustering")
@click.pass_context
def preview(ctx, notes_zip, clustering_k, strategy, seed):
    """Show how a notes archive would be grouped, without writing output."""
    from .archive import extract_zip
    from .ingest.processor import process_directory
    from .vault.sections import build_sections

    config = _get_config(ctx)
    try:
        options = options_from_config(config, clustering_k=clustering_k, grouping_strategy=strategy, seed=seed)
        with tempfile.TemporaryDirectory() as tmpdir:
            extract_zip(notes_zip, tmpdir)
            notes = process_directory(Path(tmpdir))
        kmeans_cfg = dict(config.get("kmeans", {}), max_features=config["vectorizer"]["max_features"])
        layout = build_sections(notes, options, kmeans_cfg)
    except PrepError as e:
        _fail(e)

    console.print(_section_table(layout.sections))
    if layout.k is not None:
        console.print(f"  [dim]k = {layout.k}[/]")


@cli.command()
@click.argument("job_id")
@click.pass_context
def status(ctx, job_id):
    """Show the stored status of a job."""
    from .storage import get_status_store

    config = _get_config(ctx)
    try:
        snapshot = get_status_store(config).get(job_id)
    except ValueError as e:
        _fail(e)

    if snapshot is None:
        console.print(f"[yellow]No job found: {job_id}[/]")
        sys.exit(1)

    color = {"ready": "green", "error": "red"}.get(snapshot.state.value, "blue")
    console.print(f"[bold]{snapshot.id}[/]  [{color}]{snapshot.state.value}[/] {snapshot.progress}%")
    console.print(f"  {snapshot.message}")
    if snapshot.error:
        console.print(f"  [red]{snapshot.error}[/]")
    if snapshot.expires_at:
        console.print(f"  [dim]expires {snapshot.expires_at.isoformat()}[/]")
    if snapshot.result:
        console.print(f"  Notes: {snapshot.result.total_notes}  Sections: {len(snapshot.result.sections)}")
        console.print(f"  Archive: {snapshot.result.zip_path}")


@cli.command()
@click.option("--job", "job_id", default=None, help="Remove a single job workspace")
@click.pass_context
def cleanup(ctx, job_id):
    """Remove expired job workspaces."""
    from .maintenance.janitor import cleanup_expired_jobs, cleanup_job

    config = _get_config(ctx)
    if job_id:
        try:
            removed = cleanup_job(config, job_id)
        except ValueError as e:
            _fail(e)
        console.print(f"[green]✓ Removed {job_id}[/]" if removed else f"[yellow]No workspace for {job_id}[/]")
        return

    console.print("[blue]Cleaning up job workspaces...[/]")
    stats = cleanup_expired_jobs(config)
    console.print("[green]✓ Cleanup complete[/]")
    console.print(f"  Removed: {stats['removed']}")
    console.print(f"  Kept: {stats['kept']}")


@cli.command()
@click.option("--debounce", default=5.0, help="Seconds to wait after last change before processing")
@click.pass_context
def watch(ctx, debounce):
    """Watch the inbox for notes archives and process them."""
    from .watcher import InboxWatcher

    config = _get_config(ctx)
    InboxWatcher(config, debounce=debounce).run()


if __name__ == "__main__":
    cli()
