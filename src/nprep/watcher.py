"""Inbox watcher: process notes archives dropped into a folder."""

import logging
import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from rich.console import Console

from .config import options_from_config
from .errors import PrepError
from .pipeline import ProcessingPipeline
from .storage import get_status_store
from .vault.writer import copy_file

console = Console()
logger = logging.getLogger(__name__)

ASSETS_SUFFIX = ".assets.zip"


def assets_zip_for(notes_zip: Path) -> Path:
    return notes_zip.with_name(notes_zip.name[: -len(".zip")] + ASSETS_SUFFIX)


def is_notes_zip(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(".zip") and not name.endswith(ASSETS_SUFFIX)


class InboxHandler(FileSystemEventHandler):
    """Collects zip file events and debounces them."""

    def __init__(self, debounce: float = 5.0):
        super().__init__()
        self._pending: set[str] = set()
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._debounce = debounce
        self._callback = None

    def set_callback(self, callback):
        self._callback = callback

    def on_created(self, event):
        if not event.is_directory and str(event.src_path).lower().endswith(".zip"):
            self._add(event.src_path)

    def on_modified(self, event):
        if not event.is_directory and str(event.src_path).lower().endswith(".zip"):
            self._add(event.src_path)

    def _add(self, path: str):
        with self._lock:
            self._pending.add(path)
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._flush)
            self._timer.daemon = True
            self._timer.start()

    def _flush(self):
        with self._lock:
            paths = list(self._pending)
            self._pending.clear()
        if paths and self._callback:
            self._callback(paths)


class InboxWatcher:
    """Watches the inbox and runs one job per notes archive."""

    def __init__(self, config: dict, debounce: float = 5.0):
        self.config = config
        self.inbox_path = Path(config["inbox_path"])
        self.outbox_path = Path(config["outbox_path"])
        self.store = get_status_store(config)
        self.handler = InboxHandler(debounce=debounce)
        self.handler.set_callback(self.process_batch)
        self.observer = Observer()

    def process_batch(self, paths: list[str]) -> list[Path]:
        """Run a job for each notes archive in ``paths``. Returns deliverables."""
        notes_zips = sorted({
            Path(p) for p in paths if is_notes_zip(Path(p))
        } | {
            Path(p).with_name(Path(p).name[: -len(ASSETS_SUFFIX)] + ".zip")
            for p in paths if Path(p).name.lower().endswith(ASSETS_SUFFIX)
        })

        delivered = []
        for notes_zip in notes_zips:
            if not notes_zip.exists():
                continue
            assets_zip = assets_zip_for(notes_zip)
            target = self.outbox_path / f"{notes_zip.stem}.notion_ready.zip"
            pipeline = ProcessingPipeline(self.config, status_callback=self.store.put)
            console.print(f"[blue]Processing {notes_zip.name} as {pipeline.job_id}[/]")
            try:
                result = pipeline.process(
                    notes_zip,
                    assets_zip if assets_zip.exists() else None,
                    options_from_config(self.config),
                )
                copy_file(Path(result.zip_path), target)
            except PrepError as e:
                logger.error("Job %s for %s failed: %s", pipeline.job_id, notes_zip.name, e)
                console.print(f"  [red]✗ {notes_zip.name}: {e}[/]")
                continue

            console.print(f"  [green]✓ {result.total_notes} note(s) in {len(result.sections)} section(s) → {target}[/]")
            delivered.append(target)
        return delivered

    def run(self):
        """Start watching (blocks until Ctrl+C)."""
        self.inbox_path.mkdir(parents=True, exist_ok=True)
        self.observer.schedule(self.handler, str(self.inbox_path), recursive=False)
        self.observer.start()

        console.print(f"[bold]Watching {self.inbox_path} for notes archives... (Ctrl+C to stop)[/]")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopping watcher...[/]")
            self.observer.stop()
        self.observer.join()
        console.print("[green]✓ Watcher stopped.[/]")
