"""Job pipeline: extract, parse, group, rewrite, assemble, package."""

import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import Any

from .archive import create_zip, extract_zip
from .errors import InputError, IOFailure
from .ingest.assets import build_asset_index
from .ingest.processor import process_directory
from .models import ProcessingOptions
from .status import JobResult, JobState, JobStatus, JobTracker, SectionInfo, StatusCallback
from .vault.report import REPORT_FILENAME, build_report
from .vault.rewriter import rewrite_notes
from .vault.sections import build_sections
from .vault.writer import OutputWriter

logger = logging.getLogger(__name__)

OUTPUT_DIRNAME = "notion_ready"


def generate_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def check_upload(path: Path | None, max_mb: float, what: str = "Notes ZIP file") -> None:
    if path is None or not path.is_file():
        raise InputError(f"{what} is required")
    size = path.stat().st_size
    if size == 0:
        raise InputError(f"{what} is empty")
    if size > max_mb * 1024 * 1024:
        raise InputError(f"{what} is too large. Maximum size is {max_mb:g}MB.")


class ProcessingPipeline:
    """Runs one job inside its own workspace under ``work_dir``.

    Status changes go to ``status_callback`` after each stage completes.
    Any failure moves the job to the error state and is re-raised.
    """

    def __init__(
        self,
        config: dict[str, Any],
        job_id: str | None = None,
        status_callback: StatusCallback | None = None,
    ):
        self.config = config
        self.job_id = job_id or generate_job_id()
        self.workspace = Path(config["work_dir"]) / self.job_id
        self.tracker = JobTracker(self.job_id, status_callback, ttl_hours=config.get("job_ttl_hours", 24))
        if status_callback:
            status_callback(self.tracker.status)

    @property
    def status(self) -> JobStatus:
        return self.tracker.status

    def process(
        self,
        notes_zip: str | Path,
        assets_zip: str | Path | None,
        options: ProcessingOptions,
    ) -> JobResult:
        start = time.monotonic()
        try:
            return self._process(Path(notes_zip), Path(assets_zip) if assets_zip else None, options, start)
        except Exception as e:
            self.tracker.fail(str(e) or type(e).__name__)
            raise

    def _process(self, notes_zip: Path, assets_zip: Path | None, options: ProcessingOptions, start: float) -> JobResult:
        advance = self.tracker.advance
        max_mb = self.config.get("limits", {}).get("max_upload_mb", 300)

        check_upload(notes_zip, max_mb)
        if assets_zip is not None:
            check_upload(assets_zip, max_mb, what="Assets ZIP file")

        notes_dir = self.workspace / "notes"
        assets_dir = self.workspace / "assets"
        output_dir = self.workspace / OUTPUT_DIRNAME

        # Stage 1: extract
        extract_zip(notes_zip, notes_dir)
        advance(JobState.SCANNING, 20, "Extracted notes")
        if assets_zip is not None:
            extract_zip(assets_zip, assets_dir)
            advance(JobState.SCANNING, 30, "Extracted assets")

        # Stage 2: parse and index
        notes = process_directory(notes_dir)
        advance(JobState.SCANNING, 40, f"Scanned {len(notes)} markdown file(s)")
        asset_index = build_asset_index(assets_dir)
        advance(JobState.SCANNING, 50, f"Indexed {asset_index.total} asset file(s)")

        # Stage 3: group
        kmeans_cfg = dict(self.config.get("kmeans", {}))
        kmeans_cfg["max_features"] = self.config.get("vectorizer", {}).get("max_features", 50000)
        layout = build_sections(notes, options, kmeans_cfg)
        advance(JobState.CLUSTERING, 60, f"Grouped notes into {len(layout.sections)} section(s)")

        # Stage 4: rewrite
        rewritten = rewrite_notes(layout.sections, asset_index)
        advance(JobState.REWRITING, 70, "Rewrote links and images")

        # Stage 5: assemble, report, package
        if output_dir.exists():
            try:
                shutil.rmtree(output_dir)
            except OSError as e:
                raise IOFailure(f"Failed to clear previous output {output_dir}: {e}") from e
        writer = OutputWriter(output_dir)
        writer.write(layout.sections, rewritten, asset_index)
        advance(JobState.PACKAGING, 80, "Generated output structure")

        report = build_report(notes, layout, rewritten, asset_index, time.monotonic() - start)
        report_content = report.render()
        writer.write_report(report_content, REPORT_FILENAME)
        advance(JobState.PACKAGING, 90, "Generated report")

        zip_path = create_zip(output_dir, self.workspace / f"{OUTPUT_DIRNAME}.zip")
        advance(JobState.PACKAGING, 95, "Created download package")

        result = JobResult(
            sections=[SectionInfo.from_section(s) for s in layout.sections],
            total_notes=len(notes),
            total_assets=len(asset_index.by_filename),
            unresolved_links=len(report.unresolved_links),
            unresolved_images=len(report.unresolved_images),
            report_content=report_content,
            zip_path=str(zip_path),
        )
        self.tracker.complete(result)
        return result
