"""Materialize sections, rewritten notes and assets as an output tree."""

import logging
import shutil
from pathlib import Path

from ..errors import IOFailure
from ..ingest.assets import ASSETS_DIRNAME, asset_output_path
from ..models import AssetIndex, RewrittenNote, Section

logger = logging.getLogger(__name__)


def write_text(file_path: Path, content: str) -> None:
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Failed to write file {file_path}: {e}") from e


def read_text(file_path: Path, errors: str = "strict") -> str:
    try:
        return file_path.read_text(encoding="utf-8", errors=errors)
    except OSError as e:
        raise IOFailure(f"Failed to read file {file_path}: {e}") from e


def copy_file(source: Path, dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
    except OSError as e:
        raise IOFailure(f"Failed to copy file from {source} to {dest}: {e}") from e


class OutputWriter:
    """Writes the import-ready directory layout."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def write(
        self,
        sections: list[Section],
        rewritten_notes: list[RewrittenNote],
        asset_index: AssetIndex,
    ) -> Path:
        """Write section indexes, notes and assets. Returns the output directory."""
        by_filename = {r.original.filename: r for r in rewritten_notes}

        for section in sections:
            write_text(self.output_dir / section.label / "index.md", section.index_content)
            for note in section.notes:
                rewritten = by_filename[note.filename]
                write_text(self.output_dir / rewritten.new_path, rewritten.new_content)

        copied = self.copy_assets(asset_index)
        logger.info(
            "Wrote %d section(s), %d note(s) and %d asset(s) to %s",
            len(sections), len(rewritten_notes), copied, self.output_dir,
        )
        return self.output_dir

    def copy_assets(self, asset_index: AssetIndex) -> int:
        (self.output_dir / ASSETS_DIRNAME).mkdir(parents=True, exist_ok=True)
        count = 0
        for assets in asset_index.by_note_id.values():
            for asset in assets:
                copy_file(asset.path, self.output_dir / asset_output_path(asset))
                count += 1
        for asset in asset_index.unassigned:
            copy_file(asset.path, self.output_dir / asset_output_path(asset))
            count += 1
        return count

    def write_report(self, content: str, filename: str) -> Path:
        path = self.output_dir / filename
        write_text(path, content)
        return path
