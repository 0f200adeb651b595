"""Zip extraction and packaging for job workspaces."""

import logging
import os
import zipfile
from pathlib import Path
from typing import BinaryIO

from .errors import IOFailure

logger = logging.getLogger(__name__)


def extract_zip(source: str | Path | BinaryIO, dest: str | Path) -> list[Path]:
    """Extract every file entry of ``source`` below ``dest``.

    Relative paths are preserved exactly. Entries that would land outside
    ``dest`` are rejected. Returns the extracted file paths.
    """
    dest = Path(dest)
    root = dest.resolve()
    extracted = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(source) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                target = (dest / info.filename).resolve()
                if root != target and root not in target.parents:
                    raise IOFailure(f"Refusing to extract {info.filename!r} outside {dest}")
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as out:
                    while chunk := src.read(1 << 20):
                        out.write(chunk)
                extracted.append(target)
    except zipfile.BadZipFile as e:
        raise IOFailure(f"Failed to extract archive: {e}") from e
    except OSError as e:
        raise IOFailure(f"Failed to extract archive to {dest}: {e}") from e

    logger.debug("Extracted %d file(s) to %s", len(extracted), dest)
    return extracted


def create_zip(source_dir: str | Path, zip_path: str | Path) -> Path:
    """Zip ``source_dir`` so the archive root mirrors the directory tree."""
    source_dir = Path(source_dir)
    zip_path = Path(zip_path)
    try:
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for dirpath, dirnames, filenames in os.walk(source_dir):
                dirnames.sort()
                current = Path(dirpath)
                rel_dir = current.relative_to(source_dir)
                if not dirnames and not filenames and rel_dir != Path("."):
                    zf.writestr(rel_dir.as_posix() + "/", "")
                for name in sorted(filenames):
                    file_path = current / name
                    zf.write(file_path, file_path.relative_to(source_dir).as_posix())
    except OSError as e:
        raise IOFailure(f"Failed to create archive {zip_path}: {e}") from e

    logger.debug("Packaged %s into %s", source_dir, zip_path)
    return zip_path
