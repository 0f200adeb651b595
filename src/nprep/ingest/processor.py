"""Scan an extracted notes directory into parsed notes."""

import logging
from pathlib import Path

from ..errors import InputError
from ..models import Note
from ..vault.writer import read_text
from .parsers import PARSERS

logger = logging.getLogger(__name__)


def find_note_files(notes_dir: Path) -> list[Path]:
    """All parseable files below ``notes_dir``, in sorted path order."""
    if not notes_dir.is_dir():
        return []
    return [
        p for p in sorted(notes_dir.rglob("*"))
        if p.is_file() and p.suffix.lower() in PARSERS
    ]


def process_file(file_path: Path, notes_dir: Path) -> Note:
    """Parse one file. The note's identity is its path relative to ``notes_dir``."""
    parser = PARSERS[file_path.suffix.lower()]()
    text = read_text(file_path, errors="replace")
    relative_path = file_path.relative_to(notes_dir).as_posix()
    return parser.parse(relative_path, text)


def process_directory(notes_dir: Path) -> list[Note]:
    """Parse every markdown file in ``notes_dir``.

    Raises InputError when there is nothing to parse.
    """
    files = find_note_files(notes_dir)
    if not files:
        raise InputError("No markdown files found in the uploaded archive")

    notes = []
    for file_path in files:
        note = process_file(file_path, notes_dir)
        logger.debug("Parsed %s (%d links, %d images)", note.filename, len(note.links), len(note.images))
        notes.append(note)

    logger.info("Parsed %d note(s) from %s", len(notes), notes_dir)
    return notes
