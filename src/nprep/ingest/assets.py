"""Index extracted asset files and resolve image references against them."""

import logging
import re
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from ..models import AssetFile, AssetIndex

logger = logging.getLogger(__name__)

ASSETS_DIRNAME = "assets"
NOTE_ID_DIR_RE = re.compile(r"^[a-f0-9]{6,}$", re.IGNORECASE)


def _owning_note_id(file_path: Path, assets_dir: Path) -> str | None:
    """Name of the closest enclosing directory that looks like a note id."""
    for part in reversed(file_path.relative_to(assets_dir).parts[:-1]):
        if NOTE_ID_DIR_RE.match(part):
            return part
    return None


def build_asset_index(assets_dir: Path | None) -> AssetIndex:
    """Walk ``assets_dir`` and build the filename / note-id / unassigned views.

    A missing directory yields an empty index. When two files share a
    basename the one found last wins in ``by_filename``.
    """
    by_filename: dict[str, AssetFile] = {}
    by_note_id: dict[str, list[AssetFile]] = {}
    unassigned: list[AssetFile] = []

    if assets_dir is None or not assets_dir.is_dir():
        return AssetIndex(by_filename, by_note_id, unassigned)

    for file_path in sorted(assets_dir.rglob("*")):
        if not file_path.is_file():
            continue
        note_id = _owning_note_id(file_path, assets_dir)
        asset = AssetFile(
            filename=file_path.name.lower(),
            path=file_path,
            size=file_path.stat().st_size,
            note_id=note_id,
        )
        if note_id:
            by_note_id.setdefault(note_id, []).append(asset)
        else:
            unassigned.append(asset)
        by_filename[asset.filename] = asset

    logger.info(
        "Indexed %d asset(s): %d note folder(s), %d unassigned",
        len(by_filename), len(by_note_id), len(unassigned),
    )
    return AssetIndex(by_filename, by_note_id, unassigned)


def asset_key(src: str) -> str:
    """Lookup key for an image source: its lowercased, URL-decoded basename."""
    return PurePosixPath(unquote(src.strip()).replace("\\", "/")).name.lower()


def find_asset(src: str, note_id: str | None, index: AssetIndex) -> AssetFile | None:
    """Resolve an image source, preferring the note's own asset folder."""
    if src.startswith("http"):
        return None
    key = asset_key(src)
    if not key:
        return None

    if note_id and note_id in index.by_note_id:
        for asset in index.by_note_id[note_id]:
            if asset.filename == key:
                return asset

    return index.by_filename.get(key)


def asset_output_path(asset: AssetFile) -> str:
    """Where an asset lands in the output tree."""
    return f"{ASSETS_DIRNAME}/{asset.note_id or 'unassigned'}/{asset.path.name}"
