"""Shared builders for tests."""

import copy
import zipfile
from pathlib import Path

from nprep.config import DEFAULT_CONFIG
from nprep.ingest.parsers import MarkdownParser


def make_note(filename: str, text: str):
    return MarkdownParser().parse(filename, text)


def make_config(tmpdir, **overrides) -> dict:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["work_dir"] = str(Path(tmpdir) / "jobs")
    cfg["inbox_path"] = str(Path(tmpdir) / "inbox")
    cfg["outbox_path"] = str(Path(tmpdir) / "outbox")
    cfg.update(overrides)
    return cfg


def make_zip(path: Path, files: dict[str, str | bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path
