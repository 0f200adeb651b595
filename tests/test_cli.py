"""Tests for the command line interface and the inbox watcher."""

import tempfile
import zipfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from nprep.cli import cli
from nprep.storage.filesystem import FileStatusStore
from nprep.watcher import InboxWatcher, assets_zip_for, is_notes_zip

from helpers import make_config, make_zip

NOTES = {
    "alpha.md": "# Alpha\nSee [B](beta.md) ![c](chart.png)\n",
    "beta.md": "---\ntags: [reading]\n---\n# Beta\nBack to [[alpha]]\n",
}


def _write_config(tmpdir, **overrides) -> Path:
    path = Path(tmpdir) / "config.yaml"
    path.write_text(yaml.dump(make_config(tmpdir, **overrides)))
    return path


def test_run_and_status():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        notes_zip = make_zip(Path(tmpdir) / "notes.zip", NOTES)
        assets_zip = make_zip(Path(tmpdir) / "assets.zip", {"chart.png": b"png"})
        output = Path(tmpdir) / "out" / "ready.zip"

        runner = CliRunner()
        result = runner.invoke(cli, [
            "--config", str(cfg), "run", str(notes_zip),
            "--assets", str(assets_zip), "--strategy", "headings", "-o", str(output),
        ])
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(output) as zf:
            assert "Alpha/alpha.md" in zf.namelist()
            assert "assets/unassigned/chart.png" in zf.namelist()

        job_ids = FileStatusStore(Path(tmpdir) / "jobs").job_ids()
        assert len(job_ids) == 1

        result = runner.invoke(cli, ["--config", str(cfg), "status", job_ids[0]])
        assert result.exit_code == 0, result.output
        assert "ready" in result.output
        assert "100%" in result.output


def test_run_missing_archive_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        result = CliRunner().invoke(cli, ["--config", str(cfg), "run", str(Path(tmpdir) / "nope.zip")])
        assert result.exit_code == 1
        assert "required" in result.output


def test_run_rejects_bad_k():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        notes_zip = make_zip(Path(tmpdir) / "notes.zip", NOTES)
        result = CliRunner().invoke(cli, ["--config", str(cfg), "run", str(notes_zip), "--k", "zero"])
        assert result.exit_code == 1


def test_status_unknown_job():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        result = CliRunner().invoke(cli, ["--config", str(cfg), "status", "job_unknown"])
        assert result.exit_code == 1
        assert "No job found" in result.output


def test_preview_lists_sections():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        notes_zip = make_zip(Path(tmpdir) / "notes.zip", NOTES)
        result = CliRunner().invoke(cli, ["--config", str(cfg), "preview", str(notes_zip), "--strategy", "tags"])
        assert result.exit_code == 0, result.output
        assert "Reading" in result.output
        assert "Untagged" in result.output
        assert not (Path(tmpdir) / "jobs").exists()


def test_cleanup_single_job():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        (Path(tmpdir) / "jobs" / "job_1").mkdir(parents=True)
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(cfg), "cleanup", "--job", "job_1"])
        assert result.exit_code == 0, result.output
        assert not (Path(tmpdir) / "jobs" / "job_1").exists()

        result = runner.invoke(cli, ["--config", str(cfg), "cleanup"])
        assert result.exit_code == 0
        assert "Removed: 0" in result.output


def test_inbox_naming():
    assert is_notes_zip(Path("week.zip"))
    assert not is_notes_zip(Path("week.assets.zip"))
    assert not is_notes_zip(Path("week.md"))
    assert assets_zip_for(Path("/in/week.zip")) == Path("/in/week.assets.zip")


def test_watcher_processes_batch():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = make_config(tmpdir, grouping_strategy="headings")
        inbox = Path(config["inbox_path"])
        notes_zip = make_zip(inbox / "week.zip", NOTES)
        assets_zip = make_zip(inbox / "week.assets.zip", {"chart.png": b"png"})
        broken = inbox / "broken.zip"
        broken.write_bytes(b"not a zip")

        watcher = InboxWatcher(config, debounce=0.1)
        delivered = watcher.process_batch([str(assets_zip), str(broken), str(notes_zip)])

        assert delivered == [Path(config["outbox_path"]) / "week.notion_ready.zip"]
        with zipfile.ZipFile(delivered[0]) as zf:
            assert "assets/unassigned/chart.png" in zf.namelist()
        assert len(watcher.store.job_ids()) == 2


def test_run_reports_unwritable_output():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = _write_config(tmpdir)
        notes_zip = make_zip(Path(tmpdir) / "notes.zip", NOTES)
        blocker = Path(tmpdir) / "blocker"
        blocker.write_text("a file, not a directory")
        result = CliRunner().invoke(cli, [
            "--config", str(cfg), "run", str(notes_zip), "--strategy", "headings", "-o", str(blocker / "ready.zip"),
        ])
        assert result.exit_code == 1
        assert "Failed to copy" in result.output


def test_watcher_skips_undeliverable_job():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = make_config(tmpdir, grouping_strategy="headings")
        Path(config["outbox_path"]).write_text("a file where the outbox should be")
        notes_zip = make_zip(Path(config["inbox_path"]) / "week.zip", NOTES)

        assert InboxWatcher(config).process_batch([str(notes_zip)]) == []
