"""Tests for job status tracking, status stores, archives and cleanup."""

import os
import tempfile
import time
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from nprep.archive import create_zip, extract_zip
from nprep.config import DEFAULT_CONFIG, load_config, options_from_config
from nprep.errors import InvalidArgument, IOFailure
from nprep.maintenance.janitor import cleanup_expired_jobs, cleanup_job
from nprep.models import ProcessingOptions
from nprep.status import JobResult, JobState, JobStatus, JobTracker, SectionInfo
from nprep.storage import get_status_store
from nprep.storage.filesystem import FileStatusStore
from nprep.storage.memory import MemoryStatusStore

from helpers import make_config, make_zip


def _result():
    return JobResult(
        sections=[SectionInfo("section_0", "Alpha", ["a.md"], ["A"])],
        total_notes=1,
        total_assets=0,
        unresolved_links=0,
        unresolved_images=1,
        report_content="# Report",
        zip_path="/tmp/out.zip",
    )


def test_tracker_forward_transitions():
    seen = []
    tracker = JobTracker("job_1", seen.append)
    tracker.advance(JobState.SCANNING, 10, "scan")
    tracker.advance("scanning", 20, "more scanning")
    tracker.advance(JobState.CLUSTERING, 60, "grouped")

    with pytest.raises(InvalidArgument):
        tracker.advance(JobState.SCANNING, 70, "back")
    with pytest.raises(InvalidArgument):
        tracker.advance(JobState.REWRITING, 50, "progress went down")

    tracker.complete(_result())
    assert seen[-1].state == JobState.READY
    assert seen[-1].progress == 100
    with pytest.raises(InvalidArgument):
        tracker.advance(JobState.PACKAGING, 100, "too late")
    with pytest.raises(InvalidArgument):
        tracker.fail("too late")


def test_tracker_fail_is_terminal():
    tracker = JobTracker("job_2")
    tracker.advance(JobState.SCANNING, 20, "scan")
    status = tracker.fail("boom")
    assert status.state == JobState.ERROR
    assert status.error == "boom"
    assert status.progress == 20
    with pytest.raises(InvalidArgument):
        tracker.complete(_result())


def test_tracker_publishes_snapshots():
    seen = []
    tracker = JobTracker("job_3", seen.append)
    tracker.advance(JobState.SCANNING, 10, "scan")
    seen[-1].message = "changed by observer"
    assert tracker.status.message == "scan"


def test_status_dict_round_trip():
    status = JobTracker("job_4", ttl_hours=1).complete(_result())
    restored = JobStatus.from_dict(status.to_dict())
    assert restored == status
    assert restored.expires_at - restored.created_at == timedelta(hours=1)


def test_memory_and_file_stores():
    with tempfile.TemporaryDirectory() as tmpdir:
        for store in (MemoryStatusStore(), FileStatusStore(tmpdir)):
            status = JobStatus(id="job_5")
            store.put(status)
            status.progress = 40
            store.put(status)
            assert store.get("job_5").progress == 40
            assert store.get("job_missing") is None
            assert store.job_ids() == ["job_5"]
            store.delete("job_5")
            assert store.get("job_5") is None


def test_file_store_rejects_path_ids():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ValueError):
            FileStatusStore(tmpdir).get("../escape")


def test_status_store_factory():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert isinstance(get_status_store(make_config(tmpdir)), FileStatusStore)
        assert isinstance(get_status_store(make_config(tmpdir, status_backend="memory")), MemoryStatusStore)
        with pytest.raises(ValueError):
            get_status_store(make_config(tmpdir, status_backend="redis"))


def test_extract_and_create_zip():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        source = make_zip(root / "src.zip", {"Dir/Note One.md": "# One", "top.md": "# Top"})
        extracted = extract_zip(source, root / "x")
        assert sorted(p.relative_to(root / "x").as_posix() for p in extracted) == ["Dir/Note One.md", "top.md"]

        (root / "x" / "empty").mkdir()
        packaged = create_zip(root / "x", root / "out.zip")
        with zipfile.ZipFile(packaged) as zf:
            assert sorted(zf.namelist()) == ["Dir/Note One.md", "empty/", "top.md"]


def test_extract_from_stream():
    with tempfile.TemporaryDirectory() as tmpdir:
        source = make_zip(Path(tmpdir) / "src.zip", {"a.md": "# A"})
        with open(source, "rb") as stream:
            extract_zip(stream, Path(tmpdir) / "x")
        assert (Path(tmpdir) / "x" / "a.md").read_text() == "# A"


def test_extract_rejects_escaping_entries():
    with tempfile.TemporaryDirectory() as tmpdir:
        source = make_zip(Path(tmpdir) / "evil.zip", {"../evil.md": "x"})
        with pytest.raises(IOFailure):
            extract_zip(source, Path(tmpdir) / "x")
        assert not (Path(tmpdir) / "evil.md").exists()


def test_cleanup_expired_jobs():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = make_config(tmpdir)
        store = FileStatusStore(config["work_dir"])
        now = datetime.now(timezone.utc)
        store.put(JobStatus(id="job_old", expires_at=now - timedelta(hours=1)))
        store.put(JobStatus(id="job_new", expires_at=now + timedelta(hours=1)))

        stale = Path(config["work_dir"]) / "job_orphan"
        stale.mkdir()
        old = time.time() - 48 * 3600
        os.utime(stale, (old, old))
        (Path(config["work_dir"]) / "job_running").mkdir()

        stats = cleanup_expired_jobs(config, now=now)
        assert stats == {"removed": 2, "kept": 2}
        assert sorted(p.name for p in Path(config["work_dir"]).iterdir()) == ["job_new", "job_running"]

        assert cleanup_job(config, "job_new") is True
        assert cleanup_job(config, "job_new") is False


def test_load_config_merges_file_and_env(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg_file = Path(tmpdir) / "config.yaml"
        cfg_file.write_text("grouping_strategy: tags\nkmeans:\n  n_init: 2\n")
        monkeypatch.setenv("NPREP_WORK_DIR", str(Path(tmpdir) / "work"))

        config = load_config(cfg_file)
        assert config["grouping_strategy"] == "tags"
        assert config["kmeans"] == {"n_init": 2, "max_iter": 50, "tolerance": 1e-4, "seed": None}
        assert config["work_dir"] == str((Path(tmpdir) / "work").resolve())

        assert DEFAULT_CONFIG["kmeans"]["n_init"] == 5
        assert DEFAULT_CONFIG["grouping_strategy"] == "cluster"

        monkeypatch.setenv("NPREP_STATUS_BACKEND", "memory")
        assert load_config(cfg_file)["status_backend"] == "memory"


def test_options_from_config():
    config = make_config("/tmp", clustering_k="8", grouping_strategy="cluster")
    assert options_from_config(config) == ProcessingOptions(clustering_k=8, grouping_strategy="cluster")
    assert options_from_config(config, clustering_k="auto", grouping_strategy="tags").grouping_strategy == "tags"
    with pytest.raises(InvalidArgument):
        options_from_config(config, clustering_k="0")
    with pytest.raises(InvalidArgument):
        options_from_config(config, grouping_strategy="random")
    with pytest.raises(InvalidArgument):
        options_from_config(config, clustering_k="many")
