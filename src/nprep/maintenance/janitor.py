"""Workspace maintenance: remove expired job directories."""

import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ..storage.filesystem import FileStatusStore, check_job_id

logger = logging.getLogger(__name__)


def cleanup_job(config: dict[str, Any], job_id: str) -> bool:
    """Delete one job workspace. Returns False if it did not exist."""
    job_dir = Path(config["work_dir"]) / check_job_id(job_id)
    if not job_dir.is_dir():
        return False
    shutil.rmtree(job_dir)
    logger.info("Removed workspace %s", job_dir)
    return True


def cleanup_expired_jobs(config: dict[str, Any], now: datetime | None = None) -> dict[str, int]:
    """Remove workspaces whose job has expired, or that have no readable status
    and are older than the job TTL.

    Returns stats about what was removed.
    """
    work_dir = Path(config["work_dir"])
    stats = {"removed": 0, "kept": 0}

    if not work_dir.exists():
        return stats

    now = now or datetime.now(timezone.utc)
    ttl = timedelta(hours=config.get("job_ttl_hours", 24))
    store = FileStatusStore(work_dir)
    for job_dir in sorted(p for p in work_dir.iterdir() if p.is_dir() and not p.name.startswith(".")):
        status = store.get(job_dir.name)
        if status is not None:
            expired = status.is_expired(now)
        else:
            # no status yet: only stale directories count as orphaned
            modified = datetime.fromtimestamp(job_dir.stat().st_mtime, timezone.utc)
            expired = modified + ttl < now
        if not expired:
            stats["kept"] += 1
            continue
        shutil.rmtree(job_dir)
        stats["removed"] += 1
        logger.info("Removed %s workspace %s", "expired" if status else "orphaned", job_dir.name)

    return stats
