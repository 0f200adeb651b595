"""Status store keeping one status.json inside each job workspace."""

import json
import logging
import os
from pathlib import Path

from ..errors import IOFailure
from ..status import JobStatus
from .base import StatusStoreBase

logger = logging.getLogger(__name__)

STATUS_FILENAME = "status.json"


def check_job_id(job_id: str) -> str:
    """Reject ids that could escape the work directory."""
    if not job_id or "/" in job_id or "\\" in job_id or job_id.startswith("."):
        raise ValueError(f"Invalid job id: {job_id!r}")
    return job_id


class FileStatusStore(StatusStoreBase):

    def __init__(self, work_dir: str | Path):
        self.work_dir = Path(work_dir)

    def _path(self, job_id: str) -> Path:
        return self.work_dir / check_job_id(job_id) / STATUS_FILENAME

    def put(self, status: JobStatus) -> None:
        path = self._path(status.id)
        tmp = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(status.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise IOFailure(f"Failed to save status for {status.id}: {e}") from e

    def get(self, job_id: str) -> JobStatus | None:
        path = self._path(job_id)
        if not path.exists():
            return None
        try:
            return JobStatus.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Unreadable status file %s: %s", path, e)
            return None

    def delete(self, job_id: str) -> None:
        self._path(job_id).unlink(missing_ok=True)

    def job_ids(self) -> list[str]:
        if not self.work_dir.exists():
            return []
        return sorted(p.parent.name for p in self.work_dir.glob(f"*/{STATUS_FILENAME}"))
