"""In-process status store shared by concurrently running jobs."""

import copy
import threading

from ..status import JobStatus
from .base import StatusStoreBase


class MemoryStatusStore(StatusStoreBase):

    def __init__(self):
        self._lock = threading.Lock()
        self._statuses: dict[str, JobStatus] = {}

    def put(self, status: JobStatus) -> None:
        with self._lock:
            self._statuses[status.id] = copy.deepcopy(status)

    def get(self, job_id: str) -> JobStatus | None:
        with self._lock:
            status = self._statuses.get(job_id)
            return copy.deepcopy(status) if status else None

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._statuses.pop(job_id, None)

    def job_ids(self) -> list[str]:
        with self._lock:
            return list(self._statuses)
