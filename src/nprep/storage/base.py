"""Abstract base class for job status stores and factory function."""

from abc import ABC, abstractmethod
from typing import Any

from ..status import JobStatus


class StatusStoreBase(ABC):
    """Key-value store of job status snapshots. Last write wins."""

    @abstractmethod
    def put(self, status: JobStatus) -> None:
        """Store a snapshot under ``status.id``."""

    @abstractmethod
    def get(self, job_id: str) -> JobStatus | None:
        """Latest snapshot for ``job_id``, or None."""

    @abstractmethod
    def delete(self, job_id: str) -> None:
        """Forget ``job_id``. Unknown ids are ignored."""

    @abstractmethod
    def job_ids(self) -> list[str]:
        """All known job ids."""


def get_status_store(config: dict[str, Any]) -> StatusStoreBase:
    """Factory: return the right status store based on config."""
    backend = config.get("status_backend", "filesystem")

    if backend == "memory":
        from .memory import MemoryStatusStore
        return MemoryStatusStore()
    elif backend == "filesystem":
        from .filesystem import FileStatusStore
        return FileStatusStore(config["work_dir"])
    else:
        raise ValueError(f"Unknown status_backend: {backend}")
