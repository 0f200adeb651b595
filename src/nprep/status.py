"""Job status records and the forward-only state machine that updates them."""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from .errors import InvalidArgument

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    UPLOADING = "uploading"
    SCANNING = "scanning"
    CLUSTERING = "clustering"
    REWRITING = "rewriting"
    PACKAGING = "packaging"
    READY = "ready"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (JobState.READY, JobState.ERROR)


STATE_ORDER = [
    JobState.UPLOADING,
    JobState.SCANNING,
    JobState.CLUSTERING,
    JobState.REWRITING,
    JobState.PACKAGING,
    JobState.READY,
]


@dataclass
class SectionInfo:
    """Snapshot of a section, small enough to store with the job status."""
    id: str
    label: str
    note_filenames: list[str]
    sample_titles: list[str]

    @classmethod
    def from_section(cls, section) -> "SectionInfo":
        return cls(
            id=section.id,
            label=section.label,
            note_filenames=[n.filename for n in section.notes],
            sample_titles=[n.title for n in section.notes[:3]],
        )


@dataclass
class JobResult:
    sections: list[SectionInfo]
    total_notes: int
    total_assets: int
    unresolved_links: int
    unresolved_images: int
    report_content: str
    zip_path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sections": [vars(s).copy() for s in self.sections],
            "total_notes": self.total_notes,
            "total_assets": self.total_assets,
            "unresolved_links": self.unresolved_links,
            "unresolved_images": self.unresolved_images,
            "report_content": self.report_content,
            "zip_path": self.zip_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobResult":
        return cls(
            sections=[SectionInfo(**s) for s in data.get("sections", [])],
            total_notes=data["total_notes"],
            total_assets=data["total_assets"],
            unresolved_links=data.get("unresolved_links", 0),
            unresolved_images=data.get("unresolved_images", 0),
            report_content=data.get("report_content", ""),
            zip_path=data["zip_path"],
        )


@dataclass
class JobStatus:
    id: str
    state: JobState = JobState.UPLOADING
    progress: int = 0
    message: str = "Initializing..."
    error: str | None = None
    result: JobResult | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and (now or datetime.now(timezone.utc)) > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.state.value,
            "progress": self.progress,
            "message": self.message,
            "error": self.error,
            "result": self.result.to_dict() if self.result else None,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobStatus":
        return cls(
            id=data["id"],
            state=JobState(data["status"]),
            progress=data.get("progress", 0),
            message=data.get("message", ""),
            error=data.get("error"),
            result=JobResult.from_dict(data["result"]) if data.get("result") else None,
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]) if data.get("expires_at") else None,
        )


StatusCallback = Callable[[JobStatus], None]


class JobTracker:
    """Single writer for one job's status.

    States only move forward, progress never decreases, and nothing changes
    once the job is ready or failed. Every change is pushed to the callback
    as a snapshot copy.
    """

    def __init__(self, job_id: str, callback: StatusCallback | None = None, ttl_hours: float = 24):
        now = datetime.now(timezone.utc)
        self._status = JobStatus(id=job_id, created_at=now, expires_at=now + timedelta(hours=ttl_hours))
        self._callback = callback

    @property
    def status(self) -> JobStatus:
        return copy.deepcopy(self._status)

    def _publish(self) -> None:
        if self._callback:
            self._callback(self.status)

    def _check_open(self) -> None:
        if self._status.state.terminal:
            raise InvalidArgument(f"Job {self._status.id} is already {self._status.state.value}")

    def advance(self, state: JobState | str, progress: int, message: str) -> JobStatus:
        """Record that work for ``state`` has completed up to ``progress`` percent."""
        self._check_open()
        state = JobState(state)
        if state in (JobState.READY, JobState.ERROR):
            raise InvalidArgument(f"Use complete() or fail() to enter {state.value}")
        if STATE_ORDER.index(state) < STATE_ORDER.index(self._status.state):
            raise InvalidArgument(f"Cannot move job from {self._status.state.value} back to {state.value}")
        if not 0 <= progress <= 100 or progress < self._status.progress:
            raise InvalidArgument(f"Progress must not decrease (was {self._status.progress}, got {progress})")

        self._status.state = state
        self._status.progress = progress
        self._status.message = message
        logger.info("[%s] %s %d%%: %s", self._status.id, state.value, progress, message)
        self._publish()
        return self.status

    def complete(self, result: JobResult, message: str = "Processing complete!") -> JobStatus:
        self._check_open()
        self._status.state = JobState.READY
        self._status.progress = 100
        self._status.message = message
        self._status.result = result
        logger.info("[%s] ready", self._status.id)
        self._publish()
        return self.status

    def fail(self, error: str, message: str = "Processing failed") -> JobStatus:
        self._check_open()
        self._status.state = JobState.ERROR
        self._status.message = message
        self._status.error = error
        logger.error("[%s] failed: %s", self._status.id, error)
        self._publish()
        return self.status
