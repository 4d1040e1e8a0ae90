"""Thread-safe state of document ingest jobs."""
import os
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from threading import Event, Lock

from dotenv import load_dotenv

from services.ingest.progress import ProgressEvent, phase_for

load_dotenv()

MAX_JOBS = int(os.getenv("VECTORDB_MAX_JOBS", "100"))


class JobStatus(StrEnum):
    """Lifecycle of an ingest job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


FINISHED = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class IngestJob:
    """Progress tracker for one document upload."""
    database_id: str
    document_name: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    lock: Lock = field(default_factory=Lock, repr=False)
    cancel_event: Event = field(default_factory=Event, repr=False)
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    records_added: int = 0
    error: str | None = None

    def try_start(self) -> bool:
        """Move to running. Returns False if the job was cancelled before it started."""
        with self.lock:
            if self.status != JobStatus.PENDING:
                return False
            self.status = JobStatus.RUNNING
            return True

    def update(self, event: ProgressEvent) -> None:
        """Record a progress event."""
        with self.lock:
            self.progress = event.progress
            if event.done:
                self.records_added = event.records_added
                self.status = JobStatus.COMPLETED

    def finish(self, status: JobStatus, error: str | None = None) -> None:
        """Mark the job as finished."""
        with self.lock:
            self.status = status
            self.error = error

    @property
    def finished(self) -> bool:
        """True once the job completed, failed or was cancelled."""
        with self.lock:
            return self.status in FINISHED

    def cancel(self) -> bool:
        """Request cancellation. Returns False if the job already finished.

        A pending job is cancelled at once. A running job stops at its next
        check, unless its records are already being committed, in which case
        it still completes. ``cancel_requested`` in the snapshot tells the two
        apart.
        """
        with self.lock:
            if self.status in FINISHED:
                return False
            self.cancel_event.set()
            if self.status == JobStatus.PENDING:
                self.status = JobStatus.CANCELLED
            return True

    def snapshot(self) -> dict[str, object]:
        """Current state as a plain mapping."""
        with self.lock:
            return {
                "id": self.id,
                "database_id": self.database_id,
                "document_name": self.document_name,
                "status": self.status.value,
                "progress": round(self.progress, 3),
                "phase": phase_for(self.progress).value,
                "records_added": self.records_added,
                "error": self.error,
                "cancel_requested": self.cancel_event.is_set(),
            }


@dataclass
class IngestJobRegistry:
    """Jobs by id. Holds at most ``max_jobs``; the oldest finished jobs are evicted first."""
    lock: Lock = field(default_factory=Lock)
    jobs: dict[str, IngestJob] = field(default_factory=dict)
    max_jobs: int = MAX_JOBS

    def create(self, database_id: str, document_name: str) -> IngestJob:
        """Register a new pending job."""
        job = IngestJob(database_id=database_id, document_name=document_name)
        with self.lock:
            self.jobs[job.id] = job
            self._evict()
        return job

    def get(self, job_id: str) -> IngestJob | None:
        """Look up a job by id."""
        with self.lock:
            return self.jobs.get(job_id)

    def _evict(self) -> None:
        # insertion order is creation order; unfinished jobs are never dropped
        excess = len(self.jobs) - self.max_jobs
        if excess <= 0:
            return
        for job_id in [job_id for job_id, job in self.jobs.items() if job.finished][:excess]:
            del self.jobs[job_id]
