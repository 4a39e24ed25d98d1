"""In-memory, thread-safe store of job records."""

from __future__ import annotations

import dataclasses
import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from scrapejobs.errors import JobNotFoundError
from scrapejobs.jobs.models import Job, JobPage, JobStatus
from scrapejobs.scraper.models import ExtractionOptions

# Fields written by the execution unit / cancel path.  Everything else on a
# Job is fixed at creation.
_UPDATABLE_FIELDS = {"status", "results", "error", "completed_at"}


class JobLedger:
    """Authoritative collection of :class:`Job` records for this process.

    Every public method holds the internal lock only for the duration of a
    dict operation, so concurrent execution units and request handlers never
    wait on each other for longer than one update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, Job] = {}
        # Insertion sequence; breaks ties between equal created_at values.
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()

    def create(self, url: str, options: ExtractionOptions) -> Job:
        """Insert a new ``pending`` job and return it."""
        job = Job(
            id=str(uuid.uuid4()),
            url=url,
            options=options,
            created_at=datetime.now(timezone.utc),
            status=JobStatus.PENDING,
        )
        with self._lock:
            self._jobs[job.id] = job
            self._seq[job.id] = next(self._counter)
        return job

    def get(self, job_id: str) -> Optional[Job]:
        """Fetch a single job by ID.  Returns ``None`` if not found."""
        with self._lock:
            return self._jobs.get(job_id)

    def update(self, job_id: str, **fields: Any) -> Job:
        """Merge *fields* into the stored record (last write wins).

        Allowed keyword arguments: ``status``, ``results``, ``error``,
        ``completed_at``.

        Raises:
            JobNotFoundError: If ``job_id`` does not exist.
            ValueError: If an unknown or immutable field is given.
        """
        for key in fields:
            if key not in _UPDATABLE_FIELDS:
                raise ValueError(f"Cannot update field {key!r}")

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            updated = dataclasses.replace(job, **fields)
            self._jobs[job_id] = updated
        return updated

    def list(self, page: int = 1, page_size: int = 10) -> JobPage:
        """Return one page of jobs ordered newest-first by ``created_at``.

        Raises:
            ValueError: If ``page`` or ``page_size`` is less than 1.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        with self._lock:
            ordered = sorted(
                self._jobs.values(),
                key=lambda j: (j.created_at, self._seq[j.id]),
                reverse=True,
            )

        offset = (page - 1) * page_size
        return JobPage(
            jobs=ordered[offset:offset + page_size],
            page=page,
            page_size=page_size,
            total=len(ordered),
        )

    def count(self) -> int:
        with self._lock:
            return len(self._jobs)
