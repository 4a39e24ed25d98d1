"""Job orchestration: submission, background execution and cancellation.

``JobOrchestrator`` owns the lifecycle of every job::

    pending --(execution starts)--------------> running
    running --(fetch + extract succeed)--------> completed
    running --(fetch or extract raises)--------> failed
    pending|running --(cancel)-----------------> cancelled

Each submission is executed as an independent task on a shared
``ThreadPoolExecutor``; the submitter never waits for it and observes
progress only through the :class:`~scrapejobs.jobs.ledger.JobLedger`.

Cancellation is cooperative.  ``cancel`` signals the job's
:class:`~scrapejobs.scraper.cancellation.CancellationToken` (checked by the
fetcher at its I/O suspension points) and writes the ``cancelled`` record
straight away.  A unit already past its last suspension point keeps running,
but its final write is dropped because the job is already terminal.  Callers
must re-read the job after cancelling: if the unit's terminal write landed
first, ``cancel`` raises ``InvalidJobStateError`` instead.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from scrapejobs.config import settings
from scrapejobs.errors import (
    FetchCancelledError,
    InvalidInputError,
    InvalidJobStateError,
    JobNotFoundError,
)
from scrapejobs.jobs.ledger import JobLedger
from scrapejobs.jobs.models import Job, JobPage, JobStatus
from scrapejobs.scraper.cancellation import CancellationToken
from scrapejobs.scraper.extractor import extract, parse_document
from scrapejobs.scraper.fetcher import fetch_document
from scrapejobs.scraper.models import ExtractionOptions, RawPage

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"

Fetcher = Callable[..., RawPage]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_url(url: str) -> str:
    """Return *url* stripped, or raise :class:`InvalidInputError`.

    Only absolute ``http``/``https`` URLs with a host are accepted.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("Invalid URL format")
    url = url.strip()
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as exc:
        raise InvalidInputError("Invalid URL format") from exc
    if not parts.scheme:
        raise InvalidInputError("Invalid URL format")
    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidInputError("URL must use HTTP or HTTPS protocol")
    if not hostname:
        raise InvalidInputError("Invalid URL format")
    return url


def validate_options(options: ExtractionOptions) -> ExtractionOptions:
    if options.use_custom_selector and not (options.custom_selector or "").strip():
        raise InvalidInputError(
            "A custom selector is required when custom selector extraction is enabled"
        )
    return options


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class JobOrchestrator:
    """Accepts submissions and drives each job to a terminal state.

    Args:
        ledger: Store that receives every job record and status transition.
        fetcher: Callable ``(url, token=..., timeout=...) -> RawPage``;
            defaults to :func:`~scrapejobs.scraper.fetcher.fetch_document`.
        max_workers: Size of the worker pool.
        fetch_timeout: Total fetch deadline in seconds.
    """

    def __init__(
        self,
        ledger: Optional[JobLedger] = None,
        fetcher: Optional[Fetcher] = None,
        max_workers: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self._ledger = ledger if ledger is not None else JobLedger()
        self._fetch = fetcher or fetch_document
        self._fetch_timeout = (
            settings.fetch_timeout if fetch_timeout is None else fetch_timeout
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_workers,
            thread_name_prefix="scrape-job",
        )
        # Guards the token registry and every check-then-write on job status.
        self._lock = threading.RLock()
        self._tokens: dict[str, CancellationToken] = {}
        self._closed = False

    @property
    def ledger(self) -> JobLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, url: str, options: ExtractionOptions) -> Job:
        """Validate, record and schedule a job; return it in ``pending`` state.

        Raises:
            InvalidInputError: Bad URL or missing custom selector.  No job is
                created.
            RuntimeError: If the orchestrator has been shut down.
        """
        url = validate_url(url)
        validate_options(options)

        # Held across scheduling so shutdown() cannot close the pool in between.
        with self._lock:
            if self._closed:
                raise RuntimeError("Job orchestrator has been shut down")
            job = self._ledger.create(url, options)
            token = CancellationToken()
            self._tokens[job.id] = token
            try:
                self._executor.submit(self._execute, job.id, token)
            except RuntimeError as exc:
                logger.error("Job %s could not be scheduled: %s", job.id, exc)
                self._finish(job.id, JobStatus.FAILED, error=str(exc))
                self._release(job.id)
                raise

        logger.info("Job %s submitted for %s", job.id, url)
        return job

    def cancel(self, job_id: str) -> Job:
        """Cancel a ``pending`` or ``running`` job.

        Raises:
            JobNotFoundError: If no such job exists.
            InvalidJobStateError: If the job is already terminal; the record
                is left untouched.
        """
        with self._lock:
            job = self.get(job_id)
            if job.status.is_terminal:
                raise InvalidJobStateError(job_id, job.status.value)

            token = self._tokens.get(job_id)
            if token is not None:
                token.cancel()

            updated = self._ledger.update(
                job_id,
                status=JobStatus.CANCELLED,
                error=CANCELLED_MESSAGE,
                completed_at=datetime.now(timezone.utc),
            )

        logger.info("Job %s cancelled (was %s)", job_id, job.status.value)
        return updated

    def get(self, job_id: str) -> Job:
        """Raises :class:`JobNotFoundError` if *job_id* is unknown."""
        job = self._ledger.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self, page: int = 1, page_size: Optional[int] = None) -> JobPage:
        return self._ledger.list(page, page_size or settings.default_page_size)

    def wait(
        self,
        job_id: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> Job:
        """Poll the ledger until *job_id* reaches a terminal state.

        Raises:
            JobNotFoundError: If no such job exists.
            TimeoutError: If the job is still live after *timeout* seconds.
        """
        interval = poll_interval or settings.wait_poll_interval
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            job = self.get(job_id)
            if job.status.is_terminal:
                return job
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Job {job_id!r} still {job.status.value} after {timeout}s")
            time.sleep(interval)

    def active_count(self) -> int:
        """Number of jobs whose cancellation token is still registered."""
        with self._lock:
            return len(self._tokens)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work, signal every live job and drain the pool."""
        with self._lock:
            self._closed = True
            live = list(self._tokens.values())
        for token in live:
            token.cancel()
        if live:
            logger.info("Shutting down with %d live job(s)", len(live))
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Execution unit
    # ------------------------------------------------------------------

    def _execute(self, job_id: str, token: CancellationToken) -> None:
        """Fetch + extract one job.  Never lets an exception escape."""
        try:
            job = self._start(job_id)
            if job is None:
                return

            raw = self._fetch(job.url, token=token, timeout=self._fetch_timeout)
            document = parse_document(raw.html)
            results = extract(document, job.url, job.options)
            self._finish(job_id, JobStatus.COMPLETED, results=results)
            logger.info(
                "Job %s completed: %d element(s) from %s",
                job_id, results.total_elements, job.url,
            )
        except FetchCancelledError:
            self._finish(job_id, JobStatus.CANCELLED, error=CANCELLED_MESSAGE)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Job %s failed: %s", job_id, exc)
            self._finish(job_id, JobStatus.FAILED, error=str(exc) or type(exc).__name__)
        finally:
            self._release(job_id)

    def _start(self, job_id: str) -> Optional[Job]:
        """Move ``pending -> running``; ``None`` if the job was cancelled while queued."""
        with self._lock:
            job = self._ledger.get(job_id)
            if job is None or job.status is not JobStatus.PENDING:
                return None
            return self._ledger.update(job_id, status=JobStatus.RUNNING)

    def _finish(self, job_id: str, status: JobStatus, **fields: Any) -> Optional[Job]:
        """Write a terminal state unless another writer already did."""
        with self._lock:
            current = self._ledger.get(job_id)
            if current is None:
                return None
            if current.status.is_terminal:
                logger.debug(
                    "Job %s already %s; dropping %s outcome",
                    job_id, current.status.value, status.value,
                )
                return current
            return self._ledger.update(
                job_id,
                status=status,
                completed_at=datetime.now(timezone.utc),
                **fields,
            )

    def _release(self, job_id: str) -> None:
        with self._lock:
            self._tokens.pop(job_id, None)
