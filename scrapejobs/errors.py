"""Exception hierarchy shared by the fetcher, the job layer and the API."""

from __future__ import annotations


class ScrapeJobsError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Synchronous errors (raised to the caller, never written to the ledger)
# ---------------------------------------------------------------------------

class InvalidInputError(ScrapeJobsError, ValueError):
    """A submission was rejected before a job was created."""


class JobNotFoundError(ScrapeJobsError, LookupError):
    """No job exists with the requested ID."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id!r}")
        self.job_id = job_id


class InvalidJobStateError(ScrapeJobsError):
    """The requested transition is not allowed from the job's current status."""

    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(f"Job {job_id!r} is already {status} and cannot be cancelled")
        self.job_id = job_id
        self.status = status


# ---------------------------------------------------------------------------
# Fetch errors (captured by the execution unit as terminal job state)
# ---------------------------------------------------------------------------

class FetchError(ScrapeJobsError):
    """Base class for failures while retrieving a document."""


class FetchTimeoutError(FetchError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Request timed out after {timeout:g} seconds")
        self.timeout = timeout


class HttpStatusError(FetchError):
    """The final response (after redirects) had a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class FetchCancelledError(FetchError):
    def __init__(self) -> None:
        super().__init__("Cancelled by user")
