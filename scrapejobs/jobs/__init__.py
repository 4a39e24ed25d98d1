"""Job layer package.

Public re-exports so callers can write::

    from scrapejobs.jobs import JobLedger, JobOrchestrator
"""

from scrapejobs.jobs.ledger import JobLedger
from scrapejobs.jobs.models import Job, JobPage, JobStatus
from scrapejobs.jobs.orchestrator import JobOrchestrator

__all__ = ["JobLedger", "JobOrchestrator", "Job", "JobPage", "JobStatus"]
