"""Dataclass models for job records.

Jobs are frozen: the ledger replaces a record on every update, so any
instance handed out to a caller is an immutable snapshot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from scrapejobs.scraper.models import ExtractionOptions, ExtractionResult


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobStatus.PENDING, JobStatus.RUNNING)


@dataclass(frozen=True)
class Job:
    id: str
    url: str
    options: ExtractionOptions
    created_at: datetime
    status: JobStatus = JobStatus.PENDING
    results: Optional[ExtractionResult] = None
    error: Optional[str] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire shape used by the API and CLI."""
        return {
            "id": self.id,
            "url": self.url,
            "status": self.status.value,
            "options": self.options.to_dict(),
            "results": self.results.to_dict() if self.results is not None else None,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class JobPage:
    """One page of the newest-first job listing."""

    jobs: list[Job] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1
