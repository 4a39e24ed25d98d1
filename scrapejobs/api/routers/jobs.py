"""Scraping job endpoints.

Routes
------
POST /api/scrape                         Submit a job (rate limited)
GET  /api/scraping-jobs                  Paginated listing, newest first
GET  /api/scraping-jobs/{job_id}         Fetch a single job
POST /api/scraping-jobs/{job_id}/cancel  Cancel a pending or running job
GET  /api/health                         Liveness probe
"""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scrapejobs.api.ratelimit import limiter
from scrapejobs.config import settings
from scrapejobs.errors import InvalidInputError, InvalidJobStateError, JobNotFoundError
from scrapejobs.jobs.orchestrator import JobOrchestrator
from scrapejobs.scraper.models import ExtractionOptions

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptionsSchema(_CamelModel):
    extract_title: bool = False
    extract_links: bool = False
    extract_images: bool = False
    extract_headings: bool = False
    use_custom_selector: bool = False
    custom_selector: Optional[str] = None

    def to_options(self) -> ExtractionOptions:
        return ExtractionOptions(**self.model_dump())


class ScrapeRequest(BaseModel):
    url: str
    options: OptionsSchema = Field(default_factory=OptionsSchema)


class JobResponse(_CamelModel):
    id: str
    url: str
    status: str
    options: dict[str, Any]
    results: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    created_at: str
    completed_at: Optional[str] = None


class PaginationResponse(_CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    pagination: PaginationResponse


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _orchestrator(request: Request) -> JobOrchestrator:
    return request.app.state.orchestrator


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/scrape", response_model=JobResponse)
@limiter.limit(settings.submit_rate_limit)
def submit_job(request: Request, body: ScrapeRequest) -> dict[str, Any]:
    """Create a scraping job and start it in the background.

    Returns the job in ``pending`` state; poll ``/scraping-jobs/{id}`` for
    progress.
    """
    try:
        job = _orchestrator(request).submit(body.url, body.options.to_options())
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return job.to_dict()


@router.get("/scraping-jobs", response_model=JobListResponse)
def list_jobs(
    request: Request,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=settings.max_page_size),
) -> dict[str, Any]:
    """Return one page of jobs, newest first."""
    result = _orchestrator(request).list_jobs(page=page, page_size=limit)
    return {
        "jobs": [j.to_dict() for j in result.jobs],
        "pagination": {
            "page": result.page,
            "limit": result.page_size,
            "total": result.total,
            "totalPages": result.total_pages,
            "hasNext": result.has_next,
            "hasPrev": result.has_prev,
        },
    }


@router.get("/scraping-jobs/{job_id}", response_model=JobResponse)
def get_job(job_id: str, request: Request) -> dict[str, Any]:
    """Fetch a single job by its ID."""
    try:
        job = _orchestrator(request).get(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Job not found") from exc
    return job.to_dict()


@router.post("/scraping-jobs/{job_id}/cancel", response_model=JobResponse)
def cancel_job(job_id: str, request: Request) -> dict[str, Any]:
    """Cancel a pending or running job.

    The job is marked ``cancelled`` immediately; a fetch in flight stops at
    its next I/O checkpoint.
    """
    try:
        job = _orchestrator(request).cancel(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Job not found") from exc
    except InvalidJobStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return job.to_dict()


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    orchestrator = _orchestrator(request)
    return {
        "status": "ok",
        "jobs": orchestrator.ledger.count(),
        "activeJobs": orchestrator.active_count(),
    }
