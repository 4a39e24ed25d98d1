"""FastAPI application factory.

Lifespan
--------
On startup the app builds one in-memory :class:`JobLedger` and one
:class:`JobOrchestrator` (shared across all requests via
``request.app.state.orchestrator``).  On shutdown it signals every live job
and drains the worker pool.  Job records do not survive a restart.

Routers
-------
All job endpoints are mounted under ``/api``; see
:mod:`scrapejobs.api.routers.jobs`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from scrapejobs import __version__
from scrapejobs.api.ratelimit import limiter, rate_limit_exceeded_handler
from scrapejobs.api.routers import jobs as jobs_router
from scrapejobs.config import configure_logging
from scrapejobs.jobs import JobLedger, JobOrchestrator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the orchestrator on startup and shut it down on exit."""
    orchestrator = JobOrchestrator(JobLedger())
    app.state.orchestrator = orchestrator
    try:
        yield
    finally:
        orchestrator.shutdown(wait=False)


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging()
    app = FastAPI(
        title="ScrapeJobs API",
        description=(
            "Submit a URL for background fetching and structured extraction "
            "(title, links, images, headings, CSS selectors), poll or list "
            "jobs, and cancel jobs in flight."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs_router.router, prefix="/api", tags=["jobs"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn scrapejobs.api.app:app --reload
app = create_app()
