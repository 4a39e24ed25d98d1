"""Per-client submission rate limit.

One accepted ``POST /api/scrape`` per client address per window
(``settings.submit_rate_limit``, default ``"1 per 5 seconds"``).
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from scrapejobs.config import settings

limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Reply with a fixed message telling the client how long to wait."""
    return JSONResponse(status_code=429, content={"detail": settings.rate_limit_message})
