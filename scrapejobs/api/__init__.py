"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from scrapejobs.api import app

    uvicorn scrapejobs.api:app --reload
"""

from scrapejobs.api.app import app

__all__ = ["app"]
