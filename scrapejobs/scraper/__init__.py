"""Scraper package — document fetch & structured extraction."""

from scrapejobs.scraper.cancellation import CancellationToken
from scrapejobs.scraper.extractor import extract, parse_document
from scrapejobs.scraper.fetcher import fetch_document
from scrapejobs.scraper.models import ExtractionOptions, ExtractionResult, RawPage

__all__ = [
    "fetch_document",
    "parse_document",
    "extract",
    "CancellationToken",
    "ExtractionOptions",
    "ExtractionResult",
    "RawPage",
]
