"""Cancellable, rate-limited fetch-and-extract scraping jobs."""

__version__ = "0.1.0"
