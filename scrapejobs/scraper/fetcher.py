"""HTTP fetcher with a total deadline and cooperative cancellation."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

import httpx

from scrapejobs.config import settings
from scrapejobs.errors import FetchTimeoutError, HttpStatusError
from scrapejobs.scraper.cancellation import CancellationToken
from scrapejobs.scraper.models import RawPage

logger = logging.getLogger(__name__)


def _default_headers() -> dict[str, str]:
    return {"User-Agent": settings.user_agent}


def _checkpoint(
    token: Optional[CancellationToken], deadline: float, timeout: float
) -> None:
    """Suspension-point check: abort on cancellation or an expired deadline."""
    if token is not None:
        token.raise_if_cancelled()
    if time.monotonic() > deadline:
        raise FetchTimeoutError(timeout)


def _decode(body: bytes, encoding: Optional[str]) -> str:
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset advertised by the server.
        return body.decode("utf-8", errors="replace")


def _read(
    url: str,
    token: CancellationToken,
    deadline: float,
    timeout: float,
) -> RawPage:
    """Blocking request + body read; checks *token* after every network read."""
    try:
        with httpx.Client(
            headers=_default_headers(),
            timeout=timeout,
            follow_redirects=True,
        ) as client:
            with client.stream("GET", url) as response:
                _checkpoint(token, deadline, timeout)
                if not response.is_success:
                    raise HttpStatusError(response.status_code, response.reason_phrase)

                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    _checkpoint(token, deadline, timeout)

                html = _decode(bytes(body), response.encoding)
                status_code = response.status_code
                final_url = str(response.url)
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(timeout) from exc

    logger.debug("Fetched %s: HTTP %s, %d bytes", final_url, status_code, len(body))
    return RawPage(url=url, html=html, status_code=status_code, final_url=final_url)


def fetch_document(
    url: str,
    token: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    Redirects are followed transparently.  The request runs on a short-lived
    reader thread while the calling thread watches the cancellation token and
    the total deadline, so a server that trickles bytes (or never answers)
    cannot hold the caller past either.  On abort the reader is told to stop
    and exits at its next network read.

    Raises:
        FetchCancelledError: If *token* is cancelled before or during the request.
        FetchTimeoutError: If the whole fetch takes longer than *timeout* seconds.
        HttpStatusError: If the final response is not a 2xx.
        httpx.RequestError: For other transport failures (DNS, refused, …).
    """
    timeout = settings.fetch_timeout if timeout is None else timeout
    deadline = time.monotonic() + timeout

    _checkpoint(token, deadline, timeout)
    logger.debug("Fetching %s (timeout=%ss)", url, timeout)

    # The reader gets its own token so an abandoned read also stops on timeout.
    reader_token = CancellationToken()
    future: Future[RawPage] = Future()

    def _run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(_read(url, reader_token, deadline, timeout))
        except BaseException as exc:  # noqa: BLE001
            future.set_exception(exc)

    threading.Thread(target=_run, name="scrape-fetch", daemon=True).start()

    try:
        while True:
            try:
                page = future.result(timeout=settings.fetch_watch_interval)
            except FutureTimeoutError:
                _checkpoint(token, deadline, timeout)
                continue
            if token is not None:
                token.raise_if_cancelled()
            return page
    except BaseException:
        reader_token.cancel()
        raise
