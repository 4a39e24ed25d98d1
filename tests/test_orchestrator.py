"""Tests for the job orchestrator.

Mocking strategy:
- A fake fetcher is injected into :class:`JobOrchestrator` so no network
  calls are made.
- ``_BlockingFetcher`` parks inside the "I/O" until its token is cancelled
  (or a release event fires), which lets tests cancel a job mid-fetch.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Generator, Optional

import pytest

from scrapejobs.errors import (
    HttpStatusError,
    InvalidInputError,
    InvalidJobStateError,
    JobNotFoundError,
)
from scrapejobs.jobs.ledger import JobLedger
from scrapejobs.jobs.models import JobStatus
from scrapejobs.jobs.orchestrator import CANCELLED_MESSAGE, JobOrchestrator, validate_url
from scrapejobs.scraper.cancellation import CancellationToken
from scrapejobs.scraper.models import ExtractionOptions, RawPage

_HTML = """\
<html><head><title>Fixture</title></head>
<body><h1>Hi</h1><a href="/a">One</a><a href="javascript:void(0)">Bad</a></body></html>
"""

_OPTIONS = ExtractionOptions(extract_title=True, extract_links=True, extract_headings=True)


# ---------------------------------------------------------------------------
# Fake fetchers
# ---------------------------------------------------------------------------

class _StaticFetcher:
    def __init__(self, html: str = _HTML) -> None:
        self.html = html
        self.calls: list[dict] = []

    def __call__(self, url: str, token: Optional[CancellationToken] = None,
                 timeout: Optional[float] = None) -> RawPage:
        self.calls.append({"url": url, "token": token, "timeout": timeout})
        return RawPage(url=url, html=self.html, status_code=200)


class _FailingFetcher:
    def __call__(self, url: str, **kwargs) -> RawPage:
        raise HttpStatusError(500, "Internal Server Error")


class _BlockingFetcher:
    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.urls: list[str] = []

    def __call__(self, url: str, token: Optional[CancellationToken] = None,
                 timeout: Optional[float] = None) -> RawPage:
        self.urls.append(url)
        self.started.set()
        assert token is not None
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline and not self.release.is_set():
            if token.wait(0.01):
                break
        token.raise_if_cancelled()
        return RawPage(url=url, html=_HTML, status_code=200)


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_orchestrator() -> Generator:
    created: list[JobOrchestrator] = []

    def _make(fetcher, **kwargs) -> JobOrchestrator:
        orch = JobOrchestrator(JobLedger(), fetcher=fetcher, **kwargs)
        created.append(orch)
        return orch

    yield _make
    for orch in created:
        orch.shutdown(wait=True)


def _wait_until(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError("condition not met in time")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "not a url",
            "example.com/page",
            "ftp://example.com/file",
            "javascript:alert(1)",
            "http://",
            "http://[::1",
        ],
    )
    def test_invalid_urls_rejected(self, make_orchestrator, url: str) -> None:
        orch = make_orchestrator(_StaticFetcher())
        with pytest.raises(InvalidInputError):
            orch.submit(url, _OPTIONS)
        assert orch.ledger.count() == 0

    def test_scheme_error_message(self) -> None:
        with pytest.raises(InvalidInputError, match="HTTP or HTTPS"):
            validate_url("ftp://example.com/")

    def test_url_is_trimmed(self) -> None:
        assert validate_url("  https://example.com/x ") == "https://example.com/x"

    @pytest.mark.parametrize("selector", [None, "", "   "])
    def test_missing_selector_rejected(self, make_orchestrator, selector) -> None:
        orch = make_orchestrator(_StaticFetcher())
        options = ExtractionOptions(use_custom_selector=True, custom_selector=selector)
        with pytest.raises(InvalidInputError):
            orch.submit("https://example.com", options)
        assert orch.ledger.count() == 0

    def test_selector_not_required_when_disabled(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        job = orch.submit("https://example.com", ExtractionOptions(custom_selector="  "))
        assert job.status is JobStatus.PENDING


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_submit_returns_pending(self, make_orchestrator) -> None:
        orch = make_orchestrator(_BlockingFetcher())
        job = orch.submit("https://x.test", _OPTIONS)
        assert job.status is JobStatus.PENDING
        assert job.completed_at is None
        assert orch.ledger.get(job.id) is not None

    def test_job_completes(self, make_orchestrator) -> None:
        fetcher = _StaticFetcher()
        orch = make_orchestrator(fetcher, fetch_timeout=12.0)
        job = orch.submit("https://x.test", _OPTIONS)

        done = orch.wait(job.id, timeout=5)

        assert done.status is JobStatus.COMPLETED
        assert done.error is None
        assert done.completed_at is not None
        assert done.created_at == job.created_at
        assert done.results is not None
        assert done.results.title == "Fixture"
        assert [(l.text, l.url) for l in done.results.links or []] == [("One", "https://x.test/a")]
        assert done.results.total_elements == 2

        call = fetcher.calls[0]
        assert call["url"] == "https://x.test"
        assert call["timeout"] == 12.0
        assert isinstance(call["token"], CancellationToken)

    def test_fetch_failure_marks_failed(self, make_orchestrator) -> None:
        orch = make_orchestrator(_FailingFetcher())
        job = orch.submit("https://x.test", _OPTIONS)

        done = orch.wait(job.id, timeout=5)

        assert done.status is JobStatus.FAILED
        assert done.error == "HTTP 500: Internal Server Error"
        assert done.results is None
        assert done.completed_at is not None

    def test_extraction_failure_marks_failed(self, make_orchestrator, monkeypatch) -> None:
        def _boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr("scrapejobs.jobs.orchestrator.extract", _boom)
        orch = make_orchestrator(_StaticFetcher())
        done = orch.wait(orch.submit("https://x.test", _OPTIONS).id, timeout=5)

        assert done.status is JobStatus.FAILED
        assert done.error == "parser exploded"

    def test_invalid_selector_does_not_fail_job(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        options = ExtractionOptions(use_custom_selector=True, custom_selector="div[")
        done = orch.wait(orch.submit("https://x.test", options).id, timeout=5)

        assert done.status is JobStatus.COMPLETED
        assert done.results is not None
        assert done.results.custom_selector_error is not None

    def test_token_released_after_completion(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        orch.wait(orch.submit("https://x.test", _OPTIONS).id, timeout=5)
        _wait_until(lambda: orch.active_count() == 0)

    def test_terminal_reads_are_identical(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        job_id = orch.submit("https://x.test", _OPTIONS).id
        orch.wait(job_id, timeout=5)

        first = json.dumps(orch.get(job_id).to_dict(), sort_keys=True)
        second = json.dumps(orch.get(job_id).to_dict(), sort_keys=True)
        assert first == second

    def test_get_unknown_raises(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        with pytest.raises(JobNotFoundError):
            orch.get("missing")

    def test_wait_times_out(self, make_orchestrator) -> None:
        orch = make_orchestrator(_BlockingFetcher())
        job = orch.submit("https://x.test", _OPTIONS)
        with pytest.raises(TimeoutError):
            orch.wait(job.id, timeout=0.05, poll_interval=0.01)

    def test_list_jobs_newest_first(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        ids = [orch.submit(f"https://x.test/{i}", _OPTIONS).id for i in range(3)]
        page = orch.list_jobs(page=1, page_size=2)
        assert [j.id for j in page.jobs] == [ids[2], ids[1]]
        assert page.total == 3

    def test_submit_after_shutdown_raises(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        orch.shutdown()
        with pytest.raises(RuntimeError):
            orch.submit("https://x.test", _OPTIONS)
        assert orch.ledger.count() == 0

    def test_unschedulable_job_is_failed(self, make_orchestrator, monkeypatch) -> None:
        orch = make_orchestrator(_StaticFetcher())

        def _refuse(*args, **kwargs):
            raise RuntimeError("cannot schedule new futures after shutdown")

        monkeypatch.setattr(orch._executor, "submit", _refuse)
        with pytest.raises(RuntimeError):
            orch.submit("https://x.test", _OPTIONS)

        [job] = orch.ledger.list(1, 10).jobs
        assert job.status is JobStatus.FAILED
        assert job.completed_at is not None
        assert orch.active_count() == 0

    def test_submit_racing_shutdown_leaves_no_live_jobs(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())

        def _submit_many() -> None:
            for i in range(200):
                try:
                    orch.submit(f"https://x.test/{i}", _OPTIONS)
                except RuntimeError:
                    return

        worker = threading.Thread(target=_submit_many)
        worker.start()
        orch.shutdown(wait=True)
        worker.join(5)

        jobs = orch.ledger.list(1, 200).jobs
        assert all(j.status.is_terminal for j in jobs)
        assert orch.active_count() == 0


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancel:
    def test_cancel_running_job(self, make_orchestrator) -> None:
        fetcher = _BlockingFetcher()
        orch = make_orchestrator(fetcher)
        job = orch.submit("https://x.test", _OPTIONS)
        assert fetcher.started.wait(5)
        _wait_until(lambda: orch.get(job.id).status is JobStatus.RUNNING)

        cancelled = orch.cancel(job.id)

        assert cancelled.status is JobStatus.CANCELLED
        assert cancelled.error == CANCELLED_MESSAGE
        assert cancelled.completed_at is not None
        assert cancelled.results is None

        # The execution unit observes the signal and exits without rewriting.
        _wait_until(lambda: orch.active_count() == 0)
        final = orch.get(job.id)
        assert final.status is JobStatus.CANCELLED
        assert final.completed_at == cancelled.completed_at

    def test_cancel_pending_job_never_runs(self, make_orchestrator) -> None:
        fetcher = _BlockingFetcher()
        orch = make_orchestrator(fetcher, max_workers=1)
        first = orch.submit("https://x.test/first", _OPTIONS)
        assert fetcher.started.wait(5)
        queued = orch.submit("https://x.test/queued", _OPTIONS)
        assert orch.get(queued.id).status is JobStatus.PENDING

        cancelled = orch.cancel(queued.id)
        assert cancelled.status is JobStatus.CANCELLED

        fetcher.release.set()
        assert orch.wait(first.id, timeout=5).status is JobStatus.COMPLETED
        _wait_until(lambda: orch.active_count() == 0)

        assert "https://x.test/queued" not in fetcher.urls
        assert orch.get(queued.id).status is JobStatus.CANCELLED

    @pytest.mark.parametrize("fetcher_cls", [_StaticFetcher, _FailingFetcher])
    def test_cancel_terminal_job_is_rejected(self, make_orchestrator, fetcher_cls) -> None:
        orch = make_orchestrator(fetcher_cls())
        job_id = orch.submit("https://x.test", _OPTIONS).id
        before = orch.wait(job_id, timeout=5)

        with pytest.raises(InvalidJobStateError):
            orch.cancel(job_id)

        assert orch.get(job_id) == before

    def test_cancel_twice_is_rejected(self, make_orchestrator) -> None:
        orch = make_orchestrator(_BlockingFetcher())
        job_id = orch.submit("https://x.test", _OPTIONS).id
        first = orch.cancel(job_id)

        with pytest.raises(InvalidJobStateError):
            orch.cancel(job_id)
        assert orch.get(job_id) == first

    def test_cancel_unknown_job(self, make_orchestrator) -> None:
        orch = make_orchestrator(_StaticFetcher())
        with pytest.raises(JobNotFoundError):
            orch.cancel("missing")

    def test_shutdown_cancels_live_jobs(self, make_orchestrator) -> None:
        fetcher = _BlockingFetcher()
        orch = make_orchestrator(fetcher)
        job = orch.submit("https://x.test", _OPTIONS)
        assert fetcher.started.wait(5)

        orch.shutdown(wait=True)

        assert orch.get(job.id).status is JobStatus.CANCELLED
