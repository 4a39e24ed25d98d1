"""Tests for the ScrapeJobs CLI.

The ``scrape`` command runs a real orchestrator in-process; ``respx`` mocks
the HTTP layer underneath it.
"""

from __future__ import annotations

import json

import httpx
import respx
from typer.testing import CliRunner

from cli.main import app
from scrapejobs.jobs import JobOrchestrator

runner = CliRunner()

_HTML = """\
<html><head><title>CLI Page</title><meta name="description" content="Desc"></head>
<body><h1>Top</h1><h2>Sub</h2><a href="/a">A</a><img src="/i.png" alt="i"></body></html>
"""


def test_scrape_prints_summary() -> None:
    with respx.mock:
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=_HTML))
        result = runner.invoke(app, ["scrape", "https://example.com/", "--links", "--headings"])

    assert result.exit_code == 0, result.stdout
    assert "CLI Page" in result.stdout
    assert "Links    : 1" in result.stdout
    assert "Headings : 2" in result.stdout
    assert "Total    : 3" in result.stdout


def test_scrape_writes_json(tmp_path) -> None:
    out = tmp_path / "results.json"
    with respx.mock:
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=_HTML))
        result = runner.invoke(
            app,
            ["scrape", "https://example.com/", "--images", "--selector", "h1, h2", "-o", str(out)],
        )

    assert result.exit_code == 0, result.stdout
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["title"] == "CLI Page"
    assert data["metaDescription"] == "Desc"
    assert data["images"] == [{"src": "https://example.com/i.png", "alt": "i"}]
    assert [c["selector"] for c in data["customElements"]] == ["h1", "h2"]
    assert data["totalElements"] == 3


def test_scrape_http_error_exits_nonzero() -> None:
    with respx.mock:
        respx.get("https://example.com/gone").mock(return_value=httpx.Response(410))
        result = runner.invoke(app, ["scrape", "https://example.com/gone"])

    assert result.exit_code == 1
    assert "failed" in result.stdout
    assert "HTTP 410" in result.stdout


def test_scrape_invalid_url() -> None:
    result = runner.invoke(app, ["scrape", "ftp://example.com/"])
    assert result.exit_code == 2
    assert "Invalid input" in result.stdout


def test_interrupt_after_completion_reports_result(monkeypatch) -> None:
    original_wait = JobOrchestrator.wait

    def _wait_then_interrupt(self, job_id, *args, **kwargs):
        original_wait(self, job_id, timeout=5)
        raise KeyboardInterrupt

    monkeypatch.setattr(JobOrchestrator, "wait", _wait_then_interrupt)
    with respx.mock:
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=_HTML))
        result = runner.invoke(app, ["scrape", "https://example.com/", "--links"])

    assert result.exit_code == 0, result.stdout
    assert "Links    : 1" in result.stdout
