"""ScrapeJobs CLI — entry-point for running jobs locally or serving the API.

Usage:
    python cli/main.py --help

Commands:
    scrape  → run one fetch-and-extract job in-process and print the results
    serve   → start the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from scrapejobs.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from scrapejobs.config import configure_logging, settings
from scrapejobs.errors import InvalidInputError, InvalidJobStateError
from scrapejobs.jobs import JobLedger, JobOrchestrator, JobStatus
from scrapejobs.scraper.models import ExtractionOptions

app = typer.Typer(
    name="scrapejobs",
    help="ScrapeJobs CLI.",
    no_args_is_help=True,
)


def _print_summary(results: dict) -> None:
    typer.echo(f"[scrape] Title    : {results.get('title') or '(none)'}")
    if "metaDescription" in results:
        typer.echo(f"[scrape] Meta     : {results['metaDescription']}")
    for key, label in (
        ("links", "Links"),
        ("images", "Images"),
        ("headings", "Headings"),
        ("customElements", "Custom"),
    ):
        if key in results:
            typer.echo(f"[scrape] {label:<9}: {len(results[key])}")
    if "customSelectorError" in results:
        typer.echo(f"[scrape] Selector error: {results['customSelectorError']}")
    typer.echo(f"[scrape] Total    : {results['totalElements']}")


# ---------------------------------------------------------------------------
# Scrape command
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL to scrape."),
    title: bool = typer.Option(True, "--title/--no-title", help="Extract title and meta description."),
    links: bool = typer.Option(False, "--links", help="Extract links."),
    images: bool = typer.Option(False, "--images", help="Extract images."),
    headings: bool = typer.Option(False, "--headings", help="Extract h1–h6 headings."),
    selector: Optional[str] = typer.Option(
        None, "--selector", help="Comma-separated CSS selectors to extract."
    ),
    timeout: float = typer.Option(
        settings.fetch_timeout, help="Total fetch timeout in seconds."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the results JSON to this file."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run a single scraping job and print a summary of what was extracted."""
    configure_logging("DEBUG" if verbose else "WARNING")

    options = ExtractionOptions(
        extract_title=title,
        extract_links=links,
        extract_images=images,
        extract_headings=headings,
        use_custom_selector=selector is not None,
        custom_selector=selector,
    )

    orchestrator = JobOrchestrator(JobLedger(), max_workers=1, fetch_timeout=timeout)
    try:
        try:
            job = orchestrator.submit(url, options)
        except InvalidInputError as exc:
            typer.echo(f"[scrape] Invalid input: {exc}")
            raise typer.Exit(code=2)

        typer.echo(f"[scrape] Job {job.id} — fetching {job.url!r} …")
        try:
            job = orchestrator.wait(job.id)
        except KeyboardInterrupt:
            try:
                job = orchestrator.cancel(job.id)
            except InvalidJobStateError:
                # Finished while the interrupt was being handled.
                job = orchestrator.get(job.id)
    finally:
        orchestrator.shutdown(wait=True)

    if job.status is not JobStatus.COMPLETED or job.results is None:
        typer.echo(f"[scrape] Job {job.status.value}: {job.error}")
        raise typer.Exit(code=1)

    results = job.results.to_dict()
    _print_summary(results)

    if output is not None:
        output.write_text(json.dumps(results, indent=2, ensure_ascii=False), encoding="utf-8")
        typer.echo(f"[scrape] Results written to {output}")


# ---------------------------------------------------------------------------
# Serve command
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    typer.echo(f"[serve] Listening on http://{host}:{port}")
    uvicorn.run("scrapejobs.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
