"""Structured extraction: turns a parsed document into an :class:`ExtractionResult`."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from scrapejobs.scraper.models import (
    CustomElement,
    ExtractionOptions,
    ExtractionResult,
    Heading,
    Image,
    Link,
)

LINK_TEXT_LIMIT = 200
IMAGE_ATTR_LIMIT = 200
HEADING_TEXT_LIMIT = 300
CUSTOM_TEXT_LIMIT = 500
CUSTOM_HTML_LIMIT = 1000

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
_RESOLVABLE_SCHEMES = {"http", "https"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _resolve(target: Optional[str], origin_url: str) -> Optional[str]:
    """Resolve *target* against *origin_url*.

    Returns ``None`` unless the result is an absolute http(s) URL with a host,
    so ``javascript:``, ``mailto:`` and malformed targets are dropped.
    """
    if not target or not target.strip():
        return None
    try:
        resolved = urljoin(origin_url, target.strip())
        parts = urlsplit(resolved)
    except ValueError:
        return None
    if parts.scheme not in _RESOLVABLE_SCHEMES or not parts.netloc:
        return None
    return resolved


def _attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value


def _extract_title(document: BeautifulSoup) -> tuple[Optional[str], Optional[str]]:
    """Return ``(title, meta_description)``; missing or blank values are ``None``."""
    title: Optional[str] = None
    node = document.find("title")
    if node is not None:
        title = node.get_text().strip() or None

    description: Optional[str] = None
    meta = document.find("meta", attrs={"name": "description"})
    if isinstance(meta, Tag):
        description = _attr(meta, "content") or None

    return title, description


def _extract_links(document: BeautifulSoup, origin_url: str) -> List[Link]:
    links: List[Link] = []
    for anchor in document.find_all("a", href=True):
        text = anchor.get_text().strip()
        if not text:
            continue
        url = _resolve(_attr(anchor, "href"), origin_url)
        if url is None:
            continue
        links.append(Link(text=text[:LINK_TEXT_LIMIT], url=url))
    return links


def _extract_images(document: BeautifulSoup, origin_url: str) -> List[Image]:
    images: List[Image] = []
    for img in document.find_all("img", src=True):
        src = _resolve(_attr(img, "src"), origin_url)
        if src is None:
            continue
        alt = _attr(img, "alt") or ""
        title = _attr(img, "title")
        images.append(
            Image(
                src=src,
                alt=alt[:IMAGE_ATTR_LIMIT],
                title=title[:IMAGE_ATTR_LIMIT] if title else None,
            )
        )
    return images


def _extract_headings(document: BeautifulSoup) -> List[Heading]:
    headings: List[Heading] = []
    for node in document.find_all(_HEADING_TAGS):
        text = node.get_text().strip()
        if text:
            headings.append(Heading(level=int(node.name[1]), text=text[:HEADING_TEXT_LIMIT]))
    return headings


def _extract_custom(document: BeautifulSoup, selectors: List[str]) -> List[CustomElement]:
    """Evaluate each selector independently, in the order given.

    Any selector error propagates so the caller can abandon the whole
    custom extraction.
    """
    elements: List[CustomElement] = []
    for selector in selectors:
        for node in document.select(selector):
            text = node.get_text().strip()
            html = node.decode_contents()
            if text or html:
                elements.append(
                    CustomElement(
                        selector=selector,
                        text=text[:CUSTOM_TEXT_LIMIT],
                        html=html[:CUSTOM_HTML_LIMIT],
                    )
                )
    return elements


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_document(html: str) -> BeautifulSoup:
    """Parse raw markup into a queryable document."""
    return BeautifulSoup(html, "html.parser")


def extract(
    document: BeautifulSoup,
    origin_url: str,
    options: ExtractionOptions,
    scraped_at: Optional[datetime] = None,
) -> ExtractionResult:
    """Run every enabled extraction category against *document*.

    Relative link and image targets are resolved against *origin_url*.
    This never raises as a whole: a malformed custom selector is reported
    through ``custom_selector_error`` instead of ``custom_elements``.
    """
    result = ExtractionResult(
        url=origin_url,
        scraped_at=scraped_at or datetime.now(timezone.utc),
    )

    if options.extract_title:
        result.title, result.meta_description = _extract_title(document)

    if options.extract_links:
        result.links = _extract_links(document, origin_url)

    if options.extract_images:
        result.images = _extract_images(document, origin_url)

    if options.extract_headings:
        result.headings = _extract_headings(document)

    selectors = options.selectors()
    if selectors:
        try:
            result.custom_elements = _extract_custom(document, selectors)
        except Exception as exc:  # noqa: BLE001
            result.custom_selector_error = f"Invalid CSS selector: {exc}"

    result.total_elements = result.counted_total()
    return result
