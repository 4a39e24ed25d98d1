"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int
    final_url: str = ""

    def __post_init__(self) -> None:
        if not self.final_url:
            self.final_url = self.url


@dataclass(frozen=True)
class ExtractionOptions:
    """Which extraction categories to run for a job.

    Instances are immutable once a job has been created with them.
    """

    extract_title: bool = False
    extract_links: bool = False
    extract_images: bool = False
    extract_headings: bool = False
    use_custom_selector: bool = False
    custom_selector: Optional[str] = None

    def selectors(self) -> list[str]:
        """Return the non-empty, trimmed comma-separated selector segments."""
        if not self.use_custom_selector or not self.custom_selector:
            return []
        return [s.strip() for s in self.custom_selector.split(",") if s.strip()]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "extractTitle": self.extract_title,
            "extractLinks": self.extract_links,
            "extractImages": self.extract_images,
            "extractHeadings": self.extract_headings,
            "useCustomSelector": self.use_custom_selector,
        }
        if self.custom_selector is not None:
            data["customSelector"] = self.custom_selector
        return data


@dataclass(frozen=True)
class Link:
    text: str
    url: str


@dataclass(frozen=True)
class Image:
    src: str
    alt: str
    title: Optional[str] = None


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class CustomElement:
    selector: str
    text: str
    html: str


@dataclass
class ExtractionResult:
    """Structured output of one extraction run.

    Category fields stay ``None`` when the category was not requested (or,
    for ``title`` / ``meta_description``, when the page has no value).
    """

    url: str
    scraped_at: datetime
    total_elements: int = 0
    title: Optional[str] = None
    meta_description: Optional[str] = None
    links: Optional[List[Link]] = None
    images: Optional[List[Image]] = None
    headings: Optional[List[Heading]] = None
    custom_elements: Optional[List[CustomElement]] = None
    custom_selector_error: Optional[str] = None

    def counted_total(self) -> int:
        """Sum of the lengths of every category list actually produced."""
        return sum(
            len(items)
            for items in (self.links, self.images, self.headings, self.custom_elements)
            if items is not None
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON wire shape; absent values are omitted."""
        data: dict[str, Any] = {
            "url": self.url,
            "scrapedAt": self.scraped_at.isoformat(),
            "totalElements": self.total_elements,
        }
        if self.title is not None:
            data["title"] = self.title
        if self.meta_description is not None:
            data["metaDescription"] = self.meta_description
        if self.links is not None:
            data["links"] = [{"text": link.text, "url": link.url} for link in self.links]
        if self.images is not None:
            data["images"] = [_image_dict(img) for img in self.images]
        if self.headings is not None:
            data["headings"] = [{"level": h.level, "text": h.text} for h in self.headings]
        if self.custom_elements is not None:
            data["customElements"] = [
                {"selector": c.selector, "text": c.text, "html": c.html}
                for c in self.custom_elements
            ]
        if self.custom_selector_error is not None:
            data["customSelectorError"] = self.custom_selector_error
        return data


def _image_dict(img: Image) -> dict[str, str]:
    data = {"src": img.src, "alt": img.alt}
    if img.title is not None:
        data["title"] = img.title
    return data
