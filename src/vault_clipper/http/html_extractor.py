"""HTML to Markdown extraction and page metadata using trafilatura."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import trafilatura

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExtractionResult:
    """Result of HTML content extraction."""

    text: str
    is_success: bool
    error: str | None = None


@dataclass(slots=True)
class PageMetadata:
    title: str = ""
    author: str = ""
    description: str = ""
    published: str = ""
    site_name: str = ""


def extract_markdown(
    html: str,
    *,
    url: str | None = None,
    include_tables: bool = True,
    include_links: bool = True,
    max_chars: int = 0,
) -> ExtractionResult:
    """Extract the main content of a page as Markdown.

    Precision-first extraction falls back to a recall-oriented pass when the
    first one yields nothing.
    """

    if not html or not html.strip():
        return ExtractionResult(text="", is_success=False, error="empty HTML input")

    try:
        text = trafilatura.extract(
            html,
            url=url,
            output_format="markdown",
            include_tables=include_tables,
            include_links=include_links,
            include_formatting=True,
            favor_precision=True,
            deduplicate=True,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("trafilatura.extract failed for %s: %s", url or "<unknown>", exc)
        text = None

    if not text:
        try:
            text = trafilatura.extract(
                html,
                url=url,
                output_format="markdown",
                include_tables=include_tables,
                include_links=include_links,
                include_formatting=True,
                favor_recall=True,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("trafilatura fallback failed for %s: %s", url or "<unknown>", exc)
            return ExtractionResult(
                text="",
                is_success=False,
                error=f"extraction failed: {exc}",
            )

    if not text:
        return ExtractionResult(text="", is_success=False, error="no content extracted")

    if max_chars > 0 and len(text) > max_chars:
        text = text[:max_chars].rstrip()

    return ExtractionResult(text=text, is_success=True)


def extract_page_metadata(html: str, *, url: str | None = None) -> PageMetadata:
    """Title, author, description and publish date; blanks when unavailable."""

    if not html or not html.strip():
        return PageMetadata()
    try:
        document = trafilatura.extract_metadata(html, default_url=url)
    except Exception as exc:  # noqa: BLE001
        logger.warning("trafilatura metadata extraction failed for %s: %s", url or "<unknown>", exc)
        return PageMetadata()
    if document is None:
        return PageMetadata()
    return PageMetadata(
        title=document.title or "",
        author=document.author or "",
        description=document.description or "",
        published=document.date or "",
        site_name=document.sitename or "",
    )
