"""Extractor gateway: turns a browsing context into web or video page data."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from vault_clipper.clipper.errors import ExtractionError
from vault_clipper.clipper.gateways import BrowsingContext
from vault_clipper.clipper.models import PageData, VideoPageData, WebPageData
from vault_clipper.http.fetcher import AsyncHttpFetcher
from vault_clipper.http.html_extractor import extract_markdown, extract_page_metadata
from vault_clipper.http.youtube_extractor import (
    TranscriptResult,
    extract_video_id,
    extract_video_metadata,
    fetch_transcript,
)

logger = logging.getLogger(__name__)

TranscriptFetcher = Callable[[str], TranscriptResult]


class PageExtractor:
    """Fetches the page when no HTML was captured and extracts its content.

    YouTube watch URLs become ``VideoPageData`` with the transcript; a missing
    transcript is not an error. Everything else becomes ``WebPageData`` where
    a user selection wins over the article body.
    """

    def __init__(
        self,
        fetcher: AsyncHttpFetcher | None = None,
        *,
        transcript_fetcher: TranscriptFetcher = fetch_transcript,
        max_content_chars: int = 0,
    ) -> None:
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or AsyncHttpFetcher()
        self.transcript_fetcher = transcript_fetcher
        self.max_content_chars = max_content_chars

    async def extract(self, context: BrowsingContext) -> PageData:
        url = context.url.strip()
        if not url:
            raise ExtractionError("No URL to clip.")
        video_id = extract_video_id(url)
        page_html = context.html if context.html is not None else await self._download(url)
        if video_id is not None:
            return await self._extract_video(context, url, video_id, page_html)
        return self._extract_web(context, url, page_html)

    async def aclose(self) -> None:
        if self._owns_fetcher:
            await self.fetcher.aclose()

    async def _download(self, url: str) -> str:
        result = await self.fetcher.fetch(url)
        if not result.is_success:
            raise ExtractionError(f"Failed to fetch {url}: {result.error}")
        return result.content

    def _extract_web(self, context: BrowsingContext, url: str, page_html: str) -> WebPageData:
        metadata = extract_page_metadata(page_html, url=url)
        selection = (context.selection or "").strip()
        content = ""
        if not selection:
            extracted = extract_markdown(page_html, url=url, max_chars=self.max_content_chars)
            if not extracted.is_success:
                raise ExtractionError(f"Could not extract content from {url}: {extracted.error}")
            content = extracted.text
        return WebPageData(
            title=context.title or metadata.title or url,
            url=url,
            content=content,
            selection=selection,
            description=metadata.description,
            author=metadata.author,
            published=metadata.published,
        )

    async def _extract_video(
        self,
        context: BrowsingContext,
        url: str,
        video_id: str,
        page_html: str,
    ) -> VideoPageData:
        metadata = extract_video_metadata(page_html)
        transcript = await asyncio.to_thread(self.transcript_fetcher, video_id)
        if transcript.is_success:
            logger.info("Transcript extracted for %s: %d characters", video_id, len(transcript.text))
        else:
            logger.warning("Failed to extract transcript for %s: %s", video_id, transcript.error)
        return VideoPageData(
            title=context.title or metadata.title or url,
            url=url,
            video_id=video_id,
            transcript=transcript.text if transcript.is_success else "",
            description=metadata.description,
            channel=metadata.channel,
            published=metadata.published,
            duration=metadata.duration,
        )
