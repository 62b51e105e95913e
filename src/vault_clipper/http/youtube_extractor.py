"""YouTube video id parsing, page metadata and transcript extraction."""

from __future__ import annotations

import html as html_lib
import logging
import re
from dataclasses import dataclass

from youtube_transcript_api import YouTubeTranscriptApi

logger = logging.getLogger(__name__)

_YT_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/watch\?.*v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)"
    r"([a-zA-Z0-9_-]{11})",
)
_META_ITEMPROP_RE = r'<meta[^>]+itemprop="{name}"[^>]+content="([^"]*)"'
_CHANNEL_RE = re.compile(r'<link[^>]+itemprop="name"[^>]+content="([^"]*)"')
_TITLE_RE = re.compile(r"<title>(.*?)</title>", re.DOTALL)

PREFERRED_LANGUAGES = ("en", "de", "fr", "es", "ru", "uk")
MAX_DESCRIPTION_CHARS = 50_000


@dataclass(slots=True)
class TranscriptResult:
    """Result of YouTube transcript extraction."""

    text: str
    language: str
    is_success: bool
    error: str | None = None


@dataclass(slots=True)
class VideoMetadata:
    title: str = ""
    channel: str = ""
    description: str = ""
    published: str = ""
    duration: str = ""


def extract_video_id(url: str) -> str | None:
    """Extract YouTube video ID from URL, or None if not a YouTube URL."""

    match = _YT_VIDEO_ID_RE.search(url)
    return match.group(1) if match else None


def is_youtube_video_url(url: str) -> bool:
    """Check if URL points to a YouTube video."""

    return extract_video_id(url) is not None


def extract_video_metadata(page_html: str) -> VideoMetadata:
    """Read schema.org microdata that YouTube embeds in the watch page."""

    def _itemprop(name: str) -> str:
        match = re.search(_META_ITEMPROP_RE.format(name=name), page_html)
        return html_lib.unescape(match.group(1)).strip() if match else ""

    title = _itemprop("name")
    if not title:
        match = _TITLE_RE.search(page_html)
        title = html_lib.unescape(match.group(1)).removesuffix(" - YouTube").strip() if match else ""
    channel_match = _CHANNEL_RE.search(page_html)
    description = re.sub(r"\s+", " ", _itemprop("description")).strip()
    return VideoMetadata(
        title=title,
        channel=html_lib.unescape(channel_match.group(1)).strip() if channel_match else "",
        description=description[:MAX_DESCRIPTION_CHARS],
        published=_itemprop("datePublished")[:10],
        duration=_itemprop("duration"),
    )


def fetch_transcript(
    video_id: str,
    *,
    languages: tuple[str, ...] = PREFERRED_LANGUAGES,
    max_chars: int = 0,
) -> TranscriptResult:
    """Fetch transcript/subtitles for a YouTube video id.

    Uses youtube-transcript-api v1.x: instance-based API with dataclass snippets.
    Tries preferred languages first via the high-level `fetch()` method,
    then falls back to the first available transcript.
    """

    api = YouTubeTranscriptApi()

    try:
        fetched = api.fetch(video_id, languages=list(languages))
        text = " ".join(snippet.text for snippet in fetched)
        if max_chars > 0 and len(text) > max_chars:
            text = text[:max_chars].rstrip()
        return TranscriptResult(text=text, language=fetched.language_code, is_success=True)
    except Exception:  # noqa: BLE001
        logger.debug("Primary transcript fetch failed for %s, trying fallback", video_id)

    try:
        for transcript in api.list(video_id):
            try:
                fetched = transcript.fetch()
            except Exception:  # noqa: BLE001
                logger.debug(
                    "Transcript variant %s failed for %s",
                    transcript.language_code,
                    video_id,
                )
                continue
            text = " ".join(snippet.text for snippet in fetched)
            if max_chars > 0 and len(text) > max_chars:
                text = text[:max_chars].rstrip()
            return TranscriptResult(
                text=text,
                language=transcript.language_code,
                is_success=True,
            )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to get any transcript for %s: %s", video_id, exc)
        return TranscriptResult(
            text="",
            language="",
            is_success=False,
            error=f"all transcript attempts failed: {exc}",
        )

    return TranscriptResult(
        text="",
        language="",
        is_success=False,
        error="no transcripts available",
    )
