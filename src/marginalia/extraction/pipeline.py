"""Extraction pipeline: validate, classify, extract, and build the article record."""

import asyncio
import logging

from ..config import Settings
from ..models import ArticleIn, ArticleRecord
from .base import ExtractedArticle
from .classifier import Video, classify, validate_url
from .fetcher import Fetcher
from .readable import extract_readable
from .video import VideoExtractor

logger = logging.getLogger(__name__)


class ArticleExtractor:
    """Turns a URL into an ExtractedArticle.

    Extraction finishes (or raises an ExtractionError) before anything is
    persisted. Cancelling the awaiting task abandons the work with nothing
    written.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.fetcher = Fetcher(settings)

    @property
    def video_extractor(self) -> VideoExtractor:
        return VideoExtractor(self.settings, self.fetcher.get_client())

    async def close(self) -> None:
        await self.fetcher.close()

    async def extract(self, url: str) -> ExtractedArticle:
        url = validate_url(url)
        strategy = classify(url)

        if isinstance(strategy, Video):
            logger.info(f"[EXTRACT] {url} classified as video {strategy.video_id}")
            return await self.video_extractor.extract(url, strategy.video_id)

        logger.info(f"[EXTRACT] {url} classified as document")
        page = await self.fetcher.fetch(url)

        # readability is CPU-bound
        readable = await asyncio.to_thread(
            extract_readable,
            page.text,
            page.final_url,
            self.settings.min_content_chars,
            self.settings.excerpt_length,
        )

        logger.info(f"[EXTRACT] {url}: {readable.title!r} ({len(readable.content)} chars)")
        return ExtractedArticle(
            url=url,
            title=readable.title,
            content=readable.content,
            description=readable.excerpt,
            strategy="document",
        )


def build_article_record(user_id: int, request: ArticleIn, extracted: ExtractedArticle) -> ArticleRecord:
    """Merge extraction output with the caller's fields into a creation payload.

    The title falls back to the caller-supplied title, then to the URL.
    """
    title = (extracted.title or "").strip() or (request.title or "").strip() or request.url
    return ArticleRecord(
        user_id=user_id,
        url=request.url,
        title=title,
        content=extracted.content,
        description=extracted.description or "",
        tags=list(request.tags),
        notes=request.notes,
    )
