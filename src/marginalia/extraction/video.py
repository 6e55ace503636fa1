"""YouTube metadata extraction via oEmbed."""

import html
import logging

import httpx

from ..config import Settings
from .base import ExtractedArticle, MetadataFetchFailed

logger = logging.getLogger(__name__)

EMBED_BASE_URL = "https://www.youtube.com/embed/"

EMBED_TEMPLATE = (
    '<div class="video-embed" style="position: relative; padding-bottom: 56.25%; height: 0; overflow: hidden;">'
    '<iframe src="{src}" title="{title}" '
    'style="position: absolute; top: 0; left: 0; width: 100%; height: 100%; border: 0;" '
    'allow="accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture" '
    "allowfullscreen></iframe>"
    "</div>\n"
    "<p>{description}</p>"
)


def build_embed_html(video_id: str, title: str = "", description: str = "") -> str:
    """Responsive player iframe followed by the description paragraph."""
    return EMBED_TEMPLATE.format(
        src=html.escape(EMBED_BASE_URL + video_id, quote=True),
        title=html.escape(title, quote=True),
        description=html.escape(description),
    )


class VideoExtractor:
    """Builds article fields for a video from the public oEmbed endpoint."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def fetch_metadata(self, url: str) -> dict:
        """GET the oEmbed record for a video URL.

        Raises:
            MetadataFetchFailed: On transport errors or non-2xx status.
        """
        try:
            response = await self.client.get(
                self.settings.oembed_endpoint,
                params={"url": url, "format": "json"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"[VIDEO] oEmbed request for {url} failed: {e}")
            raise MetadataFetchFailed(f"Could not fetch video metadata: {type(e).__name__}") from e

        if not response.is_success:
            logger.warning(f"[VIDEO] oEmbed returned HTTP {response.status_code} for {url}")
            raise MetadataFetchFailed(
                f"Could not fetch video metadata: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MetadataFetchFailed("Video metadata response was not valid JSON") from e
        return data if isinstance(data, dict) else {}

    async def extract(self, url: str, video_id: str) -> ExtractedArticle:
        metadata = await self.fetch_metadata(url)
        title = metadata.get("title") or ""
        description = metadata.get("description") or ""

        logger.info(f"[VIDEO] {video_id}: {title!r}")
        return ExtractedArticle(
            url=url,
            title=title,
            content=build_embed_html(video_id, title=title, description=description),
            description=description,
            strategy="video",
        )
