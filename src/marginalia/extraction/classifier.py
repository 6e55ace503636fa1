"""URL validation and extraction strategy selection."""

from dataclasses import dataclass
from typing import Union
from urllib.parse import parse_qs, urlparse

from .base import InvalidUrl, InvalidVideoUrl

VIDEO_HOSTS = ("youtube.com", "youtu.be")
SHORT_VIDEO_HOST = "youtu.be"

# Path forms on youtube.com that carry the id as the second segment
VIDEO_PATH_PREFIXES = ("embed", "shorts", "live")


@dataclass(frozen=True)
class Video:
    """Extract via the oEmbed metadata endpoint."""

    video_id: str


@dataclass(frozen=True)
class Document:
    """Extract via readability."""


ExtractionStrategy = Union[Video, Document]


def validate_url(url: str) -> str:
    """Return the stripped URL or raise InvalidUrl.

    Only absolute http(s) URLs with a host are accepted.
    """
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidUrl(f"Invalid URL: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidUrl("Please enter a valid URL")
    return candidate


def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def is_video_url(url: str) -> bool:
    host = _host(url)
    return any(video_host in host for video_host in VIDEO_HOSTS)


def extract_video_id(url: str) -> str:
    """Extract the YouTube video id from a watch, short, embed or shorts URL.

    Raises:
        InvalidVideoUrl: If no non-empty id can be recovered.
    """
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]

    video_id = ""
    if SHORT_VIDEO_HOST in host:
        video_id = segments[0] if segments else ""
    else:
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if not video_id and len(segments) >= 2 and segments[0] in VIDEO_PATH_PREFIXES:
            video_id = segments[1]

    video_id = video_id.strip()
    if not video_id:
        raise InvalidVideoUrl(f"Could not find a video id in {url}")
    return video_id


def classify(url: str) -> ExtractionStrategy:
    """Pick the extraction strategy for a URL. Sole entry point for dispatch."""
    if is_video_url(url):
        return Video(extract_video_id(url))
    return Document()
