"""Extraction result types and the extraction error taxonomy."""

from dataclasses import dataclass
from typing import Optional


class ExtractionError(Exception):
    """Base class for every failure while turning a URL into an article.

    Each subclass carries a stable ``kind`` that is surfaced to API clients.
    """

    kind = "extraction_error"
    default_message = "Could not save article"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_detail(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidUrl(ExtractionError):
    """URL failed validation before any network call."""

    kind = "invalid_url"
    default_message = "Please enter a valid URL"


class FetchFailed(ExtractionError):
    """Network error, timeout or non-2xx response while fetching."""

    kind = "fetch_failed"
    default_message = "Could not fetch the page"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MetadataFetchFailed(FetchFailed):
    """The video metadata endpoint failed or returned a non-2xx status."""

    kind = "metadata_fetch_failed"
    default_message = "Could not fetch video metadata"


class ExtractionFailed(ExtractionError):
    """The page was fetched but no readable article content was found."""

    kind = "extraction_failed"
    default_message = "Could not parse article content"


class InvalidVideoUrl(ExtractionError):
    """A YouTube URL without a recoverable video id."""

    kind = "invalid_video_url"
    default_message = "Could not find a video id in the URL"


@dataclass
class FetchedPage:
    """Raw response of a successful fetch."""

    url: str
    final_url: str
    status_code: int
    text: str
    content: bytes = b""


@dataclass
class ReadableContent:
    """Output of the readability extractor."""

    title: str
    content: str
    excerpt: str = ""


@dataclass
class ExtractedArticle:
    """Everything extraction knows about a URL, ready to merge into a record."""

    url: str
    title: str
    content: str
    description: str = ""
    strategy: str = "document"  # document, video
