"""Content extraction: classification, fetching, readability and video metadata.

The pipeline (``ArticleExtractor``) lives in ``.pipeline`` and is imported from
there directly, since it depends on the API models.
"""

from .base import (
    ExtractedArticle,
    ExtractionError,
    ExtractionFailed,
    FetchFailed,
    InvalidUrl,
    InvalidVideoUrl,
    MetadataFetchFailed,
)
from .classifier import Document, Video, classify, extract_video_id, validate_url

__all__ = [
    "Document",
    "ExtractedArticle",
    "ExtractionError",
    "ExtractionFailed",
    "FetchFailed",
    "InvalidUrl",
    "InvalidVideoUrl",
    "MetadataFetchFailed",
    "Video",
    "classify",
    "extract_video_id",
    "validate_url",
]
