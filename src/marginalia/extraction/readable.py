"""Readable-content extraction for generic web documents."""

import logging
import re

from bs4 import BeautifulSoup, Tag
from readability import Document as ReadabilityDocument
from readability.readability import Unparseable

from ..annotate.text import drop_leading_newlines
from .base import ExtractionFailed, ReadableContent

logger = logging.getLogger(__name__)

# Chrome that readability occasionally lets through
STRIP_TAGS = ["script", "style", "noscript", "iframe", "form", "button", "input"]

# Wrapper ids readability puts around the article body
WRAPPER_IDS = {"readabilityBody", "readability-content", "readability-page-1"}

NO_TITLE = "[no-title]"

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_excerpt(text: str, limit: int) -> str:
    """Collapse whitespace and cut to ``limit`` chars on a word boundary."""
    text = _collapse(text)
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0].rstrip(" ,.;:")
    return f"{cut}…"


def _is_wrapper(tag: Tag) -> bool:
    if tag.name != "div":
        return False
    attrs = dict(tag.attrs)
    attrs.pop("class", None)
    return not attrs or (set(attrs) == {"id"} and attrs["id"] in WRAPPER_IDS)


def clean_summary(summary_html: str) -> str:
    """Strip readability's document wrappers and leftover chrome from a summary."""
    soup = BeautifulSoup(summary_html, "html.parser")

    for tag in soup.find_all(["html", "body"]):
        tag.unwrap()
    for tag in soup.find_all(STRIP_TAGS):
        # Nested matches go with their ancestor
        if not tag.decomposed:
            tag.decompose()

    # Unwrap single anonymous wrapper divs until real structure is reached
    while True:
        top_level = [child for child in soup.contents if isinstance(child, Tag)]
        loose_text = [
            child for child in soup.contents if not isinstance(child, Tag) and str(child).strip()
        ]
        if len(top_level) != 1 or loose_text or not _is_wrapper(top_level[0]):
            break
        top_level[0].unwrap()

    return str(drop_leading_newlines(soup)).strip()


def _meta_description(page: BeautifulSoup) -> str:
    for attrs in ({"name": "description"}, {"property": "og:description"}, {"name": "twitter:description"}):
        meta = page.find("meta", attrs=attrs)
        if meta and meta.get("content", "").strip():
            return meta["content"]
    return ""


def _first_paragraph(content: BeautifulSoup) -> str:
    for paragraph in content.find_all("p"):
        text = paragraph.get_text(" ", strip=True)
        if text:
            return text
    return ""


def extract_readable(
    html: str,
    url: str | None = None,
    min_chars: int = 1,
    excerpt_length: int = 200,
) -> ReadableContent:
    """Run readability over a fetched page.

    Args:
        html: The fetched page.
        url: Originating URL, used to make relative links absolute.
        min_chars: Minimum visible characters for the result to count as an article.
        excerpt_length: Maximum excerpt length.

    Raises:
        ExtractionFailed: If no readable content could be identified.
    """
    if not html or not html.strip():
        raise ExtractionFailed()

    try:
        doc = ReadabilityDocument(html, url=url)
        summary = doc.summary(html_partial=True)
        title = doc.title()
        if not title or title == NO_TITLE:
            title = doc.short_title()
    except Unparseable as e:
        logger.info(f"[EXTRACT] Readability could not parse {url}: {e}")
        raise ExtractionFailed() from e

    content = clean_summary(summary)
    content_soup = BeautifulSoup(content, "html.parser")
    visible = _collapse(content_soup.get_text(" "))
    if len(visible) < max(min_chars, 1):
        logger.info(f"[EXTRACT] No readable content in {url} ({len(visible)} chars)")
        raise ExtractionFailed()

    page = BeautifulSoup(html, "lxml")
    excerpt = _meta_description(page) or _first_paragraph(content_soup)

    if title == NO_TITLE:
        title = ""

    return ReadableContent(
        title=_collapse(title or ""),
        content=content,
        excerpt=truncate_excerpt(excerpt, excerpt_length),
    )
