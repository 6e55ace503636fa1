"""Turning a text selection into highlight offsets."""

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup, NavigableString, Tag

from .text import content_text, iter_text_nodes

logger = logging.getLogger(__name__)

CONTENT_REGION_CLASS = "article-content"


@dataclass
class SelectionRange:
    """A selection over a parsed content tree.

    Boundaries are text nodes with character offsets inside them, which is
    what browsers report for text selections.
    """

    start_node: NavigableString
    start_offset: int
    end_node: NavigableString
    end_offset: int

    @property
    def is_collapsed(self) -> bool:
        return self.start_node is self.end_node and self.start_offset == self.end_offset


@dataclass
class CapturedHighlight:
    """An uncommitted highlight: offsets plus the exact selected text."""

    start_offset: int
    end_offset: int
    text: str

    def to_payload(self) -> dict:
        """Wire form for the create-highlight endpoint (offsets as strings)."""
        return {
            "text": self.text,
            "startOffset": str(self.start_offset),
            "endOffset": str(self.end_offset),
        }


def find_region(soup: BeautifulSoup, class_: str = CONTENT_REGION_CLASS) -> Tag:
    """Return the content rendering region, or the whole tree if unmarked."""
    return soup.find(class_=class_) or soup


def _inside(node: NavigableString, region: Tag) -> bool:
    # Identity, not equality: bs4 compares tags and strings by value
    return any(parent is region for parent in node.parents)


def _trim(text: str, start: int, end: int) -> CapturedHighlight | None:
    selected = text[start:end]
    stripped = selected.strip()
    if not stripped:
        return None
    leading = len(selected) - len(selected.lstrip())
    trailing = len(selected) - len(selected.rstrip())
    start += leading
    end -= trailing
    return CapturedHighlight(start_offset=start, end_offset=end, text=text[start:end])


def capture_selection(region: Tag, selection: SelectionRange) -> CapturedHighlight | None:
    """Compute canonical offsets for a selection made inside ``region``.

    Returns None (no highlight is offered) when the selection is collapsed,
    lies outside the region, has a boundary that is never visited by the
    text-node walk, or contains only whitespace. Surrounding whitespace is
    trimmed from both the offsets and the text.
    """
    if selection.is_collapsed:
        return None
    if not isinstance(selection.start_node, NavigableString) or not isinstance(
        selection.end_node, NavigableString
    ):
        return None
    if not (_inside(selection.start_node, region) and _inside(selection.end_node, region)):
        logger.debug("[HIGHLIGHT] Selection outside the content region ignored")
        return None

    running = 0
    start: int | None = None
    end: int | None = None
    seen: list[str] = []

    for node in iter_text_nodes(region):
        node_text = str(node)
        seen.append(node_text)
        if node is selection.start_node:
            start = running + min(max(selection.start_offset, 0), len(node_text))
        if node is selection.end_node:
            end = running + min(max(selection.end_offset, 0), len(node_text))
            break
        running += len(node_text)

    if start is None or end is None or start >= end:
        return None

    return _trim("".join(seen), start, end)


def capture_text(html: str, quote: str, occurrence: int = 0) -> CapturedHighlight | None:
    """Anchor a quoted string in an article's canonical text.

    ``occurrence`` selects which match to use when the quote appears more
    than once.
    """
    text = content_text(html)
    quote = quote.strip()
    if not quote:
        return None

    position = -1
    for _ in range(occurrence + 1):
        position = text.find(quote, position + 1)
        if position == -1:
            return None

    return CapturedHighlight(start_offset=position, end_offset=position + len(quote), text=quote)
