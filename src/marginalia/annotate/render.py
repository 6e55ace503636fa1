"""Re-applying stored highlights to article content as inline spans."""

import logging
from collections.abc import Iterable
from typing import Any

from bs4 import NavigableString

from .coverage import CoverageIntervals, HighlightSpan
from .text import iter_text_nodes, parse_fragment

logger = logging.getLogger(__name__)


def render_highlights(content: str, highlights: Iterable[Any]) -> str:
    """Wrap every highlighted range of ``content`` in a highlight span.

    Offsets are resolved against the canonical text, so a highlight that
    crosses element boundaries becomes one span per text node and the output
    stays well-formed. Overlapping highlights are merged through coverage
    intervals rather than nested. Whitespace-only pieces are left unwrapped.
    The same input always renders to the same output.
    """
    spans = [HighlightSpan.from_record(h) for h in highlights]
    if not content or not spans:
        return content

    soup = parse_fragment(content)
    nodes = list(iter_text_nodes(soup))
    total = sum(len(node) for node in nodes)

    for span in spans:
        if span.start < 0 or span.end > total or span.start >= span.end:
            logger.warning(
                f"[HIGHLIGHT] Highlight {span.id} [{span.start}, {span.end}) "
                f"outside content of length {total}; clipping"
            )

    coverage = CoverageIntervals(spans, limit=total)
    if not coverage:
        return content

    running = 0
    for node in nodes:
        text = str(node)
        node_start = running
        node_end = running + len(text)
        running = node_end

        pieces = coverage.overlapping(node_start, node_end)
        if not pieces:
            continue

        replacements = []
        cursor = node_start
        for seg_start, seg_end, segment in pieces:
            if seg_start > cursor:
                replacements.append(NavigableString(text[cursor - node_start : seg_start - node_start]))
            piece = text[seg_start - node_start : seg_end - node_start]
            if piece.strip():
                span_tag = soup.new_tag("span", attrs=segment.attrs())
                span_tag.string = piece
                replacements.append(span_tag)
            else:
                replacements.append(NavigableString(piece))
            cursor = seg_end
        if cursor < node_end:
            replacements.append(NavigableString(text[cursor - node_start :]))

        node.replace_with(*replacements)

    return str(soup)
