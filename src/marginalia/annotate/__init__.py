"""Highlight offset engine: capture and render."""

from .capture import CapturedHighlight, SelectionRange, capture_selection, capture_text, find_region
from .coverage import CoverageIntervals, HighlightSpan, Segment
from .render import render_highlights
from .text import content_text, iter_text_nodes, parse_fragment

__all__ = [
    "CapturedHighlight",
    "CoverageIntervals",
    "HighlightSpan",
    "Segment",
    "SelectionRange",
    "capture_selection",
    "capture_text",
    "content_text",
    "find_region",
    "iter_text_nodes",
    "parse_fragment",
    "render_highlights",
]
