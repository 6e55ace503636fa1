"""Coverage intervals for rendering overlapping highlights."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class HighlightSpan:
    """The parts of a highlight that rendering needs."""

    id: int
    start: int
    end: int
    color: str = "yellow"
    note: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> "HighlightSpan":
        """Build from a DB row (dict) or a model with string offsets."""
        if isinstance(record, HighlightSpan):
            return record
        get = record.get if isinstance(record, dict) else lambda key: getattr(record, key, None)
        return cls(
            id=int(get("id") or 0),
            start=int(get("start_offset")),
            end=int(get("end_offset")),
            color=get("color") or "yellow",
            note=get("note") or None,
        )


def sort_key(span: HighlightSpan) -> tuple[int, int]:
    return (span.start, span.id)


@dataclass(frozen=True)
class Segment:
    """A maximal range covered by one exact set of highlights."""

    start: int
    end: int
    highlights: tuple[HighlightSpan, ...]

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(h.id for h in self.highlights)

    @property
    def color(self) -> str:
        # Innermost highlight wins: latest start, then newest id
        return max(self.highlights, key=sort_key).color

    @property
    def notes(self) -> list[str]:
        notes: list[str] = []
        for h in self.highlights:
            if h.note and h.note not in notes:
                notes.append(h.note)
        return notes

    def attrs(self) -> dict[str, str]:
        attrs = {
            "class": "highlight",
            "data-highlight-ids": " ".join(str(i) for i in self.ids),
            "data-color": self.color,
        }
        if self.notes:
            attrs["title"] = "\n".join(self.notes)
        return attrs


class CoverageIntervals:
    """Sorted, non-overlapping segments covering every highlighted offset.

    Overlapping highlights split into segments at each boundary; a segment
    remembers every highlight covering it, so overlaps merge instead of
    nesting.
    """

    def __init__(self, spans: Iterable[HighlightSpan], limit: Optional[int] = None):
        clipped: list[HighlightSpan] = []
        for span in spans:
            start = max(span.start, 0)
            end = span.end if limit is None else min(span.end, limit)
            if start >= end:
                continue
            if (start, end) != (span.start, span.end):
                span = HighlightSpan(span.id, start, end, span.color, span.note)
            clipped.append(span)

        self.spans = sorted(clipped, key=sort_key)
        self.segments = self._build(self.spans)

    @staticmethod
    def _build(spans: list[HighlightSpan]) -> list[Segment]:
        points = sorted({s.start for s in spans} | {s.end for s in spans})
        segments: list[Segment] = []
        for a, b in zip(points, points[1:]):
            cover = tuple(s for s in spans if s.start <= a and s.end >= b)
            if not cover:
                continue
            last = segments[-1] if segments else None
            if last is not None and last.end == a and last.ids == tuple(s.id for s in cover):
                segments[-1] = Segment(last.start, b, cover)
            else:
                segments.append(Segment(a, b, cover))
        return segments

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def overlapping(self, start: int, end: int) -> list[tuple[int, int, Segment]]:
        """Segments intersecting [start, end), clipped to that range."""
        result = []
        for segment in self.segments:
            if segment.end <= start:
                continue
            if segment.start >= end:
                break
            result.append((max(segment.start, start), min(segment.end, end), segment))
        return result
