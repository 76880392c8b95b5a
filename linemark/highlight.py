"""Geometry of search-match highlights over rendered lines."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import accumulate
from typing import Optional, Protocol, Sequence

from .constants import EngineConstants
from .search import SearchMatch


class TextMetrics(Protocol):
    def text_width(self, text: str) -> int:
        ...

    def line_height(self, text: str) -> int:
        ...


@dataclass(frozen=True)
class HighlightRect:
    match_index: int
    line_index: int
    left: int
    top: int
    width: int
    height: int
    is_current: bool = False
    css_class: str = EngineConstants.HIGHLIGHT_CLASS


def line_offsets(line_texts: Sequence[str], metrics: TextMetrics) -> list[int]:
    """Return the top offset of every line: the summed heights of the lines above it."""
    heights = [metrics.line_height(text) for text in line_texts]
    return [0, *accumulate(heights)][:len(line_texts)]


def compute_highlights(matches: Sequence[SearchMatch], line_texts: Sequence[str],
                       current_index: Optional[int], metrics: TextMetrics) -> list[HighlightRect]:
    """Compute one rectangle per match.

    ``line_texts`` are the displayed texts the matches were found in. Matches
    whose line no longer exists are skipped.
    """
    if not matches:
        return []
    tops = line_offsets(line_texts, metrics)
    rects = []
    for i, match in enumerate(matches):
        line_index = match.line - 1
        if not 0 <= line_index < len(line_texts):
            continue
        text = line_texts[line_index]
        start = match.column - 1
        is_current = i == current_index
        rects.append(HighlightRect(
            match_index=i,
            line_index=line_index,
            left=metrics.text_width(text[:start]),
            top=tops[line_index],
            width=metrics.text_width(text[start:start + match.length]),
            height=EngineConstants.ROW_HEIGHT,
            is_current=is_current,
            css_class=(EngineConstants.HIGHLIGHT_CURRENT_CLASS if is_current
                       else EngineConstants.HIGHLIGHT_CLASS),
        ))
    return rects


def scroll_offset_for(rect: HighlightRect, viewport_height: int) -> int:
    """Scroll offset that centers ``rect`` vertically in the viewport."""
    return max(0, rect.top + rect.height // 2 - viewport_height // 2)
