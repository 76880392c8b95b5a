"""Linemark - a line-oriented live-preview Markdown editing engine."""

from .blocks import BlockKind, BlockTag, classify_lines, is_line_inside_block
from .dispatch import RenderDispatcher
from .editor import LineEditor
from .model import Line, LineStore, OutOfRangeError
from .renderer import MarkdownLineRenderer, RenderRequest, RenderResult
from .search import SearchMatch, SearchOptions, SearchSession

__all__ = [
    'BlockKind',
    'BlockTag',
    'classify_lines',
    'is_line_inside_block',
    'RenderDispatcher',
    'LineEditor',
    'Line',
    'LineStore',
    'OutOfRangeError',
    'MarkdownLineRenderer',
    'RenderRequest',
    'RenderResult',
    'SearchMatch',
    'SearchOptions',
    'SearchSession',
]
