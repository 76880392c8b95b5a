"""Line rendering contract and the default Markdown renderer.

A render capability turns one ``RenderRequest`` into one ``RenderResult``.
Requests are self-contained: besides the line text they carry an immutable
snapshot of the whole document, because a line's rendering can depend on
its neighbours (a setext underline below it, the delimiter row of a table
above it, an enclosing code fence).
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin

from .blocks import BlockKind, BlockTag, Delimiter, classify_lines, fence_info
from .constants import EngineConstants


class RenderUnavailableError(RuntimeError):
    """The render capability could not be reached at all.

    Distinct from a line that fails to render: the dispatcher keeps the
    previously rendered content instead of substituting a fallback.
    """


@dataclass(frozen=True)
class RenderRequest:
    text: str
    line_index: int
    all_lines: tuple[str, ...]
    is_editing: bool = False
    generation: int = 0
    block_context: Optional[BlockTag] = None


@dataclass(frozen=True)
class RenderResult:
    line_index: int
    html: Optional[str]
    generation: int = 0


class LineRenderer(Protocol):
    def render_line(self, request: RenderRequest) -> RenderResult:
        ...


def render_literal(text: str) -> str:
    """Render raw text as an escaped literal paragraph."""
    return f'<p class="render-fallback">{html.escape(text)}</p>'


_EDIT_MARKER = re.compile(r"^[ \t]*(?:(?:>[ ]?)+|#{1,6}(?=[ \t]|$)|[-*+](?=[ \t])|\d{1,9}[.)](?=[ \t]))")
_SETEXT_UNDERLINE = re.compile(r"^[ ]{0,3}(?P<char>=+|-+)[ \t]*$")
_ATX_HEADING = re.compile(r"^[ ]{0,3}#{1,6}(?:\s|$)")
_TABLE_DELIMITER = re.compile(r"^\s*\|?\s*:?-+:?\s*(?:\|\s*:?-+:?\s*)*\|?\s*$")
_CELL_SPLIT = re.compile(r"(?<!\\)\|")


def _split_cells(line: str) -> list[str]:
    s = line.strip()
    if s.startswith("|"):
        s = s[1:]
    if s.endswith("|") and not s.endswith("\\|"):
        s = s[:-1]
    return [cell.strip() for cell in _CELL_SPLIT.split(s)]


def _is_table_delimiter(line: str) -> bool:
    return "|" in line and bool(_TABLE_DELIMITER.match(line))


def _alignment(cell: str) -> str:
    if cell.startswith(":") and cell.endswith(":"):
        return "center"
    if cell.endswith(":"):
        return "right"
    if cell.startswith(":"):
        return "left"
    return ""


class MarkdownLineRenderer:
    """Render single Markdown lines with markdown-it-py."""

    def __init__(self) -> None:
        self._md = MarkdownIt("commonmark", {"html": False}).enable("table").enable("strikethrough")
        # $...$ and $$...$$ become math tokens before emphasis rules see them
        self._md.use(dollarmath_plugin)

        def math_inline(tokens, idx, options, env):
            return f'<span class="math-inline">${html.escape(tokens[idx].content)}$</span>'

        def math_block(tokens, idx, options, env):
            body = (tokens[idx].content or "").strip("\n")
            return f'<div class="math-block">$${html.escape(body)}$$</div>\n'

        self._md.renderer.rules["math_inline"] = math_inline
        self._md.renderer.rules["math_block"] = math_block

    def render_line(self, request: RenderRequest) -> RenderResult:
        lines = request.all_lines
        index = request.line_index
        if not 0 <= index < len(lines):
            raise ValueError(f"line {index} is outside a snapshot of {len(lines)} lines")
        if lines[index] != request.text:
            lines = lines[:index] + (request.text,) + lines[index + 1:]

        tag = request.block_context
        tags: Optional[list[BlockTag]] = None
        if tag is None:
            tags = classify_lines(lines)
            tag = tags[index]

        if request.is_editing:
            body = self.render_editing(request.text, tag)
        else:
            body = self.render_preview(request.text, tag, lines, index, tags)
        return RenderResult(index, body, request.generation)

    # --- Editing representation ---

    def render_editing(self, text: str, tag: BlockTag) -> str:
        """Raw-leaning HTML whose text content equals ``text`` exactly."""
        if not text:
            return EngineConstants.EMPTY_LINE_HTML
        if tag.kind is BlockKind.CODE_FENCE:
            return f'<span class="code-block-line-editing">{html.escape(text)}</span>'
        if tag.kind is BlockKind.MATH_BLOCK:
            return f'<span class="math-block-line-editing">{html.escape(text)}</span>'
        m = _EDIT_MARKER.match(text)
        if m and m.group(0).strip():
            marker = m.group(0)
            return (f'<span class="md-marker">{html.escape(marker)}</span>'
                    f'{html.escape(text[len(marker):])}')
        return html.escape(text)

    # --- Preview representation ---

    def render_preview(self, text: str, tag: BlockTag, lines: tuple[str, ...],
                       index: int, tags: Optional[list[BlockTag]] = None) -> str:
        if tag.kind is BlockKind.CODE_FENCE:
            return self._render_code_line(text, tag)
        if tag.kind is BlockKind.MATH_BLOCK:
            return self._render_math_line(text, tag)
        if not text.strip():
            return EngineConstants.EMPTY_LINE_HTML
        if tag.kind is BlockKind.LIST_ITEM:
            if tag.continuation:
                return (f'<div class="list-continuation" data-depth="{tag.depth}">'
                        f'{self._md.renderInline(text.strip())}</div>')
            return (f'<div class="list-item" data-depth="{tag.depth}">'
                    f'{self._render_block(text.lstrip())}</div>')
        if tag.kind is BlockKind.BLOCKQUOTE:
            if tag.continuation:
                return (f'<blockquote class="lazy-continuation" data-depth="{tag.depth}">'
                        f'{self._md.renderInline(text.strip())}</blockquote>')
            return self._render_block(text)

        if tags is None:
            tags = classify_lines(lines)
        table = self._render_table_row(text, lines, index, tags)
        if table is not None:
            return table
        if self._is_setext_underline(lines, index, tags):
            return '<div class="setext-underline"></div>'
        level = self._setext_level(lines, index, tags)
        if level:
            return f"<h{level}>{self._md.renderInline(text.strip())}</h{level}>"
        return self._render_block(text)

    def _render_block(self, text: str) -> str:
        # Block HTML separates tags with newlines; a line must flatten to one row
        return self._md.render(text).replace("\n", "")

    def _render_code_line(self, text: str, tag: BlockTag) -> str:
        if tag.delimiter is Delimiter.OPEN:
            lang = fence_info(text)
            return f'<div class="code-block-start" data-lang="{html.escape(lang)}"></div>'
        if tag.delimiter is Delimiter.CLOSE:
            return '<div class="code-block-end"></div>'
        body = html.escape(text) if text else EngineConstants.EMPTY_LINE_HTML
        return f'<code class="code-block-line">{body}</code>'

    def _render_math_line(self, text: str, tag: BlockTag) -> str:
        if tag.delimiter is Delimiter.OPEN:
            return '<div class="math-block-start"></div>'
        if tag.delimiter is Delimiter.CLOSE:
            return '<div class="math-block-end"></div>'
        body = html.escape(text) if text else EngineConstants.EMPTY_LINE_HTML
        return f'<span class="math-block-line">{body}</span>'

    # --- Context from neighbouring lines ---

    @staticmethod
    def _is_paragraph_text(line: str, tag: BlockTag) -> bool:
        return (
            tag.kind is BlockKind.PLAIN
            and bool(line.strip())
            and not _ATX_HEADING.match(line)
            and not _SETEXT_UNDERLINE.match(line)
            and "|" not in line
            and len(line) - len(line.lstrip(" ")) < 4
        )

    def _setext_level(self, lines, index, tags) -> int:
        if index + 1 >= len(lines) or not self._is_paragraph_text(lines[index], tags[index]):
            return 0
        if tags[index + 1].kind is not BlockKind.PLAIN:
            return 0
        m = _SETEXT_UNDERLINE.match(lines[index + 1])
        if not m:
            return 0
        return 1 if m.group("char")[0] == "=" else 2

    def _is_setext_underline(self, lines, index, tags) -> bool:
        if index == 0 or not _SETEXT_UNDERLINE.match(lines[index]):
            return False
        return self._is_paragraph_text(lines[index - 1], tags[index - 1])

    def _table_bounds(self, lines, index, tags) -> Optional[tuple[int, int]]:
        """Return (header_index, delimiter_index) of the table holding ``index``."""

        def is_row(i):
            return 0 <= i < len(lines) and tags[i].kind is BlockKind.PLAIN and "|" in lines[i]

        def is_header(i):
            return (is_row(i) and is_row(i + 1) and _is_table_delimiter(lines[i + 1])
                    and len(_split_cells(lines[i])) == len(_split_cells(lines[i + 1])))

        if not is_row(index):
            return None
        if is_header(index):
            return index, index + 1
        j = index
        while is_row(j):
            if _is_table_delimiter(lines[j]) and is_header(j - 1):
                return j - 1, j
            j -= 1
        return None

    def _render_table_row(self, text, lines, index, tags) -> Optional[str]:
        bounds = self._table_bounds(lines, index, tags)
        if bounds is None:
            return None
        header, delimiter = bounds
        if index == delimiter:
            return '<div class="table-delimiter"></div>'
        aligns = [_alignment(c) for c in _split_cells(lines[delimiter])]
        cell_tag = "th" if index == header else "td"
        cells = []
        for i, cell in enumerate(_split_cells(text)[:len(aligns)]):
            align = f' style="text-align:{aligns[i]}"' if aligns[i] else ""
            cells.append(f"<{cell_tag}{align}>{self._md.renderInline(cell)}</{cell_tag}>")
        return f'<table class="table-row"><tr>{"".join(cells)}</tr></table>'
