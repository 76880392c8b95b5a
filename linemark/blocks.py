"""Block context classification for Markdown lines.

A single forward pass over a document snapshot decides, for every line,
which multi-line block it belongs to: fenced code, display math, a list
item or a blockquote. Everything else is plain. The pass is a pure
function of the snapshot, so it can be re-run after every edit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .constants import EngineConstants


class BlockKind(Enum):
    PLAIN = "plain"
    CODE_FENCE = "code_fence"
    MATH_BLOCK = "math_block"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"


class Delimiter(Enum):
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True)
class BlockTag:
    """Block context of a single line."""

    kind: BlockKind = BlockKind.PLAIN
    fence_char: Optional[str] = None
    fence_length: int = 0
    math_delimiter: Optional[str] = None
    ordered: bool = False
    depth: int = 0
    delimiter: Optional[Delimiter] = None
    continuation: bool = False

    @classmethod
    def plain(cls) -> "BlockTag":
        return PLAIN

    @classmethod
    def code_fence(cls, fence_char: str, fence_length: int,
                   delimiter: Optional[Delimiter] = None) -> "BlockTag":
        return cls(BlockKind.CODE_FENCE, fence_char=fence_char,
                   fence_length=fence_length, delimiter=delimiter)

    @classmethod
    def math_block(cls, math_delimiter: str,
                   delimiter: Optional[Delimiter] = None) -> "BlockTag":
        return cls(BlockKind.MATH_BLOCK, math_delimiter=math_delimiter,
                   delimiter=delimiter)

    @classmethod
    def list_item(cls, ordered: bool, depth: int,
                  continuation: bool = False) -> "BlockTag":
        return cls(BlockKind.LIST_ITEM, ordered=ordered, depth=depth,
                   continuation=continuation)

    @classmethod
    def blockquote(cls, depth: int, continuation: bool = False) -> "BlockTag":
        return cls(BlockKind.BLOCKQUOTE, depth=depth, continuation=continuation)

    @property
    def in_block(self) -> bool:
        """True for code fence and math block lines, delimiters included."""
        return self.kind in (BlockKind.CODE_FENCE, BlockKind.MATH_BLOCK)

    @property
    def is_delimiter(self) -> bool:
        return self.delimiter is not None


PLAIN = BlockTag()

_FENCE_OPEN = re.compile(r"^\s*(?P<run>`{3,}|~{3,})(?P<info>.*)$")
_FENCE_CLOSE = re.compile(r"^\s*(?P<run>`{3,}|~{3,})\s*$")
_LIST_ITEM = re.compile(r"^(?P<indent>[ ]*)(?P<marker>[-*+]|\d{1,9}[.)])(?P<space>[ ]+|$)")
_BLOCKQUOTE = re.compile(r"^[ ]{0,3}(?P<markers>>(?:[ ]?>)*)")
_THEMATIC_BREAK = re.compile(r"^[ ]{0,3}(?:(?:\*[ ]*){3,}|(?:-[ ]*){3,}|(?:_[ ]*){3,})$")
_ATX_HEADING = re.compile(r"^[ ]{0,3}#{1,6}(?:\s|$)")


@dataclass
class _ListFrame:
    marker_indent: int
    content_indent: int
    ordered: bool


@dataclass
class _OpenBlock:
    tag: BlockTag
    closer: str = ""

    def closes(self, line: str) -> bool:
        if self.tag.kind is BlockKind.CODE_FENCE:
            m = _FENCE_CLOSE.match(line)
            if not m:
                return False
            run = m.group("run")
            return run[0] == self.tag.fence_char and len(run) >= self.tag.fence_length
        return line.strip() == self.closer

    def line_tag(self, delimiter: Optional[Delimiter] = None) -> BlockTag:
        if self.tag.kind is BlockKind.CODE_FENCE:
            return BlockTag.code_fence(self.tag.fence_char, self.tag.fence_length, delimiter)
        return BlockTag.math_block(self.tag.math_delimiter, delimiter)


def _expand(line: str) -> str:
    return line.expandtabs(EngineConstants.TAB_SIZE)


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _open_block(line: str) -> Optional[_OpenBlock]:
    """Return the block opened by ``line``, if it is a fence or math opener."""
    m = _FENCE_OPEN.match(line)
    if m:
        run = m.group("run")
        if run[0] == "`" and "`" in m.group("info"):
            # ```code``` on one line is inline code, not a fence
            return None
        return _OpenBlock(BlockTag.code_fence(run[0], len(run)))
    stripped = line.strip()
    closer = EngineConstants.MATH_DELIMITERS.get(stripped)
    if closer is not None:
        return _OpenBlock(BlockTag.math_block(stripped), closer=closer)
    return None


def _starts_other_block(line: str) -> bool:
    return bool(
        _ATX_HEADING.match(line)
        or _BLOCKQUOTE.match(line)
        or _THEMATIC_BREAK.match(line)
        or _open_block(line)
    )


def classify_lines(lines: Sequence[str]) -> list[BlockTag]:
    """Classify every line of ``lines`` into its block context.

    Fences and math blocks take precedence over everything else: once one
    is open, lines are content until the matching closer, or to the end of
    the document if there is none.
    """
    tags: list[BlockTag] = []
    block: Optional[_OpenBlock] = None
    lists: list[_ListFrame] = []
    quote_depth = 0
    prev_blank = True

    for raw in lines:
        line = _expand(raw)

        if block is not None:
            if block.closes(line):
                tags.append(block.line_tag(Delimiter.CLOSE))
                block = None
            else:
                tags.append(block.line_tag())
            prev_blank = False
            continue

        opened = _open_block(line)
        if opened is not None:
            block = opened
            tags.append(opened.line_tag(Delimiter.OPEN))
            _trim_lists(lists, _indent_of(line))
            quote_depth = 0
            prev_blank = False
            continue

        if not line.strip():
            tags.append(PLAIN)
            quote_depth = 0
            prev_blank = True
            continue

        indent = _indent_of(line)
        quote = _BLOCKQUOTE.match(line)
        if quote:
            quote_depth = quote.group("markers").count(">")
            tags.append(BlockTag.blockquote(quote_depth))
            if not lists or indent < lists[0].content_indent:
                lists.clear()
            prev_blank = False
            continue

        if quote_depth and not prev_blank and not (
            _starts_other_block(line) or _LIST_ITEM.match(line)
        ):
            tags.append(BlockTag.blockquote(quote_depth, continuation=True))
            continue
        quote_depth = 0

        if _THEMATIC_BREAK.match(line):
            lists.clear()
            tags.append(PLAIN)
            prev_blank = False
            continue

        item = _LIST_ITEM.match(line)
        if item:
            marker = item.group("marker")
            spacing = len(item.group("space"))
            marker_indent = len(item.group("indent"))
            # A marker followed by five or more spaces starts indented code
            # inside the item, so content begins one column after the marker.
            content_indent = marker_indent + len(marker) + (spacing if 1 <= spacing <= 4 else 1)
            while lists and marker_indent < lists[-1].content_indent:
                lists.pop()
            lists.append(_ListFrame(marker_indent, content_indent, marker[-1] in ".)"))
            tags.append(BlockTag.list_item(lists[-1].ordered, len(lists)))
            prev_blank = False
            continue

        if lists:
            if indent >= lists[0].content_indent:
                _trim_lists(lists, indent)
                tags.append(BlockTag.list_item(lists[-1].ordered, len(lists), continuation=True))
                prev_blank = False
                continue
            if not prev_blank and not _starts_other_block(line):
                tags.append(BlockTag.list_item(lists[-1].ordered, len(lists), continuation=True))
                continue
            lists.clear()

        tags.append(PLAIN)
        prev_blank = False

    return tags


def _trim_lists(lists: list[_ListFrame], indent: int) -> None:
    """Drop list frames whose content column lies right of ``indent``."""
    while lists and lists[-1].content_indent > indent:
        lists.pop()


def fence_info(line: str) -> str:
    """Return the first word of a fence line's info string (the language)."""
    m = _FENCE_OPEN.match(_expand(line))
    if not m:
        return ""
    words = m.group("info").split()
    return words[0] if words else ""


def is_line_inside_block(index: int, lines: Sequence[str]) -> bool:
    """Return True if line ``index`` is content of a code or math block."""
    if not 0 <= index < len(lines):
        return False
    tag = classify_lines(lines)[index]
    return tag.in_block and not tag.is_delimiter
