"""Caret capture and restore across line content replacement.

A caret position is reduced to a single number: how many characters of
the line's flattened text precede it. That number survives any change of
markup (``### Title`` as literal text versus an ``<h3>`` element) because
it never refers to a particular node. Restoring walks the new content
tree depth-first and turns the number back into a node and offset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

logger = logging.getLogger(__name__)

Node = Union[Tag, NavigableString]


@dataclass
class Caret:
    """A caret inside a content tree.

    ``node`` is either a text node, with ``offset`` counting characters,
    or an element, with ``offset`` counting child nodes.
    """

    node: Node
    offset: int = 0


def _is_text(node) -> bool:
    # Comments, CDATA and doctypes are not part of the displayed text
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def iter_text_nodes(root: Tag) -> Iterator[NavigableString]:
    for node in root.descendants:
        if _is_text(node):
            yield node


def text_length(node: Node) -> int:
    if _is_text(node):
        return len(node)
    if isinstance(node, Tag):
        return sum(len(t) for t in iter_text_nodes(node))
    return 0


def flattened_offset(root: Tag, caret: Optional[Caret]) -> int:
    """Count the characters of ``root``'s text that precede ``caret``.

    Returns 0 when there is no caret or it lies outside ``root``.
    """
    if caret is None:
        return 0
    if caret.node is root:
        return sum(text_length(child) for child in root.contents[:caret.offset])
    total = 0
    for node in root.descendants:
        if node is caret.node:
            if _is_text(node):
                return total + max(0, min(caret.offset, len(node)))
            return total + sum(text_length(child) for child in node.contents[:caret.offset])
        if _is_text(node):
            total += len(node)
    return 0


def locate_offset(root: Tag, offset: int) -> Caret:
    """Find the caret position ``offset`` characters into ``root``'s text.

    Offsets past the end clamp to the end of the last text node; content
    without any text yields the start of ``root``.
    """
    offset = max(0, offset)
    consumed = 0
    last: Optional[NavigableString] = None
    for node in iter_text_nodes(root):
        length = len(node)
        if consumed + length >= offset:
            return Caret(node, offset - consumed)
        consumed += length
        last = node
    if last is not None:
        return Caret(last, len(last))
    return Caret(root, 0)


class LineSurface:
    """The displayed content of one line: a parsed tree plus a caret."""

    def __init__(self, html: str = ""):
        self.caret: Optional[Caret] = None
        self.set_content(html)

    def set_content(self, html: str) -> None:
        """Replace the content. The old caret refers to discarded nodes."""
        self.root = BeautifulSoup(html or "", "html.parser")
        self.caret = None

    @property
    def html(self) -> str:
        return self.root.decode()

    @property
    def text(self) -> str:
        return "".join(iter_text_nodes(self.root))

    @property
    def display_text(self) -> str:
        """The text as one row: newlines between block tags become spaces.

        Character positions match ``text``, so caret offsets carry over.
        """
        return self.text.replace("\n", " ")

    def place_caret(self, offset: int) -> Caret:
        """Put the caret ``offset`` characters into the flattened text."""
        self.caret = locate_offset(self.root, offset)
        return self.caret

    def caret_offset(self) -> int:
        return flattened_offset(self.root, self.caret)


class FrameScheduler:
    """Queue of callbacks to run at the next rendering opportunity.

    The owner calls ``flush`` once new content has been committed and
    layout has settled.
    """

    def __init__(self):
        self._pending: list[Callable[[], None]] = []

    def request_frame(self, callback: Callable[[], None]) -> None:
        self._pending.append(callback)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def flush(self) -> int:
        callbacks, self._pending = self._pending, []
        for callback in callbacks:
            callback()
        return len(callbacks)


class CursorSynchronizer:
    """Capture a caret before content replacement and restore it after."""

    def __init__(self, scheduler: Optional[FrameScheduler] = None):
        self.scheduler = scheduler or FrameScheduler()

    def capture_offset(self, surface: LineSurface) -> int:
        return surface.caret_offset()

    def restore_offset(self, surface: LineSurface, offset: int) -> None:
        """Schedule the caret to be placed at ``offset`` on the next frame."""
        self.scheduler.request_frame(lambda: self.restore_now(surface, offset))

    def restore_now(self, surface: LineSurface, offset: int) -> Caret:
        try:
            return surface.place_caret(offset)
        except Exception as e:
            logger.warning(f"Cursor restoration failed, focusing line start: {e}")
            surface.caret = Caret(surface.root, 0)
            return surface.caret
