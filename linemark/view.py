from typing import Callable
import re

from .constants import EngineConstants

_HANGING_MARKER = re.compile(r"^(\s*)(?:([-*+]) (?=\S)|(\d+[.)]) (?=\S))")


def hanging_indent_width(text: str) -> int:
    """Return the hanging indent of a bullet or numbered line.

    That is the number of columns before the first character of item text
    (leading spaces, marker and one space), or 0 for any other line.
    """
    m = _HANGING_MARKER.match(text)
    if not m:
        return 0
    leading = m.group(1) or ""
    marker = m.group(2) or m.group(3)
    return len(leading) + len(marker) + 1


def wrap_line(text: str, num_columns: int,
              measure: Callable[[str], int] = len) -> list[str]:
    """Word-wrap one line into terminal rows.

    Continuation rows of list items are indented to the item text. Words
    wider than a row are broken across rows. ``measure`` returns the cell
    width of a string, so wide characters take two columns.
    """
    if not text:
        return [""]
    num_columns = max(1, num_columns)
    hanging = hanging_indent_width(text)
    if hanging >= num_columns:
        hanging = 0
    prefix = " " * hanging

    rows: list[str] = []

    def available() -> int:
        return num_columns - hanging if rows else num_columns

    def commit(row: str) -> None:
        rows.append((prefix if rows else "") + row)

    def split_long(word: str) -> str:
        # Peel off row-sized chunks until the rest fits
        while measure(word) >= available():
            cut = _fit_prefix(word, available(), measure)
            commit(word[:cut])
            word = word[cut:]
        return word

    words = text.split(" ")
    current = split_long(words[0])
    for word in words[1:]:
        if measure(current) + 1 + measure(word) < available():
            current += " " + word
        else:
            commit(current)
            current = split_long(word)

    commit(current)
    return rows


def _fit_prefix(word: str, width: int, measure: Callable[[str], int]) -> int:
    """Return how many characters of ``word`` fit in ``width`` cells (at least 1)."""
    cut = 0
    while cut < len(word) and measure(word[:cut + 1]) <= width:
        cut += 1
    return max(cut, 1)


class TerminalTextMetrics:
    """Measure rendered text in terminal cells.

    Widths come from ``blessed``, which accounts for wide and zero-width
    characters and ignores escape sequences. Heights are the number of
    rows a line wraps to.
    """

    def __init__(self, num_columns: int = EngineConstants.DEFAULT_TERMINAL_COLUMNS, terminal=None):
        self.num_columns = num_columns
        self._terminal = terminal

    @property
    def terminal(self):
        if self._terminal is None:
            from blessed import Terminal
            self._terminal = Terminal()
        return self._terminal

    def text_width(self, text: str) -> int:
        return self.terminal.length(text)

    def line_height(self, text: str) -> int:
        return len(wrap_line(text, self.num_columns, self.text_width)) * EngineConstants.ROW_HEIGHT
