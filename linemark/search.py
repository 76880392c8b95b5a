"""Search and replace over a line document.

``search_in_content`` and ``replace_in_content`` are the default search and
replace capabilities: pure functions over a newline-joined document.
``SearchSession`` holds the state of one search over a ``LineStore``: the
query, its matches and the current match.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .model import LineStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOptions:
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False


@dataclass(frozen=True)
class SearchMatch:
    """One match. ``line`` and ``column`` are 1-based."""

    line: int
    column: int
    length: int
    text: str
    line_text: str


@dataclass(frozen=True)
class ReplaceResult:
    new_content: str
    replaced_count: int


def compile_query(query: str, options: SearchOptions) -> Optional[re.Pattern]:
    """Compile ``query`` under ``options``; None if it is not a valid regex."""
    pattern = query if options.use_regex else re.escape(query)
    if options.whole_word:
        pattern = rf"\b(?:{pattern})\b"
    flags = 0 if options.case_sensitive else re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        logger.warning(f"Invalid search pattern {query!r}: {e}")
        return None


def search_in_content(query: str, content: str,
                      options: Optional[SearchOptions] = None) -> list[SearchMatch]:
    """Find every non-empty match of ``query``, line by line."""
    options = options or SearchOptions()
    if not query or not content:
        return []
    regex = compile_query(query, options)
    if regex is None:
        return []

    matches = []
    for line_no, line in enumerate(content.split("\n"), start=1):
        for m in regex.finditer(line):
            if m.end() == m.start():
                continue
            matches.append(SearchMatch(line_no, m.start() + 1, m.end() - m.start(), m.group(0), line))
    return matches


def replace_in_content(query: str, replacement: str, content: str,
                       options: Optional[SearchOptions] = None) -> ReplaceResult:
    """Replace every non-empty match of ``query`` in one pass.

    In regex mode, group references in ``replacement`` are expanded;
    otherwise it is inserted verbatim.
    """
    options = options or SearchOptions()
    if not query or not content:
        return ReplaceResult(content, 0)
    regex = compile_query(query, options)
    if regex is None:
        return ReplaceResult(content, 0)

    count = 0

    def substitute(m: re.Match) -> str:
        nonlocal count
        if m.end() == m.start():
            return m.group(0)
        count += 1
        return m.expand(replacement) if options.use_regex else replacement

    try:
        new_lines = [regex.sub(substitute, line) for line in content.split("\n")]
    except (re.error, IndexError) as e:
        logger.warning(f"Invalid replacement {replacement!r}: {e}")
        return ReplaceResult(content, 0)
    return ReplaceResult("\n".join(new_lines), count)


class SearchState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"


class SearchSession:
    """Search state for one document.

    Matches are found in the text produced by ``text_source`` (the rendered
    text when wired into an editor, the raw text by default). Replacements
    always edit the raw lines of ``store``. ``after_mutation`` is called with
    the indices of changed lines after every replacement, before the search
    is run again.
    """

    def __init__(self, store: LineStore,
                 text_source: Optional[Callable[[], str]] = None,
                 after_mutation: Optional[Callable[[list[int]], None]] = None):
        self.store = store
        self.text_source = text_source or store.to_text
        self.after_mutation = after_mutation
        self.state = SearchState.IDLE
        self.query = ""
        self.options = SearchOptions()
        self.matches: list[SearchMatch] = []
        self.current_index: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.state is SearchState.SEARCHING

    @property
    def current_match(self) -> Optional[SearchMatch]:
        if self.current_index is None:
            return None
        return self.matches[self.current_index]

    def search(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchMatch]:
        """Run a new search, replacing all previous matches."""
        self.query = query
        self.options = options or self.options
        if not query:
            self.clear()
            return []
        self.matches = search_in_content(query, self.text_source(), self.options)
        self.current_index = 0 if self.matches else None
        self.state = SearchState.SEARCHING
        logger.debug(f"Search for {query!r} found {len(self.matches)} matches")
        return self.matches

    def refresh(self) -> list[SearchMatch]:
        """Re-run the active search against the current text."""
        if not self.is_active:
            return []
        return self.search(self.query, self.options)

    def next(self) -> Optional[SearchMatch]:
        if not self.matches:
            return None
        self.current_index = (self.current_index + 1) % len(self.matches)
        return self.current_match

    def previous(self) -> Optional[SearchMatch]:
        if not self.matches:
            return None
        self.current_index = (self.current_index - 1) % len(self.matches)
        return self.current_match

    def replace_current(self, replacement: str) -> bool:
        """Replace the current match in the raw text, then search again."""
        match = self.current_match
        if match is None:
            return False
        line_index = match.line - 1
        if not 0 <= line_index < len(self.store):
            return False

        raw = self.store.get_line(line_index).raw_text
        start = self._locate_in_raw(raw, match)
        if start is None:
            logger.info(f"Match {match.text!r} not found in source of line {match.line}, nothing replaced")
            return False

        self.store.mutate_line(line_index, raw[:start] + replacement + raw[start + match.length:])
        if self.after_mutation is not None:
            self.after_mutation([line_index])
        self.search(self.query, self.options)
        return True

    def replace_all(self, replacement: str) -> ReplaceResult:
        """Replace every match in the raw buffer in a single pass."""
        if not self.query:
            return ReplaceResult(self.store.to_text(), 0)
        result = replace_in_content(self.query, replacement, self.store.to_text(), self.options)
        if result.replaced_count:
            changed = self.store.replace_all_texts(result.new_content.split("\n"))
            if self.after_mutation is not None:
                self.after_mutation(changed)
            logger.info(f"Replaced {result.replaced_count} matches of {self.query!r}")
        self.clear()
        return result

    def clear(self) -> None:
        self.state = SearchState.IDLE
        self.matches = []
        self.current_index = None

    @staticmethod
    def _locate_in_raw(raw: str, match: SearchMatch) -> Optional[int]:
        """Column in ``raw`` holding the matched text.

        Rendered and raw text differ wherever markup was consumed, so the
        match column is trusted only if the raw text agrees; otherwise the
        occurrence nearest to it is used.
        """
        column = match.column - 1
        if raw[column:column + match.length] == match.text:
            return column
        positions = [m.start() for m in re.finditer(f"(?={re.escape(match.text)})", raw)]
        if not positions:
            return None
        return min(positions, key=lambda p: abs(p - column))
