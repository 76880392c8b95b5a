import itertools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Sequence

from .blocks import PLAIN, BlockTag

if TYPE_CHECKING:
    from .renderer import RenderResult


class OutOfRangeError(IndexError):
    """Raised when a line index does not address a line of the document."""

    def __init__(self, index: int, size: int):
        super().__init__(f"line index {index} out of range for document of {size} lines")
        self.index = index
        self.size = size


@dataclass
class CursorPosition:
    line_index: int = 0
    character_index: int = 0


@dataclass
class Line:
    index: int
    raw_text: str
    rendered_html: Optional[str] = None
    is_editing: bool = False
    block_context: BlockTag = PLAIN
    generation: int = 0
    is_stale: bool = True

    @property
    def fresh_html(self) -> Optional[str]:
        """Rendered HTML, or None while it is stale."""
        return None if self.is_stale else self.rendered_html


class LineStore:
    """Ordered document of lines.

    Line indices stay contiguous and zero-based: every insert and delete
    renumbers the trailing lines before returning. Each line carries a
    generation drawn from one document-wide counter; it advances whenever
    the line's text changes or the line is invalidated, so a render result
    tagged with an older generation can be recognized and dropped.
    """

    lines: list[Line]

    def __init__(self, texts: Optional[Iterable[str]] = None):
        self._clock = itertools.count(1)
        self.lines = [self._new_line(i, t) for i, t in enumerate(texts or [])]

    @classmethod
    def from_text(cls, text: str) -> "LineStore":
        return cls(text.split("\n") if text else [""])

    def to_text(self) -> str:
        return "\n".join(line.raw_text for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[Line]:
        return iter(self.lines)

    def _new_line(self, index: int, text: str) -> Line:
        return Line(index=index, raw_text=text, generation=next(self._clock))

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.lines):
            raise OutOfRangeError(index, len(self.lines))

    def _renumber(self, start: int) -> None:
        for i in range(start, len(self.lines)):
            self.lines[i].index = i

    def get_line(self, index: int) -> Line:
        self._check_index(index)
        return self.lines[index]

    def snapshot_all(self) -> tuple[str, ...]:
        return tuple(line.raw_text for line in self.lines)

    def reset(self, texts: Sequence[str]) -> None:
        """Replace the whole document, e.g. on load."""
        self.lines = [self._new_line(i, t) for i, t in enumerate(texts)]

    def insert_lines(self, at_index: int, texts: Sequence[str]) -> list[Line]:
        """Insert new lines before ``at_index``; ``len(self)`` appends."""
        if not 0 <= at_index <= len(self.lines):
            raise OutOfRangeError(at_index, len(self.lines))
        new_lines = [self._new_line(at_index + i, t) for i, t in enumerate(texts)]
        self.lines[at_index:at_index] = new_lines
        self._renumber(at_index + len(new_lines))
        return new_lines

    def mutate_line(self, index: int, new_text: str) -> bool:
        """Set the raw text of a line. Returns True if the text changed."""
        self._check_index(index)
        line = self.lines[index]
        if line.raw_text == new_text:
            return False
        line.raw_text = new_text
        self._invalidate_line(line)
        return True

    def delete_lines(self, from_index: int, count: int) -> list[Line]:
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        self._check_index(from_index)
        if from_index + count > len(self.lines):
            raise OutOfRangeError(from_index + count - 1, len(self.lines))
        removed = self.lines[from_index:from_index + count]
        del self.lines[from_index:from_index + count]
        self._renumber(from_index)
        return removed

    def replace_all_texts(self, texts: Sequence[str]) -> list[int]:
        """Write a whole new buffer in one pass.

        Returns the indices that need re-rendering: the lines whose text
        changed, or every line from the first difference onward when the
        line count changed (their positions shifted).
        """
        old_count = len(self.lines)
        changed: list[int] = []
        for i, text in enumerate(texts[:old_count]):
            if self.mutate_line(i, text):
                changed.append(i)
        if len(texts) > old_count:
            self.insert_lines(old_count, texts[old_count:])
        elif len(texts) < old_count:
            self.delete_lines(len(texts), old_count - len(texts))
        if len(texts) != old_count:
            first = changed[0] if changed else min(old_count, len(texts))
            return list(range(first, len(self.lines)))
        return changed

    @property
    def editing_index(self) -> Optional[int]:
        for line in self.lines:
            if line.is_editing:
                return line.index
        return None

    def set_editing(self, index: Optional[int]) -> None:
        """Make ``index`` the only editing line (None clears editing)."""
        if index is not None:
            self._check_index(index)
        for line in self.lines:
            line.is_editing = line.index == index

    def _invalidate_line(self, line: Line) -> None:
        line.is_stale = True
        line.generation = next(self._clock)

    def invalidate(self, indices: Iterable[int]) -> None:
        for index in indices:
            self._check_index(index)
            self._invalidate_line(self.lines[index])

    def apply_block_tags(self, tags: Sequence[BlockTag]) -> list[int]:
        """Store freshly computed block tags.

        Lines whose tag changed are invalidated and returned.
        """
        if len(tags) != len(self.lines):
            raise ValueError(f"expected {len(self.lines)} tags, got {len(tags)}")
        changed = []
        for line, tag in zip(self.lines, tags):
            if line.block_context != tag:
                line.block_context = tag
                self._invalidate_line(line)
                changed.append(line.index)
        return changed

    def apply_render_result(self, result: "RenderResult") -> bool:
        """Store a render result if it still matches the line's generation.

        Results for superseded generations, for lines that no longer exist,
        and failed renders (``html is None``) are not applied. A failed
        render keeps the previous HTML and leaves the line stale.
        """
        if not 0 <= result.line_index < len(self.lines):
            return False
        line = self.lines[result.line_index]
        if result.generation != line.generation or result.html is None:
            return False
        line.rendered_html = result.html
        line.is_stale = False
        return True
