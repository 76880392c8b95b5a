"""Editor controller tying the line document to rendering, cursor and search."""

import errno
import logging
import os
import re
from concurrent.futures import Future
from typing import Iterable, Optional, Sequence

from .blocks import classify_lines
from .config import EngineConfig
from .cursor import CursorSynchronizer, FrameScheduler, LineSurface
from .dispatch import RenderDispatcher, build_requests
from .export import export_document
from .highlight import HighlightRect, TextMetrics, compute_highlights, scroll_offset_for
from .model import CursorPosition, LineStore
from .renderer import LineRenderer, MarkdownLineRenderer, RenderResult, render_literal
from .search import ReplaceResult, SearchMatch, SearchOptions, SearchSession
from .storage import atomic_write_text
from .view import TerminalTextMetrics

logger = logging.getLogger(__name__)

_NEWLINE = re.compile(r"\r?\n")


class LineEditor:
    """One open document: its lines, their displayed surfaces and a search.

    Exactly one line at a time may be focused for editing. It shows its raw
    Markdown; every other line shows its rendered preview.
    """

    def __init__(self, renderer: Optional[LineRenderer] = None,
                 config: Optional[EngineConfig] = None,
                 scheduler: Optional[FrameScheduler] = None,
                 metrics: Optional[TextMetrics] = None):
        self.config = config or EngineConfig()
        self.renderer = renderer or MarkdownLineRenderer()
        self.dispatcher = RenderDispatcher(
            self.renderer,
            parallel_threshold=self.config.parallel_threshold,
            max_workers=self.config.max_workers,
        )
        self.scheduler = scheduler or FrameScheduler()
        self.cursor = CursorSynchronizer(self.scheduler)
        self.metrics = metrics or TerminalTextMetrics(self.config.terminal_columns)
        self.store = LineStore([""])
        self.surfaces: list[LineSurface] = [LineSurface()]
        self.search = SearchSession(self.store, text_source=self.rendered_text,
                                    after_mutation=self._after_replace)
        self.current_line: Optional[int] = None
        self.highlights: list[HighlightRect] = []
        # File handling
        self.filename: Optional[str] = None
        self.modified = False
        self.status_message: Optional[str] = None

    # --- Document ---

    def load_text(self, text: str) -> None:
        """Replace the document and render every line."""
        self.store.reset(text.split("\n") if text else [""])
        self.surfaces = [LineSurface() for _ in range(len(self.store))]
        self.current_line = None
        self.search.clear()
        self.highlights = []
        self._reclassify()
        self.render_all()
        self.modified = False

    def to_text(self) -> str:
        return self.store.to_text()

    def rendered_text(self) -> str:
        """The document as displayed: each surface's text, one per line."""
        return "\n".join(surface.display_text for surface in self.surfaces)

    def load_file(self, filename: str) -> bool:
        """Load a file into the editor. A missing file starts an empty document."""
        self.filename = filename
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            self.load_text("")
            return True
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error loading {filename}: {e}")
            self.status_message = f"Error: Cannot open {filename}"
            return False
        self.load_text(content)
        return True

    def save_file(self, filename: Optional[str] = None) -> bool:
        """Save the current document to a file atomically.

        Args:
            filename: Path to save to; defaults to the loaded file.

        Returns:
            True if save succeeded, False otherwise.
        """
        filename = filename or self.filename
        if not filename:
            self.status_message = "Error: No filename set"
            return False

        if not self._write(filename, self.to_text()):
            return False
        self.filename = filename
        self.modified = False
        self.status_message = f"Saved to {filename}"
        return True

    def export_file(self, filename: str, title: Optional[str] = None) -> bool:
        """Write the whole-document HTML export to ``filename``."""
        if not self._write(filename, self.export_html(title)):
            return False
        self.status_message = f"Exported to {filename}"
        return True

    def _write(self, filename: str, content: str) -> bool:
        try:
            atomic_write_text(filename, content)
        except PermissionError:
            self.status_message = f"Error: Permission denied saving {filename}"
            return False
        except OSError as e:
            logger.error(f"Error writing {filename}: {e}")
            if e.errno == errno.ENOSPC:
                self.status_message = "Error: No space left on device"
            else:
                self.status_message = f"Error: Cannot save to {filename}"
            return False
        return True

    def export_html(self, title: Optional[str] = None) -> str:
        """The whole document as a standalone HTML page.

        Every line is rendered as a preview, the focused one included, and
        wrapped in its own ``editor-line`` block. The editor's displayed
        content is left untouched.
        """
        if title is None:
            title = os.path.splitext(os.path.basename(self.filename))[0] if self.filename else "document"
        requests = build_requests(self.store, range(len(self.store)), editing_index=None)
        results = self.dispatcher.render_batch(requests)
        return export_document(
            (result.html if result.html is not None else render_literal(request.text)
             for request, result in zip(requests, results)),
            title,
        )

    # --- Rendering ---

    def render_lines(self, indices: Iterable[int]) -> list[int]:
        """Render ``indices`` now and show the results. Returns the lines updated."""
        requests = build_requests(self.store, indices, self.store.editing_index)
        return self.apply_results(self.dispatcher.render_batch(requests))

    def render_all(self) -> list[int]:
        return self.render_lines(range(len(self.store)))

    def render_all_async(self) -> "Future[list[RenderResult]]":
        """Render every line in the background.

        Hand the future's results to ``apply_results`` on the editing thread;
        lines edited in the meantime keep their newer content.
        """
        requests = build_requests(self.store, range(len(self.store)), self.store.editing_index)
        return self.dispatcher.submit_batch(requests)

    def apply_results(self, results: Sequence[RenderResult]) -> list[int]:
        applied = []
        for result in results:
            if not self.store.apply_render_result(result):
                logger.debug(f"Dropped render result for line {result.line_index}")
                continue
            self._show(result.line_index, result.html)
            applied.append(result.line_index)
        return applied

    def _show(self, index: int, html: str) -> None:
        surface = self.surfaces[index]
        had_caret = surface.caret is not None
        offset = self.cursor.capture_offset(surface)
        surface.set_content(html)
        if had_caret:
            self.cursor.restore_offset(surface, offset)

    def settle(self) -> int:
        """Run work deferred to the next frame, such as caret restoration."""
        return self.scheduler.flush()

    def shutdown(self) -> None:
        self.dispatcher.shutdown()

    def _reclassify(self) -> list[int]:
        return self.store.apply_block_tags(classify_lines(self.store.snapshot_all()))

    def _after_mutation(self, indices: Iterable[int], research: bool = True) -> None:
        self.modified = True
        dirty = set(self._reclassify())
        # Neighbours can change rendering too (setext underlines, table rows)
        for i in indices:
            dirty.update((i - 1, i, i + 1))
        self.render_lines(sorted(i for i in dirty if 0 <= i < len(self.store)))
        if research and self.config.live_search and self.search.is_active:
            self.search.refresh()
        self._refresh_highlights()

    # --- Focus and editing ---

    @property
    def caret_position(self) -> CursorPosition:
        if self.current_line is None:
            return CursorPosition()
        return CursorPosition(self.current_line, self.surfaces[self.current_line].caret_offset())

    def focus_line(self, index: int, caret_offset: Optional[int] = None) -> None:
        """Move editing to line ``index``.

        The previously focused line goes back to its preview and the new one
        shows its raw text, with the caret at ``caret_offset`` (end of line
        by default).
        """
        self.store.get_line(index)
        previous = self.current_line
        if previous is not None and previous < len(self.surfaces):
            self.surfaces[previous].caret = None
        self.store.set_editing(index)
        self.current_line = index
        affected = [index] if previous in (None, index) else [previous, index]
        self.store.invalidate(affected)
        self.render_lines(affected)
        if caret_offset is None:
            caret_offset = len(self.store.get_line(index).raw_text)
        self.cursor.restore_offset(self.surfaces[index], caret_offset)

    def blur(self) -> None:
        """Stop editing; the focused line shows its preview again."""
        if self.current_line is None:
            return
        index = self.current_line
        self.surfaces[index].caret = None
        self.store.set_editing(None)
        self.current_line = None
        self.store.invalidate([index])
        self.render_lines([index])

    def _editing_index(self) -> int:
        if self.current_line is None:
            self.focus_line(0)
        return self.current_line

    def _caret_in(self, index: int, caret_offset: Optional[int]) -> int:
        raw = self.store.get_line(index).raw_text
        if caret_offset is None:
            caret_offset = self.surfaces[index].caret_offset()
        return max(0, min(caret_offset, len(raw)))

    def handle_input(self, new_text: str, caret_offset: Optional[int] = None) -> bool:
        """The focused line's raw text became ``new_text``.

        ``caret_offset`` is where the caret sits in the edited text; it is kept
        across the re-render. Returns False if the text did not change.
        """
        index = self._editing_index()
        surface = self.surfaces[index]
        if caret_offset is None:
            caret_offset = self.cursor.capture_offset(surface)
        if not self.store.mutate_line(index, new_text):
            return False
        surface.caret = None
        self._after_mutation([index])
        self.cursor.restore_offset(self.surfaces[index], caret_offset)
        return True

    def paste_text(self, text: str, caret_offset: Optional[int] = None) -> None:
        """Insert ``text`` at the caret; newlines in it split the line."""
        index = self._editing_index()
        raw = self.store.get_line(index).raw_text
        pos = self._caret_in(index, caret_offset)
        before, after = raw[:pos], raw[pos:]
        pasted = _NEWLINE.split(text)

        if len(pasted) == 1:
            self.surfaces[index].caret = None
            self.store.mutate_line(index, before + pasted[0] + after)
            self._after_mutation([index])
            self.cursor.restore_offset(self.surfaces[index], pos + len(pasted[0]))
            return

        self.surfaces[index].caret = None
        self.store.mutate_line(index, before + pasted[0])
        new_texts = pasted[1:-1] + [pasted[-1] + after]
        self.store.insert_lines(index + 1, new_texts)
        self.surfaces[index + 1:index + 1] = [LineSurface() for _ in new_texts]
        last = index + len(new_texts)
        self.store.set_editing(last)
        self.current_line = last
        self._after_mutation(range(index, len(self.store)))
        self.cursor.restore_offset(self.surfaces[last], len(pasted[-1]))

    def insert_newline(self, caret_offset: Optional[int] = None) -> None:
        """Split the focused line at the caret."""
        self.paste_text("\n", caret_offset)

    def delete_backward(self, caret_offset: Optional[int] = None) -> None:
        """Delete the character before the caret, joining lines at line start."""
        index = self._editing_index()
        raw = self.store.get_line(index).raw_text
        pos = self._caret_in(index, caret_offset)
        if pos > 0:
            self.surfaces[index].caret = None
            self.store.mutate_line(index, raw[:pos - 1] + raw[pos:])
            self._after_mutation([index])
            self.cursor.restore_offset(self.surfaces[index], pos - 1)
        elif index > 0:
            self.join_with_previous(index)

    def join_with_previous(self, index: int) -> None:
        """Append line ``index`` to the line above it and focus the join point."""
        if index <= 0:
            return
        previous = self.store.get_line(index - 1).raw_text
        current = self.store.get_line(index).raw_text
        self.surfaces[index].caret = None
        self.store.mutate_line(index - 1, previous + current)
        self.store.delete_lines(index, 1)
        del self.surfaces[index]
        self.store.set_editing(index - 1)
        self.current_line = index - 1
        self._after_mutation(range(index - 1, len(self.store)))
        self.cursor.restore_offset(self.surfaces[index - 1], len(previous))

    def insert_image(self, path: str, alt: str = "image",
                     caret_offset: Optional[int] = None) -> str:
        """Insert ``![alt](path)`` at the caret of the focused line.

        The caret ends up just after the inserted Markdown, which is returned.
        """
        alt = _NEWLINE.sub(" ", alt)
        path = _NEWLINE.sub("", path)
        # Link destinations containing spaces need angle brackets
        if " " in path:
            path = f"<{path}>"
        markdown = f"![{alt}]({path})"
        self.paste_text(markdown, caret_offset)
        return markdown

    # --- Search ---

    def search_text(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchMatch]:
        matches = self.search.search(query, options)
        self._refresh_highlights()
        return matches

    def next_match(self) -> Optional[SearchMatch]:
        match = self.search.next()
        self._refresh_highlights()
        return match

    def previous_match(self) -> Optional[SearchMatch]:
        match = self.search.previous()
        self._refresh_highlights()
        return match

    def replace_current(self, replacement: str) -> bool:
        replaced = self.search.replace_current(replacement)
        self._refresh_highlights()
        return replaced

    def replace_all(self, replacement: str) -> ReplaceResult:
        result = self.search.replace_all(replacement)
        self._refresh_highlights()
        if result.replaced_count:
            self.status_message = f"Replaced {result.replaced_count} matches"
        return result

    def close_search(self) -> None:
        self.search.clear()
        self.highlights = []

    @property
    def current_highlight(self) -> Optional[HighlightRect]:
        for rect in self.highlights:
            if rect.is_current:
                return rect
        return None

    def scroll_offset(self, viewport_height: int) -> Optional[int]:
        """Scroll offset centering the current match, if there is one."""
        rect = self.current_highlight
        if rect is None:
            return None
        return scroll_offset_for(rect, viewport_height)

    def _after_replace(self, changed: list[int]) -> None:
        # The search session re-runs the query itself after replacing
        if len(self.surfaces) != len(self.store):
            self._resize_surfaces()
        self._after_mutation(changed, research=False)

    def _resize_surfaces(self) -> None:
        count = len(self.store)
        if count > len(self.surfaces):
            self.surfaces.extend(LineSurface() for _ in range(count - len(self.surfaces)))
        else:
            del self.surfaces[count:]
        if self.current_line is not None and self.current_line >= count:
            self.current_line = None
            self.store.set_editing(None)

    def _refresh_highlights(self) -> None:
        if not self.search.is_active:
            self.highlights = []
            return
        texts = [surface.display_text for surface in self.surfaces]
        self.highlights = compute_highlights(self.search.matches, texts,
                                             self.search.current_index, self.metrics)
