"""Textual front end over LineEditor.

Every line is a widget. Unfocused lines show the text of their rendered
preview; the focused line is an input holding its raw Markdown.
"""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.message import Message
from textual.widgets import Footer, Header, Input, Static

from .config import load_config
from .editor import LineEditor


class LineView(Static):
    """A line shown as its preview."""

    def __init__(self, index: int, content, **kwargs):
        super().__init__(content, markup=False, **kwargs)
        self.index = index

    def on_click(self) -> None:
        self.app.post_message(FocusLine(self.index))


class FocusLine(Message):
    def __init__(self, index: int):
        super().__init__()
        self.index = index


class JoinLine(Message):
    """Backspace at the start of the focused line."""


class LineInput(Input):
    """The focused line's raw text."""

    def action_delete_left(self) -> None:
        if self.cursor_position == 0:
            self.post_message(JoinLine())
            return
        super().action_delete_left()


class LinemarkApp(App):
    """Line-by-line live preview editor."""

    CSS = """
    #document {
        background: $surface;
        scrollbar-size: 1 1;
    }
    LineView {
        height: auto;
    }
    LineInput {
        border: none;
        height: 1;
        padding: 0;
    }
    #search {
        dock: bottom;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("ctrl+s", "save", "Save"),
        Binding("up", "line_up", "Up", show=False),
        Binding("down", "line_down", "Down", show=False),
        Binding("ctrl+f", "search", "Find"),
        Binding("f3", "next_match", "Next"),
        Binding("shift+f3", "previous_match", "Previous"),
        Binding("escape", "close_search", "Close search", show=False),
    ]

    def __init__(self, filename=None, editor=None):
        super().__init__()
        self.filename = filename
        self.editor = editor or LineEditor(config=load_config())

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(id="document")
        yield Input(placeholder="Search", id="search")
        yield Footer()

    async def on_mount(self) -> None:
        self.query_one("#search", Input).display = False
        if self.filename:
            if self.editor.load_file(self.filename):
                self.sub_title = f"Editing: {self.filename}"
            else:
                self.notify(self.editor.status_message, severity="error")
        self.editor.focus_line(0)
        await self._rebuild()

    def on_unmount(self) -> None:
        self.editor.shutdown()

    # --- Line widgets ---

    def _line_content(self, index: int) -> Text:
        text = Text(self.editor.surfaces[index].display_text)
        search = self.editor.search
        for i, match in enumerate(search.matches):
            if match.line - 1 == index:
                style = "black on yellow" if i == search.current_index else "reverse"
                text.stylize(style, match.column - 1, match.column - 1 + match.length)
        return text

    def _line_widget(self, index: int):
        if index == self.editor.current_line:
            return LineInput(value=self.editor.store.get_line(index).raw_text, id="editing-line")
        return LineView(index, self._line_content(index))

    async def _rebuild(self) -> None:
        """Recreate every line widget after the line structure changed."""
        document = self.query_one("#document", VerticalScroll)
        await document.remove_children()
        await document.mount_all([self._line_widget(i) for i in range(len(self.editor.store))])
        self.call_after_refresh(self._settle)

    def _refresh_lines(self) -> None:
        """Update line contents in place; the widget structure is unchanged."""
        for widget in self.query(LineView):
            widget.update(self._line_content(widget.index))
        self.call_after_refresh(self._settle)

    async def _sync(self, rebuild: bool) -> None:
        document = self.query_one("#document", VerticalScroll)
        if rebuild or len(document.children) != len(self.editor.store):
            await self._rebuild()
        else:
            self._refresh_lines()
        self.title = f"linemark{' *' if self.editor.modified else ''}"

    def _settle(self) -> None:
        self.editor.settle()
        for line_input in self.query(LineInput):
            line_input.cursor_position = self.editor.caret_position.character_index
            line_input.focus()

    def _editing_input(self):
        inputs = self.query(LineInput)
        return inputs.first() if inputs else None

    # --- Editing ---

    async def on_focus_line(self, message: FocusLine) -> None:
        self.editor.focus_line(message.index)
        await self._sync(rebuild=True)

    async def on_join_line(self, message: JoinLine) -> None:
        if self.editor.current_line:
            self.editor.join_with_previous(self.editor.current_line)
            await self._sync(rebuild=True)

    async def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "editing-line":
            if self.editor.handle_input(event.value, event.input.cursor_position):
                await self._sync(rebuild=False)
        elif event.input.id == "search":
            if event.value:
                self.editor.search_text(event.value)
            else:
                self.editor.close_search()
            self._refresh_lines()
            self._scroll_to_current_match()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "editing-line":
            self.editor.insert_newline(event.input.cursor_position)
            await self._sync(rebuild=True)
        elif event.input.id == "search":
            self.action_next_match()

    async def _move_focus(self, delta: int) -> None:
        current = self.editor.current_line or 0
        target = current + delta
        if not 0 <= target < len(self.editor.store):
            return
        line_input = self._editing_input()
        column = line_input.cursor_position if line_input is not None else None
        self.editor.focus_line(target, column)
        await self._sync(rebuild=True)

    async def action_line_up(self) -> None:
        await self._move_focus(-1)

    async def action_line_down(self) -> None:
        await self._move_focus(1)

    def action_save(self) -> None:
        if not self.editor.filename and self.filename:
            self.editor.filename = self.filename
        if self.editor.save_file():
            self.notify(self.editor.status_message)
        else:
            self.notify(self.editor.status_message, severity="error")

    # --- Search ---

    def action_search(self) -> None:
        search = self.query_one("#search", Input)
        search.display = True
        search.focus()

    def action_next_match(self) -> None:
        self.editor.next_match()
        self._refresh_lines()
        self._scroll_to_current_match()

    def action_previous_match(self) -> None:
        self.editor.previous_match()
        self._refresh_lines()
        self._scroll_to_current_match()

    def action_close_search(self) -> None:
        search = self.query_one("#search", Input)
        search.value = ""
        search.display = False
        self.editor.close_search()
        self._refresh_lines()

    def _scroll_to_current_match(self) -> None:
        document = self.query_one("#document", VerticalScroll)
        offset = self.editor.scroll_offset(document.size.height)
        if offset is not None:
            document.scroll_to(y=offset, animate=False)


def main():
    """Run the Textual app."""
    import sys
    filename = sys.argv[1] if len(sys.argv) > 1 else None
    LinemarkApp(filename=filename).run()


if __name__ == "__main__":
    main()
