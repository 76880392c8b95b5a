"""Tests for the Textual front end."""

import asyncio

from linemark.editor import LineEditor
from linemark.textual_app import LineInput, LinemarkApp, LineView


def test_app_creation():
    """Test that the app can be created."""
    app = LinemarkApp()
    assert app is not None
    assert app.filename is None
    assert isinstance(app.editor, LineEditor)


def test_app_with_filename():
    app = LinemarkApp(filename="notes.md")
    assert app.filename == "notes.md"


def test_app_uses_given_editor():
    editor = LineEditor()
    assert LinemarkApp(editor=editor).editor is editor


def test_app_shows_document(tmp_path):
    path = tmp_path / "doc.md"
    path.write_text("# Title\nsome *text*", encoding="utf-8")

    async def run():
        app = LinemarkApp(filename=str(path))
        async with app.run_test() as pilot:
            await pilot.pause()
            views = [str(view.index) for view in app.query(LineView)]
            value = app.query_one(LineInput).value
            return app.editor.current_line, views, value

    current, views, value = asyncio.run(run())
    assert current == 0
    assert views == ["1"]
    assert value == "# Title"
