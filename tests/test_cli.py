"""Tests for the command line entry point."""

from unittest.mock import patch

from linemark.__main__ import export_file, main, render_file
from linemark.renderer import RenderUnavailableError, render_literal
from linemark.version import BuildInfo, get_build_info, get_version_string


def test_version(capsys):
    with patch("linemark.__main__.get_version_string", return_value="abc1234 2024-01-01"):
        assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "abc1234 2024-01-01"


def test_render_prints_preview_html(tmp_path, capsys):
    path = tmp_path / "doc.md"
    path.write_text("# Title\n\n```\ncode\n```", encoding="utf-8")

    assert main(["--render", str(path)]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "<h1>Title</h1>"
    assert out[1] == "<br>"
    assert out[3] == '<code class="code-block-line">code</code>'


def test_render_requires_filename(capsys):
    assert main(["--render"]) == 2
    assert "usage" in capsys.readouterr().err


def test_unknown_option(capsys):
    assert main(["--bogus"]) == 2


def test_version_string_formats_build_info():
    info = BuildInfo(commit="abcdef1234567", date="2024-01-01T00:00:00+00:00", dirty=True)
    with patch("linemark.version.SOURCES", (lambda: info,)):
        assert get_build_info() == info
        assert get_version_string() == "abcdef1-dirty 2024-01-01T00:00:00+00:00"


def test_version_string_without_build_info():
    with patch("linemark.version.SOURCES", (lambda: None,)):
        assert get_version_string() == "unknown unknown"


class UnavailableRenderer:
    def render_line(self, request):
        raise RenderUnavailableError("renderer offline")


def test_render_unavailable_prints_literal_text(tmp_path, capsys):
    path = tmp_path / "doc.md"
    path.write_text("# Title\na < b", encoding="utf-8")

    assert render_file(str(path), renderer=UnavailableRenderer()) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == [render_literal("# Title"), render_literal("a < b")]


def test_render_unreadable_path_fails(tmp_path, capsys):
    path = tmp_path / "doc.md"
    path.mkdir()
    assert main(["--render", str(path)]) == 1
    assert "Cannot open" in capsys.readouterr().err


def test_export_to_stdout(tmp_path, capsys):
    path = tmp_path / "notes.md"
    path.write_text("# Title\n- item", encoding="utf-8")

    assert main(["--export", str(path)]) == 0

    out = capsys.readouterr().out
    assert out.startswith("<!DOCTYPE html>")
    assert "<title>notes</title>" in out
    assert '<div class="editor-line"><h1>Title</h1></div>' in out
    assert '<ul><li>item</li></ul></div></div>' in out


def test_export_to_file(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("text", encoding="utf-8")
    output = tmp_path / "notes.html"

    assert main(["--export", str(path), str(output)]) == 0

    assert '<div class="editor-line"><p>text</p></div>' in output.read_text(encoding="utf-8")


def test_export_with_unavailable_renderer(tmp_path, capsys):
    path = tmp_path / "doc.md"
    path.write_text("*x*", encoding="utf-8")

    assert export_file(str(path), renderer=UnavailableRenderer()) == 0

    assert f'<div class="editor-line">{render_literal("*x*")}</div>' in capsys.readouterr().out


def test_export_requires_filename(capsys):
    assert main(["--export"]) == 2
    assert "usage" in capsys.readouterr().err
