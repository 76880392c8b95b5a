"""Tests for the default Markdown line renderer."""

import pytest

from linemark.blocks import PLAIN, BlockTag
from linemark.cursor import LineSurface
from linemark.renderer import MarkdownLineRenderer, RenderRequest, render_literal


@pytest.fixture(scope="module")
def renderer():
    return MarkdownLineRenderer()


def flatten_html(html):
    return LineSurface(html).text


def render(renderer, lines, index, editing=False):
    lines = tuple(lines)
    request = RenderRequest(text=lines[index], line_index=index, all_lines=lines, is_editing=editing)
    return renderer.render_line(request).html


@pytest.mark.parametrize("text", [
    "# Title",
    "**bold** and _em_",
    "- item",
    "12. numbered",
    "> quote",
    "",
    "plain <b>not html</b> & more",
    "$x^2$ inline",
])
def test_editing_html_flattens_to_raw_text(renderer, text):
    assert flatten_html(render(renderer, [text], 0, editing=True)) == text


def test_editing_code_line_flattens_to_raw_text(renderer):
    lines = ["```", "  if x < 1:", "```"]
    html = render(renderer, lines, 1, editing=True)
    assert "code-block-line-editing" in html
    assert flatten_html(html) == "  if x < 1:"


def test_editing_marks_leading_marker(renderer):
    html = render(renderer, ["## Heading"], 0, editing=True)
    assert html.startswith('<span class="md-marker">##</span>')


def test_preview_is_deterministic(renderer):
    lines = ["# Title", "some *text*", "| a |", "|---|"]
    for i in range(len(lines)):
        assert render(renderer, lines, i) == render(renderer, lines, i)


def test_heading(renderer):
    assert render(renderer, ["# Title"], 0) == "<h1>Title</h1>"


def test_fence_content_is_literal_code(renderer):
    lines = ["```", "## not a heading", "```"]
    html = render(renderer, lines, 1)
    assert 'class="code-block-line"' in html
    assert "<h2" not in html
    assert flatten_html(html) == "## not a heading"


def test_fence_delimiters_are_hidden(renderer):
    lines = ["```python", "x = 1", "```"]
    opening = render(renderer, lines, 0)
    assert 'data-lang="python"' in opening
    assert flatten_html(opening) == ""
    assert flatten_html(render(renderer, lines, 2)) == ""


def test_math_block_lines(renderer):
    lines = ["$$", "a < b", "$$"]
    assert flatten_html(render(renderer, lines, 0)) == ""
    assert flatten_html(render(renderer, lines, 1)) == "a < b"
    assert "math-block-line" in render(renderer, lines, 1)


def test_inline_math(renderer):
    assert 'class="math-inline"' in render(renderer, ["area is $x^2$"], 0)


def test_blank_line(renderer):
    assert render(renderer, ["a", "", "b"], 1) == "<br>"


def test_nested_list_item_keeps_depth(renderer):
    html = render(renderer, ["- a", "  - b"], 1)
    assert 'data-depth="2"' in html
    assert "<li>b</li>" in html
    assert "<code>" not in html


def test_list_continuation(renderer):
    html = render(renderer, ["- a", "  more *text*"], 1)
    assert html.startswith('<div class="list-continuation" data-depth="1">')
    assert "<em>text</em>" in html


def test_blockquote_lazy_continuation(renderer):
    html = render(renderer, ["> quoted", "lazy"], 1)
    assert html.startswith('<blockquote class="lazy-continuation"')
    assert flatten_html(html) == "lazy"


def test_setext_headings(renderer):
    assert render(renderer, ["Title", "==="], 0) == "<h1>Title</h1>"
    assert render(renderer, ["Sub", "---"], 0) == "<h2>Sub</h2>"
    assert flatten_html(render(renderer, ["Title", "==="], 1)) == ""


def test_table_rows(renderer):
    lines = ["| a | b |", "|:--|--:|", "| 1 | 2 |"]
    header = render(renderer, lines, 0)
    assert '<th style="text-align:left">a</th>' in header
    assert '<th style="text-align:right">b</th>' in header
    assert flatten_html(render(renderer, lines, 1)) == ""
    body = render(renderer, lines, 2)
    assert '<td style="text-align:left">1</td>' in body


def test_raw_html_is_escaped(renderer):
    html = render(renderer, ["<script>alert(1)</script>"], 0)
    assert "<script>" not in html


def test_request_text_overrides_snapshot(renderer):
    request = RenderRequest(text="# New", line_index=0, all_lines=("old",))
    assert renderer.render_line(request).html == "<h1>New</h1>"


def test_line_outside_snapshot_raises(renderer):
    with pytest.raises(ValueError):
        renderer.render_line(RenderRequest(text="x", line_index=3, all_lines=("x",)))


def test_precomputed_block_context_is_used(renderer):
    request = RenderRequest(text="# not heading", line_index=0, all_lines=("# not heading",),
                            block_context=BlockTag.code_fence("`", 3))
    assert "code-block-line" in renderer.render_line(request).html


def test_render_literal_escapes():
    assert render_literal("<a>") == '<p class="render-fallback">&lt;a&gt;</p>'


def test_result_carries_request_generation(renderer):
    request = RenderRequest(text="x", line_index=0, all_lines=("x",), generation=42,
                            block_context=PLAIN)
    assert renderer.render_line(request).generation == 42


@pytest.mark.parametrize("text,expected", [
    ("- item", "item"),
    ("> quote", "quote"),
    ("1. first", "first"),
])
def test_block_preview_is_a_single_row(renderer, text, expected):
    html = render(renderer, [text], 0)
    assert "\n" not in html
    assert flatten_html(html) == expected
