"""Tests for block context classification."""

from linemark.blocks import (
    BlockKind,
    BlockTag,
    Delimiter,
    classify_lines,
    fence_info,
    is_line_inside_block,
)


def _kinds(lines):
    return [tag.kind for tag in classify_lines(lines)]


def test_fence_pairing():
    lines = ["intro", "", "```python", "x = 1", "## not a heading", "y = 2", "```", "after"]
    tags = classify_lines(lines)

    assert tags[2] == BlockTag.code_fence("`", 3, Delimiter.OPEN)
    for i in (3, 4, 5):
        assert tags[i] == BlockTag.code_fence("`", 3)
    assert tags[6] == BlockTag.code_fence("`", 3, Delimiter.CLOSE)
    assert tags[7].kind is BlockKind.PLAIN


def test_unterminated_fence_on_last_line():
    tags = classify_lines(["text", "```"])
    assert tags[1].kind is BlockKind.CODE_FENCE
    assert tags[1].delimiter is Delimiter.OPEN


def test_unterminated_fence_runs_to_end():
    assert _kinds(["~~~", "a", "- b"]) == [BlockKind.CODE_FENCE] * 3


def test_shorter_fence_does_not_close():
    tags = classify_lines(["````", "```", "````"])
    assert tags[1].delimiter is None
    assert tags[2].delimiter is Delimiter.CLOSE


def test_longer_fence_closes():
    tags = classify_lines(["```", "code", "`````"])
    assert tags[2].delimiter is Delimiter.CLOSE


def test_other_fence_character_does_not_close():
    tags = classify_lines(["```", "~~~", "```"])
    assert tags[1].delimiter is None
    assert tags[2].delimiter is Delimiter.CLOSE


def test_fence_with_info_string_does_not_close():
    tags = classify_lines(["```", "```js", "```"])
    assert tags[1].delimiter is None
    assert tags[2].delimiter is Delimiter.CLOSE


def test_inline_code_with_backticks_is_not_a_fence():
    assert _kinds(["```code```", "next"]) == [BlockKind.PLAIN, BlockKind.PLAIN]


def test_math_block():
    tags = classify_lines(["$$", "x^2", "$$", "text"])
    assert tags[0] == BlockTag.math_block("$$", Delimiter.OPEN)
    assert tags[1] == BlockTag.math_block("$$")
    assert tags[2] == BlockTag.math_block("$$", Delimiter.CLOSE)
    assert tags[3].kind is BlockKind.PLAIN


def test_math_block_closes_only_with_its_own_closer():
    tags = classify_lines(["\\[", "$$", "\\]"])
    assert tags[1].delimiter is None
    assert tags[2].delimiter is Delimiter.CLOSE


def test_block_content_is_never_reclassified():
    assert _kinds(["```", "- item", "> quote", "```"]) == [BlockKind.CODE_FENCE] * 4


def test_nested_list_and_continuations():
    tags = classify_lines(["- a", "  - b", "    continued", "lazy"])
    assert tags[0] == BlockTag.list_item(False, 1)
    assert tags[1] == BlockTag.list_item(False, 2)
    assert tags[2] == BlockTag.list_item(False, 2, continuation=True)
    assert tags[3] == BlockTag.list_item(False, 2, continuation=True)


def test_ordered_list():
    tags = classify_lines(["1. one", "2) two"])
    assert all(tag.ordered for tag in tags)
    assert [tag.depth for tag in tags] == [1, 1]


def test_blank_line_then_unindented_text_ends_list():
    assert _kinds(["- a", "", "b"]) == [BlockKind.LIST_ITEM, BlockKind.PLAIN, BlockKind.PLAIN]


def test_indented_text_after_blank_continues_list():
    tags = classify_lines(["- a", "", "  more"])
    assert tags[2] == BlockTag.list_item(False, 1, continuation=True)


def test_heading_after_list_is_not_lazy_continuation():
    assert _kinds(["- a", "# Heading"]) == [BlockKind.LIST_ITEM, BlockKind.PLAIN]


def test_thematic_breaks_are_not_list_items():
    assert _kinds(["* * *", "- - -", "---"]) == [BlockKind.PLAIN] * 3


def test_blockquote_with_lazy_continuation():
    tags = classify_lines(["> q", "lazy", "", "after"])
    assert tags[0] == BlockTag.blockquote(1)
    assert tags[1] == BlockTag.blockquote(1, continuation=True)
    assert tags[2].kind is BlockKind.PLAIN
    assert tags[3].kind is BlockKind.PLAIN


def test_nested_blockquote_depth():
    assert classify_lines(["> > nested"])[0].depth == 2


def test_classification_is_pure():
    lines = ["- a", "```", "x"]
    assert classify_lines(lines) == classify_lines(list(lines))


def test_is_line_inside_block():
    lines = ["```", "code", "```", "text"]
    assert is_line_inside_block(1, lines)
    assert not is_line_inside_block(0, lines)
    assert not is_line_inside_block(3, lines)
    assert not is_line_inside_block(9, lines)


def test_fence_info():
    assert fence_info("```python extra") == "python"
    assert fence_info("~~~") == ""
    assert fence_info("plain") == ""
