"""Tests for search and replace."""

import logging
from unittest.mock import Mock

import pytest

from linemark.model import LineStore
from linemark.search import (
    ReplaceResult,
    SearchOptions,
    SearchSession,
    SearchState,
    replace_in_content,
    search_in_content,
)


def test_literal_search_columns():
    matches = search_in_content("foo", "foo bar foo")
    assert [(m.line, m.column, m.length) for m in matches] == [(1, 1, 3), (1, 9, 3)]
    assert matches[0].line_text == "foo bar foo"


def test_replace_all_literal():
    assert replace_in_content("foo", "baz", "foo bar foo") == ReplaceResult("baz bar baz", 2)


def test_search_is_case_insensitive_by_default():
    assert len(search_in_content("foo", "Foo foo")) == 2
    assert len(search_in_content("foo", "Foo foo", SearchOptions(case_sensitive=True))) == 1


def test_whole_word():
    matches = search_in_content("foo", "foobar foo", SearchOptions(whole_word=True))
    assert [m.column for m in matches] == [8]


def test_regex_search():
    matches = search_in_content(r"\d+", "a1 b22", SearchOptions(use_regex=True))
    assert [m.text for m in matches] == ["1", "22"]


def test_matches_never_span_lines():
    matches = search_in_content("a b", "x a\nb a b")
    assert [(m.line, m.column) for m in matches] == [(2, 3)]


def test_zero_length_matches_are_ignored():
    options = SearchOptions(use_regex=True)
    assert search_in_content("x*", "abc", options) == []
    assert [m.text for m in search_in_content("x*", "axx", options)] == ["xx"]
    assert replace_in_content("x*", "-", "axx", options) == ReplaceResult("a-", 1)


def test_invalid_regex_yields_nothing(caplog):
    options = SearchOptions(use_regex=True)
    with caplog.at_level(logging.WARNING):
        assert search_in_content("(", "a(b", options) == []
    assert "Invalid search pattern" in caplog.text
    assert replace_in_content("(", "x", "a(b", options) == ReplaceResult("a(b", 0)


def test_regex_replacement_expands_groups():
    options = SearchOptions(use_regex=True)
    result = replace_in_content(r"(\w+)@(\w+)", r"\2 at \1", "me@host", options)
    assert result.new_content == "host at me"


def test_literal_replacement_is_verbatim():
    assert replace_in_content("a", r"\1", "a").new_content == r"\1"


def test_empty_query_or_document():
    assert search_in_content("", "abc") == []
    assert search_in_content("a", "") == []
    assert replace_in_content("", "x", "abc") == ReplaceResult("abc", 0)


@pytest.fixture
def session():
    return SearchSession(LineStore(["a a a"]))


def test_search_sets_first_match_current(session):
    session.search("a")
    assert session.state is SearchState.SEARCHING
    assert session.current_index == 0
    assert len(session.matches) == 3


def test_navigation_wraps_around(session):
    session.search("a")
    assert session.previous().column == 5
    assert session.current_index == 2
    assert session.next().column == 1
    assert session.current_index == 0


def test_no_matches(session):
    assert session.search("z") == []
    assert session.current_index is None
    assert session.next() is None
    assert session.replace_current("y") is False


def test_empty_query_goes_idle(session):
    session.search("a")
    session.search("")
    assert session.state is SearchState.IDLE
    assert session.matches == []


def test_replace_current_then_search_again():
    store = LineStore(["foo bar foo"])
    hook = Mock()
    session = SearchSession(store, after_mutation=hook)
    session.search("foo")

    assert session.replace_current("baz") is True
    assert store.get_line(0).raw_text == "baz bar foo"
    hook.assert_called_once_with([0])
    assert [(m.line, m.column) for m in session.matches] == [(1, 9)]
    assert session.current_index == 0


def test_replace_current_uses_nearest_occurrence_in_raw_text():
    store = LineStore(["# Title foo"])
    session = SearchSession(store, text_source=lambda: "Title foo")
    session.search("foo")
    assert session.current_match.column == 7

    assert session.replace_current("bar") is True
    assert store.get_line(0).raw_text == "# Title bar"


def test_replace_current_without_source_occurrence_changes_nothing():
    store = LineStore(["raw"])
    session = SearchSession(store, text_source=lambda: "shown")
    session.search("shown")
    assert session.replace_current("x") is False
    assert store.get_line(0).raw_text == "raw"


def test_replace_all_goes_idle():
    store = LineStore(["foo", "bar", "foo foo"])
    hook = Mock()
    session = SearchSession(store, after_mutation=hook)
    session.search("foo")

    result = session.replace_all("baz")

    assert result.replaced_count == 3
    assert store.to_text() == "baz\nbar\nbaz baz"
    hook.assert_called_once_with([0, 2])
    assert session.state is SearchState.IDLE
    assert session.current_match is None
