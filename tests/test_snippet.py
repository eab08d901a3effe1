import pytest

from sitesearch.search.snippet import SnippetBuilder


@pytest.fixture
def builder(finder):
    return SnippetBuilder(finder, words_range=2, spoiler_threshold=270)


def test_context_window_and_ellipses(builder):
    snippet = builder.build("Один два три кот четыре пять шесть", {"кот"})
    assert snippet == "... два три <b>кот</b> четыре пять ..."


def test_highlight_keeps_case_and_punctuation(builder):
    assert builder.build("Кота, видели.", {"кот"}) == "<b>Кота</b>, видели."


def test_adjacent_hits_share_highlight(builder):
    assert builder.build("кот кошку спят", {"кот", "кошка"}) == "<b>кот кошку</b> спят"


def test_punctuation_splits_highlight(builder):
    assert builder.build("кот, кошку", {"кот", "кошка"}) == "<b>кот</b>, <b>кошку</b>"


def test_particles_are_not_counted_in_window(builder):
    assert builder.build("кот и в на собаки", {"собака"}) == "кот и в на <b>собаки</b>"


def test_skipped_lines_produce_ellipsis(builder):
    text = "Первая строка совсем без совпадений\n\nтут кот\n"
    assert builder.build(text, {"кот"}) == "... тут <b>кот</b>"


def test_separate_clusters(builder):
    text = "кот раз два три четыре пять шесть семь кот"
    assert builder.build(text, {"кот"}) == "<b>кот</b> раз два ... шесть семь <b>кот</b>"


def test_close_hits_are_merged(builder):
    text = "кот раз два три четыре кот"
    assert builder.build(text, {"кот"}) == "<b>кот</b> раз два три четыре <b>кот</b>"


def test_spoiler(finder):
    builder = SnippetBuilder(finder, words_range=2, spoiler_threshold=20)
    text = "кот раз два три четыре пять шесть семь восемь девять десять одиннадцать кот"
    assert builder.build(text, {"кот"}) == (
        "<b>кот</b> раз два ... <details> десять одиннадцать <b>кот</b> </details>"
    )


def test_no_hits(builder):
    assert builder.build("совсем другой текст", {"кот"}) == ""


def test_words_range_must_be_positive(finder):
    with pytest.raises(ValueError):
        SnippetBuilder(finder, words_range=0)
