import pytest

from mealsearch.config import MAX_INPUT_CHARS
from mealsearch.errors import InvalidQuery
from mealsearch.normalize import basic_clean, clamp_text_length, normalize_query


def test_basic_clean_collapses_whitespace():
    assert basic_clean("  chicken \n\t soup  ") == "chicken soup"
    assert basic_clean(None) == ""


def test_basic_clean_normalises_unicode_punctuation():
    assert basic_clean("mom’s “best” stew – quick") == "mom's \"best\" stew - quick"


def test_normalize_query_keeps_case():
    assert normalize_query("Thai Green Curry") == "Thai Green Curry"


def test_normalize_query_rejects_blank():
    with pytest.raises(InvalidQuery):
        normalize_query(" \n ")
    with pytest.raises(InvalidQuery):
        normalize_query(None)


def test_clamp_text_length():
    text = "x" * (MAX_INPUT_CHARS + 100)
    assert len(clamp_text_length(text)) == MAX_INPUT_CHARS
    assert len(normalize_query(text)) == MAX_INPUT_CHARS
