import pytest

from mealsearch.merge import combine
from mealsearch.pipeline_types import ScoredCandidate


def sc(id_, score, source, name=None):
    return ScoredCandidate(id=id_, name=name or f"Recipe {id_}", score=score, source=source)


def test_same_id_keeps_max_score_and_both_sources():
    merged = combine({"A": [sc(1, 0.5, "A")], "B": [sc(1, 0.8, "B")]}, top_k=10)
    assert len(merged) == 1
    assert merged[0].score == pytest.approx(0.8)
    assert set(merged[0].sources) == {"A", "B"}
    assert merged[0].sources == ("A", "B")  # first-seen order


def test_combining_source_with_itself_is_idempotent():
    hits = [sc(1, 0.9, "A"), sc(2, 0.4, "A")]
    merged = combine({"A": hits + hits}, top_k=10)
    assert [(m.id, m.score) for m in merged] == [(1, 0.9), (2, 0.4)]
    assert all(m.sources == ("A",) for m in merged)


def test_chicken_soup_scenario():
    per_source = {
        "A": [sc(1, 0.9, "A"), sc(2, 0.5, "A")],
        "B": [sc(3, 0.7, "B"), sc(1, 0.6, "B")],
    }
    merged = combine(per_source, top_k=2)
    assert [(m.id, m.score, set(m.sources)) for m in merged] == [
        (1, 0.9, {"A", "B"}),
        (3, 0.7, {"B"}),
    ]


def test_empty_sources_do_not_affect_merge():
    with_empty = combine({"A": [sc(1, 0.9, "A")], "OpenAI": []}, top_k=5)
    without = combine({"A": [sc(1, 0.9, "A")]}, top_k=5)
    assert with_empty == without
    assert combine({}, top_k=5) == []


def test_ties_keep_first_appearance_and_truncate():
    merged = combine(
        {"A": [sc(5, 0.7, "A"), sc(6, 0.7, "A")], "B": [sc(4, 0.7, "B")]}, top_k=2
    )
    assert [m.id for m in merged] == [5, 6]


def test_source_label_rendering():
    merged = combine({"BGE": [sc(1, 0.7, "BGE")], "MiniLM": [sc(1, 0.6, "MiniLM")]}, top_k=1)
    assert merged[0].source_label == "BGE,MiniLM"
