import numpy as np
import pytest

from mealsearch.errors import DimensionMismatch
from mealsearch.pipeline_types import CandidateItem
from mealsearch.ranking import cosine_similarity, rank_candidates


def _unit(angle):
    return np.array([np.cos(angle), np.sin(angle)], dtype="float32")


def _candidates(n=8):
    return [CandidateItem(id=i, name=f"Recipe {i}", vector=_unit(i * 0.2)) for i in range(n)]


def test_cosine_similarity_bounds():
    rng = np.random.default_rng(42)
    for _ in range(50):
        a, b = rng.normal(size=16), rng.normal(size=16)
        s = cosine_similarity(a, b)
        assert -1.0 - 1e-6 <= s <= 1.0 + 1e-6

    v = np.array([0.3, -0.7, 0.2])
    assert cosine_similarity(v, v) == pytest.approx(1.0, abs=1e-6)
    assert cosine_similarity(v, -v) == pytest.approx(-1.0, abs=1e-6)
    assert cosine_similarity(np.zeros(3), v) == 0.0


def test_threshold_above_one_returns_nothing():
    assert rank_candidates(_unit(0.0), _candidates(), threshold=1.1, top_k=10) == []


def test_top_k_count_and_ordering():
    cands = _candidates(8)
    ranked = rank_candidates(_unit(0.0), cands, threshold=0.5, top_k=3, source="MiniLM")

    passing = sum(1 for c in cands if cosine_similarity(_unit(0.0), c.vector) > 0.5)
    assert len(ranked) == min(3, passing)
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)
    assert [r.id for r in ranked] == [0, 1, 2]
    assert all(r.source == "MiniLM" for r in ranked)


def test_ties_keep_input_order():
    v = _unit(0.3)
    cands = [CandidateItem(id=i, name=str(i), vector=v.copy()) for i in (7, 3, 9)]
    ranked = rank_candidates(_unit(0.0), cands, threshold=-1.0, top_k=3)
    assert [r.id for r in ranked] == [7, 3, 9]


def test_strict_versus_inclusive_threshold():
    cands = [CandidateItem(id=1, name="a", vector=_unit(0.4))]
    exact = rank_candidates(_unit(0.0), cands, threshold=-1.0, top_k=1)[0].score

    assert rank_candidates(_unit(0.0), cands, threshold=exact, top_k=1) == []
    inclusive = rank_candidates(_unit(0.0), cands, threshold=exact, top_k=1, inclusive=True)
    assert [r.id for r in inclusive] == [1]


def test_dimension_mismatch_fails_fast():
    query = np.ones(384, dtype="float32")
    cands = [
        CandidateItem(id=1, name="ok", vector=np.ones(384, dtype="float32")),
        CandidateItem(id=2, name="stale", vector=np.ones(768, dtype="float32")),
    ]
    with pytest.raises(DimensionMismatch) as exc:
        rank_candidates(query, cands, threshold=0.0, top_k=5)
    assert exc.value.expected == 384
    assert exc.value.got == 768
    assert exc.value.item_id == 2


def test_zero_top_k_and_empty_candidates():
    assert rank_candidates(_unit(0.0), _candidates(), threshold=-1.0, top_k=0) == []
    assert rank_candidates(_unit(0.0), [], threshold=-1.0, top_k=5) == []
