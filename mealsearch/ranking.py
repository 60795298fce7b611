from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .config import COSINE_EPS
from .errors import DimensionMismatch
from .pipeline_types import CandidateItem, ScoredCandidate


def cosine_similarity(a: np.ndarray, b: np.ndarray, eps: float = COSINE_EPS) -> float:
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(a.shape[0], b.shape[0])
    dot = float(np.dot(a, b))
    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b)) + eps
    return dot / denom


def _passes(score: float, threshold: float, inclusive: bool) -> bool:
    return score >= threshold if inclusive else score > threshold


def rank_candidates(
    query: np.ndarray,
    candidates: Sequence[CandidateItem],
    threshold: float,
    top_k: int,
    *,
    inclusive: bool = False,
    source: str = "",
) -> List[ScoredCandidate]:
    """
    Brute-force cosine ranking of one source's candidates.

    Scores below the threshold are dropped (``>`` or, with ``inclusive``,
    ``>=``); survivors are sorted by descending score with ties kept in input
    order, then cut to ``top_k``.  Any candidate whose dimensionality differs
    from the query raises ``DimensionMismatch`` before scoring.
    """
    q = np.asarray(query, dtype=np.float32).reshape(-1)
    dim = q.shape[0]
    for c in candidates:
        got = int(np.asarray(c.vector).reshape(-1).shape[0])
        if got != dim:
            raise DimensionMismatch(dim, got, item_id=c.id)

    if top_k <= 0 or not candidates:
        return []

    matrix = np.vstack([np.asarray(c.vector, dtype=np.float32).reshape(-1) for c in candidates])
    dots = matrix @ q
    norms = np.linalg.norm(matrix, axis=1) * float(np.linalg.norm(q)) + COSINE_EPS
    scores = dots / norms

    kept: List[ScoredCandidate] = []
    for cand, score in zip(candidates, scores):
        s = float(score)
        if _passes(s, threshold, inclusive):
            kept.append(ScoredCandidate(id=cand.id, name=cand.name, score=s, source=source))

    kept.sort(key=lambda x: -x.score)
    return kept[:top_k]
