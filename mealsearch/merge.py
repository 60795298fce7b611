from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from .pipeline_types import MergedResult, ScoredCandidate


def combine(
    per_source: Mapping[str, Sequence[ScoredCandidate]],
    top_k: int,
) -> List[MergedResult]:
    """
    Deduplicate per-source hits by recipe id.

    Each id keeps its best score and every source that returned it (first
    seen first).  Groups are ordered by descending score, ties by first
    appearance, and cut to ``top_k``.  Empty source lists contribute nothing.
    """
    if top_k <= 0:
        return []

    groups: Dict[int, MergedResult] = {}
    for label, hits in per_source.items():
        for hit in hits:
            src = hit.source or label
            merged = groups.get(hit.id)
            if merged is None:
                groups[hit.id] = MergedResult(id=hit.id, name=hit.name, score=hit.score, sources=(src,))
                continue
            if hit.score > merged.score:
                merged.score = hit.score
            if src not in merged.sources:
                merged.sources = merged.sources + (src,)

    ordered = sorted(groups.values(), key=lambda m: -m.score)
    return ordered[:top_k]
