from __future__ import annotations
"""
Ensemble retrieval for the recipe search.

One query runs through N independent pipelines

    embed (per model) -> fetch (per source column) -> rank (per-source policy)

and the per-source top-K lists are merged into one ranked answer.  A single
failing source never sinks the query: it is logged and contributes nothing.
Single-model search is just a one-element pipeline list.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .config import FINAL_TOP_K, FOOD_TYPE_ANY, MAX_SOURCE_WORKERS, SourceSettings
from .embedders import Embedder
from .errors import (
    ConfigurationMissing,
    DimensionMismatch,
    EmbeddingError,
    EnsembleFailure,
    InvalidQuery,
    SearchError,
    StoreFetchError,
    TransportFailure,
)
from .merge import combine
from .normalize import normalize_query
from .pipeline_types import MergedResult, ScoredCandidate
from .ranking import rank_candidates
from .vector_store import VectorStore


# errors that only cost us the one source
_SOFT_ERRORS = (ConfigurationMissing, TransportFailure)
_HARD_ERRORS = (StoreFetchError, EmbeddingError, DimensionMismatch)


@dataclass
class SourcePipeline:
    """(embedder, source column, threshold policy, top-K) for one model."""

    label: str
    embedder: Embedder
    column: str
    threshold: float
    inclusive: bool = False
    top_k: int = 5

    @classmethod
    def from_settings(cls, embedder: Embedder, source: SourceSettings) -> "SourcePipeline":
        return cls(
            label=source.label,
            embedder=embedder,
            column=source.column,
            threshold=source.threshold,
            inclusive=source.inclusive,
            top_k=source.top_k,
        )


@dataclass
class EnsembleOutcome:
    results: List[MergedResult]
    per_source: Dict[str, List[ScoredCandidate]] = field(default_factory=dict)
    failures: Dict[str, SearchError] = field(default_factory=dict)

    @property
    def sources_used(self) -> List[str]:
        return list(self.per_source.keys())


class EnsembleSearcher:
    def __init__(
        self,
        pipelines: Sequence[SourcePipeline],
        store: VectorStore,
        *,
        top_k: int = FINAL_TOP_K,
        parallel: bool = False,
        max_workers: Optional[int] = None,
    ):
        labels = [p.label for p in pipelines]
        if len(set(labels)) != len(labels):
            raise ValueError(f"duplicate source labels: {labels}")
        self.pipelines = list(pipelines)
        self.store = store
        self.top_k = top_k
        self.parallel = parallel
        self.max_workers = max_workers or min(MAX_SOURCE_WORKERS, max(1, len(self.pipelines)))

    # -----------------------------------------------------------------
    # One source
    # -----------------------------------------------------------------

    def run_pipeline(
        self,
        pipeline: SourcePipeline,
        text: str,
        food_type: int = FOOD_TYPE_ANY,
    ) -> List[ScoredCandidate]:
        # injected collaborators may raise anything; map it onto the taxonomy
        try:
            query_vec = pipeline.embedder.embed(text)
        except SearchError:
            raise
        except Exception as e:
            raise EmbeddingError(f"{pipeline.label}: embedder raised {type(e).__name__}: {e}") from e
        try:
            candidates = self.store.fetch(pipeline.column, food_type)
        except SearchError:
            raise
        except Exception as e:
            raise StoreFetchError(f"{pipeline.label}: store raised {type(e).__name__}: {e}") from e
        ranked = rank_candidates(
            query_vec,
            candidates,
            pipeline.threshold,
            pipeline.top_k,
            inclusive=pipeline.inclusive,
            source=pipeline.label,
        )
        logger.info(
            "source={} candidates={} kept={} best={}",
            pipeline.label,
            len(candidates),
            len(ranked),
            f"{ranked[0].score:.3f}" if ranked else "-",
        )
        return ranked

    def _guarded(
        self,
        pipeline: SourcePipeline,
        text: str,
        food_type: int,
    ) -> Tuple[Optional[List[ScoredCandidate]], Optional[SearchError]]:
        try:
            return self.run_pipeline(pipeline, text, food_type), None
        except _SOFT_ERRORS as e:
            logger.warning("Skipping source {}: {}", pipeline.label, e)
            return None, e
        except _HARD_ERRORS as e:
            logger.error("Source {} failed: {}", pipeline.label, e)
            return None, e

    # -----------------------------------------------------------------
    # Whole ensemble
    # -----------------------------------------------------------------

    def search(
        self,
        text: str,
        food_type: int = FOOD_TYPE_ANY,
        top_k: Optional[int] = None,
    ) -> EnsembleOutcome:
        query = normalize_query(text)
        if food_type < 0:
            raise InvalidQuery(f"food_type must be >= 0, got {food_type}")
        k = self.top_k if top_k is None else top_k
        if k < 1:
            raise InvalidQuery(f"top_k must be >= 1, got {k}")

        if self.parallel and len(self.pipelines) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                futures = [ex.submit(self._guarded, p, query, food_type) for p in self.pipelines]
                outcomes = [f.result() for f in futures]
        else:
            outcomes = [self._guarded(p, query, food_type) for p in self.pipelines]

        per_source: Dict[str, List[ScoredCandidate]] = {}
        failures: Dict[str, SearchError] = {}
        for pipeline, (hits, err) in zip(self.pipelines, outcomes):
            if err is not None:
                failures[pipeline.label] = err
            else:
                per_source[pipeline.label] = hits or []

        if not per_source:
            raise EnsembleFailure(failures)

        merged = combine(per_source, k)
        logger.info(
            "search: query='{}' food_type={} sources={} failed={} -> {} merged",
            query, food_type, list(per_source), list(failures), len(merged),
        )
        return EnsembleOutcome(results=merged, per_source=per_source, failures=failures)
