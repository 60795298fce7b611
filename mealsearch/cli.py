# mealsearch/cli.py
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from loguru import logger

from ._singletons import build_default_pipelines
from .config import FINAL_TOP_K, FOOD_TYPE_ANY, FOOD_TYPES, Settings
from .ensemble import EnsembleSearcher
from .errors import EnsembleFailure, InvalidQuery
from .pipeline_types import MergedResult
from .vector_store import SqliteVectorStore


def format_results(results: List[MergedResult]) -> List[str]:
    return [f"[{r.score:.3f}] {r.name}  (From: {r.source_label})" for r in results]


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Multi-model semantic recipe search")
    ap.add_argument("query", help="Meal phrase to search for")
    ap.add_argument("--food-type", type=int, default=FOOD_TYPE_ANY,
                    help="Food type filter: " + ", ".join(f"{k} = {v}" for k, v in FOOD_TYPES.items()))
    ap.add_argument("--top-k", type=int, default=FINAL_TOP_K)
    ap.add_argument("--sources", default=None,
                    help="Comma-separated source labels to run (default: all)")
    ap.add_argument("--parallel", action="store_true", help="Run sources concurrently")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if not args.verbose:
        logger.remove()
        logger.add(sys.stderr, level="WARNING")

    settings = Settings.from_env(parallel=args.parallel)
    if args.sources:
        wanted = {s.strip() for s in args.sources.split(",") if s.strip()}
        for source in settings.sources:
            source.enabled = source.label in wanted

    searcher = EnsembleSearcher(
        build_default_pipelines(settings),
        SqliteVectorStore(settings.db_path),
        top_k=args.top_k,
        parallel=settings.parallel,
    )
    try:
        outcome = searcher.search(args.query, food_type=args.food_type)
    except (InvalidQuery, EnsembleFailure) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    for label, err in outcome.failures.items():
        print(f"warning: {label} skipped ({err})", file=sys.stderr)
    if not outcome.results:
        print("No matches.")
    for line in format_results(outcome.results):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
