from __future__ import annotations

"""
FastAPI application for the recipe search.

Thin driver around ``EnsembleSearcher``: one request = one ensemble query.
Sources that fail are reported in ``sources_failed`` instead of failing the
request; only an all-sources failure maps to 503.
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from ._singletons import get_searcher
from .config import (
    FINAL_TOP_K,
    FOOD_TYPE_ANY,
    HealthResponse,
    RecipeHit,
    SearchRequest,
    SearchResponse,
)
from .errors import EnsembleFailure, InvalidQuery


def run_search(query: str, food_type: int = FOOD_TYPE_ANY, top_k: int = FINAL_TOP_K) -> SearchResponse:
    outcome = get_searcher().search(query, food_type=food_type, top_k=top_k)
    return SearchResponse(
        query=query,
        results=[
            RecipeHit(id=r.id, name=r.name, score=round(r.score, 6), sources=list(r.sources))
            for r in outcome.results
        ],
        sources_used=outcome.sources_used,
        sources_failed={label: str(err) for label, err in outcome.failures.items()},
    )


app = FastAPI(title="Recipe Semantic Search", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event() -> None:
    logger.info("Starting app warmup...")
    try:
        get_searcher()
    except Exception as e:
        logger.warning("Warmup partial failure: {}", e)
    logger.info("Warmup complete.")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


@app.post("/search", response_model=SearchResponse)
def search(req: SearchRequest) -> SearchResponse:
    try:
        return run_search(req.query, food_type=req.food_type, top_k=req.top_k)
    except InvalidQuery as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EnsembleFailure as e:
        logger.error("All sources failed for query '{}': {}", req.query, e)
        raise HTTPException(status_code=503, detail="No embedding source is available")
