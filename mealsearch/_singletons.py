# mealsearch/_singletons.py
from __future__ import annotations

from functools import lru_cache
from typing import Callable, Dict, List

from loguru import logger

from .config import SOURCE_BGE, SOURCE_MINILM, SOURCE_OPENAI, Settings
from .embedders import BgeEmbedder, Embedder, MiniLmEmbedder
from .ensemble import EnsembleSearcher, SourcePipeline
from .remote_embed import RemoteEmbedder
from .vector_store import SqliteVectorStore


def _embedder_factories(settings: Settings) -> Dict[str, Callable[[], Embedder]]:
    return {
        SOURCE_OPENAI: lambda: RemoteEmbedder(
            api_key=settings.openai_api_key,
            endpoint=settings.openai_endpoint,
            model=settings.openai_model,
            dim=settings.openai_dim,
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
        ),
        SOURCE_MINILM: lambda: MiniLmEmbedder.from_dir(settings.minilm_model_dir),
        SOURCE_BGE: lambda: BgeEmbedder.from_dir(settings.bge_model_dir),
    }


def build_default_pipelines(settings: Settings) -> List[SourcePipeline]:
    """
    One pipeline per enabled source.  A local model whose files are missing
    is left out with a warning; the remote source is always built since a
    missing key only matters once a query runs.
    """
    factories = _embedder_factories(settings)
    pipelines: List[SourcePipeline] = []
    for source in settings.sources:
        if not source.enabled:
            continue
        factory = factories.get(source.label)
        if factory is None:
            logger.warning("No embedder registered for source '{}'; skipping", source.label)
            continue
        try:
            embedder = factory()
        except FileNotFoundError as e:
            logger.warning("Model files for {} unavailable: {}", source.label, e)
            continue
        pipelines.append(SourcePipeline.from_settings(embedder, source))
    return pipelines


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def get_searcher() -> EnsembleSearcher:
    settings = get_settings()
    pipelines = build_default_pipelines(settings)
    logger.info("Ensemble ready with sources: {}", [p.label for p in pipelines])
    return EnsembleSearcher(
        pipelines,
        SqliteVectorStore(settings.db_path),
        top_k=settings.final_top_k,
        parallel=settings.parallel,
    )
