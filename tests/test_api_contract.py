import numpy as np
from fastapi.testclient import TestClient

from mealsearch.api import app
from mealsearch.ensemble import EnsembleSearcher, SourcePipeline
from mealsearch.errors import ConfigurationMissing
from mealsearch.pipeline_types import CandidateItem


client = TestClient(app)


class DummyEmbedder:
    dim = 2

    def embed(self, text):
        return np.array([1.0, 0.0], dtype="float32")


class NoKeyEmbedder:
    dim = 2

    def embed(self, text):
        raise ConfigurationMissing("OpenAI API key is not set")


class DummyStore:
    def fetch(self, source, food_type=0):
        return [
            CandidateItem(id=1, name="Chicken Soup", vector=np.array([0.9, 0.1], dtype="float32")),
            CandidateItem(id=2, name="Apple Pie", vector=np.array([0.0, 1.0], dtype="float32")),
        ]


def _searcher(*pipelines):
    return EnsembleSearcher(list(pipelines), DummyStore(), top_k=10)


def test_health_endpoint():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_search_requires_non_empty_query(monkeypatch):
    monkeypatch.setattr(
        "mealsearch.api.get_searcher",
        lambda: _searcher(SourcePipeline("MiniLM", DummyEmbedder(), "EmbeddingMiniLm", 0.35)),
    )
    resp = client.post("/search", json={"query": " "})
    assert resp.status_code == 422


def test_search_reports_merged_results_and_skipped_sources(monkeypatch):
    monkeypatch.setattr(
        "mealsearch.api.get_searcher",
        lambda: _searcher(
            SourcePipeline("OpenAI", NoKeyEmbedder(), "Embedding", 0.70),
            SourcePipeline("MiniLM", DummyEmbedder(), "EmbeddingMiniLm", 0.35),
        ),
    )
    resp = client.post("/search", json={"query": "chicken soup", "top_k": 5})
    assert resp.status_code == 200
    data = resp.json()

    assert data["query"] == "chicken soup"
    assert [r["id"] for r in data["results"]] == [1]
    assert data["results"][0]["sources"] == ["MiniLM"]
    assert data["sources_used"] == ["MiniLM"]
    assert "OpenAI" in data["sources_failed"]


def test_search_returns_503_when_all_sources_fail(monkeypatch):
    monkeypatch.setattr(
        "mealsearch.api.get_searcher",
        lambda: _searcher(SourcePipeline("OpenAI", NoKeyEmbedder(), "Embedding", 0.70)),
    )
    resp = client.post("/search", json={"query": "chicken soup"})
    assert resp.status_code == 503
