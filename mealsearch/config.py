from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
DB_PATH = Path(os.getenv("MEALSEARCH_DB_PATH", str(DATA_DIR / "recipes.db")))
SNAPSHOT_PATH = DATA_DIR / "recipes_snapshot.parquet"

MODELS_DIR = Path(os.getenv("MEALSEARCH_MODELS_DIR", str(PROJECT_ROOT / "model")))
MINILM_MODEL_DIR = MODELS_DIR / "minilm"
BGE_MODEL_DIR = MODELS_DIR / "bge"


# ---------------------------
# Store layout
# ---------------------------

RECIPE_TABLE = "MstrRecipes"
ID_COLUMN = "RecipeId"
NAME_COLUMN = "RecipeName"
FOOD_TYPE_COLUMN = "FoodTypeId"

# one vector column per embedding source
OPENAI_COLUMN = "Embedding"
MINILM_COLUMN = "EmbeddingMiniLm"
BGE_COLUMN = "EmbeddingBGE"
VECTOR_COLUMNS: List[str] = [OPENAI_COLUMN, MINILM_COLUMN, BGE_COLUMN]

FOOD_TYPE_ANY = 0
FOOD_TYPES: Dict[int, str] = {
    FOOD_TYPE_ANY: "any",
    2: "vegetarian",
    3: "non-vegetarian",
}


# ---------------------------
# Model names (pinned)
# ---------------------------

OPENAI_EMBEDDING_MODEL = "text-embedding-3-large"
OPENAI_EMBEDDING_DIM = 3072
OPENAI_ENDPOINT = "https://api.openai.com/v1/embeddings"

MINILM_MAX_LEN = 256
MINILM_DIM = 384

BGE_MAX_LEN = 512
BGE_DIM = 384
BGE_QUERY_INSTRUCTION = "Represent this sentence for retrieval: "


# ---------------------------
# Source labels & ranking policy
# ---------------------------

SOURCE_OPENAI = "OpenAI"
SOURCE_MINILM = "MiniLM"
SOURCE_BGE = "BGE"

OPENAI_THRESHOLD = 0.70   # strict >
MINILM_THRESHOLD = 0.35   # strict >
BGE_THRESHOLD = 0.65      # inclusive >=

SOURCE_TOP_K = 5          # per source
FINAL_TOP_K = 10          # after merge


# ---------------------------
# Numerics
# ---------------------------

NORM_EPS = 1e-9           # pooling L2 normalisation
COSINE_EPS = 1e-10        # similarity denominator


# ---------------------------
# Text processing
# ---------------------------

MAX_INPUT_CHARS = 2_000


# ---------------------------
# Remote API / HTTP hardening
# ---------------------------

OPENAI_KEY_ENV = "OPENAI_KEY"

HTTP_CONNECT_TIMEOUT = 3.0
HTTP_READ_TIMEOUT = float(os.getenv("MEALSEARCH_HTTP_READ_TIMEOUT", "15.0"))

HTTP_USER_AGENT = "mealsearch/1.0"


# ---------------------------
# Ensemble execution
# ---------------------------

PARALLEL_SOURCES = os.getenv("MEALSEARCH_PARALLEL", "0") == "1"
MAX_SOURCE_WORKERS = 4


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class SourceSettings(BaseModel):
    """
    Ranking policy for one embedding source.

    ``inclusive`` selects ``score >= threshold``; otherwise candidates must
    score strictly above the threshold.
    """

    label: str
    column: str
    threshold: float
    inclusive: bool = False
    top_k: int = Field(default=SOURCE_TOP_K, ge=0)
    enabled: bool = True


def default_sources() -> List[SourceSettings]:
    return [
        SourceSettings(
            label=SOURCE_OPENAI, column=OPENAI_COLUMN, threshold=OPENAI_THRESHOLD,
        ),
        SourceSettings(
            label=SOURCE_MINILM, column=MINILM_COLUMN, threshold=MINILM_THRESHOLD,
        ),
        SourceSettings(
            label=SOURCE_BGE, column=BGE_COLUMN, threshold=BGE_THRESHOLD, inclusive=True,
        ),
    ]


class Settings(BaseModel):
    """
    Process-scoped configuration, constructed once and passed to the
    components that need it.
    """

    openai_api_key: Optional[str] = None
    openai_endpoint: str = OPENAI_ENDPOINT
    openai_model: str = OPENAI_EMBEDDING_MODEL
    openai_dim: Optional[int] = OPENAI_EMBEDDING_DIM
    db_path: Path = DB_PATH
    minilm_model_dir: Path = MINILM_MODEL_DIR
    bge_model_dir: Path = BGE_MODEL_DIR
    sources: List[SourceSettings] = Field(default_factory=default_sources)
    final_top_k: int = Field(default=FINAL_TOP_K, ge=1)
    parallel: bool = PARALLEL_SOURCES
    http_connect_timeout: float = HTTP_CONNECT_TIMEOUT
    http_read_timeout: float = HTTP_READ_TIMEOUT

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        values = {
            "openai_api_key": os.getenv(OPENAI_KEY_ENV) or None,
            "openai_endpoint": os.getenv("MEALSEARCH_OPENAI_ENDPOINT", OPENAI_ENDPOINT),
        }
        values.update(overrides)
        return cls(**values)

    def source(self, label: str) -> Optional[SourceSettings]:
        for s in self.sources:
            if s.label == label:
                return s
        return None


class SearchRequest(BaseModel):
    """
    Request body for POST /search.
    """

    query: str
    food_type: int = Field(default=FOOD_TYPE_ANY, ge=0)
    top_k: int = Field(default=FINAL_TOP_K, ge=1, le=50)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("query must not be empty")
        return v


class RecipeHit(BaseModel):
    """
    One merged recipe in the API response.
    """

    id: int
    name: str
    score: float
    sources: List[str]


class SearchResponse(BaseModel):
    """
    Response body for POST /search.
    """

    query: str
    results: List[RecipeHit]
    sources_used: List[str]
    sources_failed: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
