from __future__ import annotations

"""
Vector store collaborators.

A store answers one question: "give me every recipe that has a vector under
this source column", optionally restricted to a food type.  Vectors are kept
as raw little-endian float32 blobs, one BLOB column per embedding source.

* SqliteVectorStore -- SQL table in the MstrRecipes catalog layout.
* FrameVectorStore  -- pandas snapshot (parquet) with the same columns.
"""

import sqlite3
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from .config import (
    FOOD_TYPE_ANY,
    FOOD_TYPE_COLUMN,
    ID_COLUMN,
    NAME_COLUMN,
    RECIPE_TABLE,
    VECTOR_COLUMNS,
)
from .errors import StoreFetchError
from .pipeline_types import CandidateItem


class VectorStore(Protocol):
    def fetch(self, source: str, food_type: int = FOOD_TYPE_ANY) -> List[CandidateItem]:
        ...


# ---------------------------------------------------------------------------
# Blob codec
# ---------------------------------------------------------------------------

_LE_FLOAT32 = np.dtype("<f4")


def encode_vector(vector: Sequence[float]) -> bytes:
    """Pack a vector as little-endian float32 bytes."""
    return np.asarray(vector, dtype=_LE_FLOAT32).tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """Unpack a little-endian float32 blob into ``len(blob) // 4`` floats."""
    if len(blob) % 4 != 0:
        raise StoreFetchError(f"vector blob length {len(blob)} is not a multiple of 4")
    return np.frombuffer(bytes(blob), dtype=_LE_FLOAT32).astype(np.float32)


def _check_column(source: str, allowed: Sequence[str]) -> None:
    # column names are interpolated into SQL, so only known names pass
    if source not in allowed:
        raise StoreFetchError(f"unknown vector source column '{source}'")


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

class SqliteVectorStore:
    def __init__(
        self,
        db_path: Path,
        table: str = RECIPE_TABLE,
        vector_columns: Sequence[str] = VECTOR_COLUMNS,
    ):
        self.db_path = Path(db_path)
        self.table = table
        self.vector_columns = list(vector_columns)

    def _connect(self) -> sqlite3.Connection:
        # read-only; a missing file is an error rather than a fresh empty DB
        uri = f"file:{self.db_path}?mode=ro"
        return sqlite3.connect(uri, uri=True)

    def fetch(self, source: str, food_type: int = FOOD_TYPE_ANY) -> List[CandidateItem]:
        _check_column(source, self.vector_columns)
        sql = (
            f"SELECT {ID_COLUMN}, {NAME_COLUMN}, {source} FROM {self.table} "
            f"WHERE {source} IS NOT NULL AND (? = 0 OR {FOOD_TYPE_COLUMN} = ?)"
        )
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StoreFetchError(f"cannot open {self.db_path}: {e}") from e
        try:
            rows = conn.execute(sql, (food_type, food_type)).fetchall()
        except sqlite3.Error as e:
            raise StoreFetchError(f"query for '{source}' failed: {e}") from e
        finally:
            conn.close()

        items = [
            CandidateItem(id=int(rid), name=str(name), vector=decode_vector(blob))
            for rid, name, blob in rows
        ]
        logger.info("Fetched {} candidates for source '{}' (food_type={})", len(items), source, food_type)
        return items


# ---------------------------------------------------------------------------
# pandas snapshot
# ---------------------------------------------------------------------------

class FrameVectorStore:
    """In-memory store over a DataFrame in the same column layout."""

    def __init__(self, df: pd.DataFrame, vector_columns: Optional[Sequence[str]] = None):
        missing = [c for c in (ID_COLUMN, NAME_COLUMN) if c not in df.columns]
        if missing:
            raise ValueError(f"snapshot is missing required columns: {missing}")
        self.df = df
        if vector_columns is None:
            vector_columns = [c for c in VECTOR_COLUMNS if c in df.columns]
        self.vector_columns = list(vector_columns)

    @classmethod
    def from_parquet(cls, path: Path) -> "FrameVectorStore":
        if not path.exists():
            raise FileNotFoundError(f"Recipe snapshot not found at {path}")
        logger.info("Loading recipe snapshot from {}", path)
        return cls(pd.read_parquet(path))

    def fetch(self, source: str, food_type: int = FOOD_TYPE_ANY) -> List[CandidateItem]:
        _check_column(source, self.vector_columns)
        if source not in self.df.columns:
            raise StoreFetchError(f"snapshot has no column '{source}'")

        df = self.df[self.df[source].notna()]
        if food_type != FOOD_TYPE_ANY:
            if FOOD_TYPE_COLUMN not in df.columns:
                raise StoreFetchError(f"snapshot has no '{FOOD_TYPE_COLUMN}' column to filter on")
            df = df[df[FOOD_TYPE_COLUMN] == food_type]

        items: List[CandidateItem] = []
        for rid, name, blob in df[[ID_COLUMN, NAME_COLUMN, source]].itertuples(index=False, name=None):
            items.append(CandidateItem(id=int(rid), name=str(name), vector=decode_vector(blob)))
        return items
