"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class TokenEncoding:
    """Token ids plus attention mask, both exactly ``max_len`` long."""

    ids: np.ndarray
    attention_mask: np.ndarray

    @property
    def max_len(self) -> int:
        return int(self.ids.shape[0])

    @property
    def valid_tokens(self) -> int:
        return int(self.attention_mask.sum())


@dataclass(frozen=True)
class CandidateItem:
    """A recipe and its stored vector for one source."""

    id: int
    name: str
    vector: np.ndarray = field(repr=False)


@dataclass
class ScoredCandidate:
    """A candidate scored against the query by a single source."""

    id: int
    name: str
    score: float
    source: str


@dataclass
class MergedResult:
    """Reconciled record for one recipe across all contributing sources."""

    id: int
    name: str
    score: float
    sources: Tuple[str, ...]

    @property
    def source_label(self) -> str:
        return ",".join(self.sources)
