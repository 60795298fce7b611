"""Exception hierarchy for the search pipelines.

Per-source errors (everything except ``InvalidQuery`` and
``EnsembleFailure``) are caught at the ensemble boundary: the failing source
contributes nothing and the query proceeds with the remaining sources.
"""

from __future__ import annotations

from typing import Dict


class SearchError(Exception):
    """Base class for all search errors."""


class ConfigurationMissing(SearchError):
    """A required setting (e.g. an API credential) is absent."""


class TransportFailure(SearchError):
    """Network error, timeout, non-2xx status or malformed remote response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreFetchError(SearchError):
    """The vector store could not return candidates for a source."""


class EmbeddingError(SearchError):
    """Tokenisation or local inference failed."""


class DimensionMismatch(SearchError, ValueError):
    """Query and stored vector disagree on dimensionality."""

    def __init__(self, expected: int, got: int, item_id: int | None = None):
        where = f" (item {item_id})" if item_id is not None else ""
        super().__init__(
            f"vector dimension mismatch{where}: query has {expected}, stored vector has {got}"
        )
        self.expected = expected
        self.got = got
        self.item_id = item_id


class InvalidQuery(SearchError, ValueError):
    """Query rejected before any pipeline ran."""


class EnsembleFailure(SearchError):
    """Every source failed for the query."""

    def __init__(self, errors: Dict[str, Exception]):
        detail = "; ".join(f"{label}: {err}" for label, err in errors.items())
        super().__init__(f"all sources failed: {detail}" if detail else "no sources configured")
        self.errors = dict(errors)
