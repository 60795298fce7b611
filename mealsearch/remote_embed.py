from __future__ import annotations

from typing import Optional

import httpx
import numpy as np
from loguru import logger

from .config import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_USER_AGENT,
    OPENAI_EMBEDDING_DIM,
    OPENAI_EMBEDDING_MODEL,
    OPENAI_ENDPOINT,
)
from .errors import ConfigurationMissing, EmbeddingError, TransportFailure
from .pooling import l2_normalize


class RemoteEmbedder:
    """
    Embedder backed by an OpenAI-compatible ``/embeddings`` endpoint.

    Same contract as the local embedders, but each ``embed`` is a network
    round trip.  A missing key raises ``ConfigurationMissing``; anything that
    goes wrong on the wire raises ``TransportFailure``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: str = OPENAI_ENDPOINT,
        model: str = OPENAI_EMBEDDING_MODEL,
        dim: Optional[int] = OPENAI_EMBEDDING_DIM,
        client: Optional[httpx.Client] = None,
        connect_timeout: float = HTTP_CONNECT_TIMEOUT,
        read_timeout: float = HTTP_READ_TIMEOUT,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.dim = dim
        self._client = client
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)

    def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": HTTP_USER_AGENT,
        }
        if self._client is not None:
            return self._client.post(self.endpoint, json=payload, headers=headers, timeout=self._timeout)
        with httpx.Client(timeout=self._timeout) as client:
            return client.post(self.endpoint, json=payload, headers=headers)

    def embed(self, text: str) -> np.ndarray:
        if not self.api_key:
            raise ConfigurationMissing("OpenAI API key is not set")

        payload = {"input": text, "model": self.model, "encoding_format": "float"}
        try:
            r = self._post(payload)
        except httpx.TimeoutException as e:
            logger.warning("Embedding API timeout for {}", self.endpoint)
            raise TransportFailure(f"embedding request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"embedding request failed: {e}") from e

        if r.status_code >= 400:
            raise TransportFailure(
                f"embedding API returned HTTP {r.status_code}", status_code=r.status_code
            )

        try:
            body = r.json()
            raw = body["data"][0]["embedding"]
            vec = np.asarray(raw, dtype=np.float32)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TransportFailure(f"malformed embedding response: {e}") from e

        if vec.ndim != 1 or vec.size == 0 or not np.isfinite(vec).all():
            raise TransportFailure("malformed embedding response: not a finite 1-D vector")
        if self.dim is not None and vec.shape[0] != self.dim:
            raise EmbeddingError(
                f"embedding API returned {vec.shape[0]} dimensions, expected {self.dim}"
            )
        return l2_normalize(vec)
