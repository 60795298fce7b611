from __future__ import annotations

"""
Numeric helpers shared by the local embedders.

* pad_encoding(ids, mask, max_len) -> TokenEncoding
    Truncate then right-pad ids and attention mask to exactly ``max_len``.

* masked_mean_pool(hidden, mask) -> np.ndarray
    Average per-token hidden vectors over the real (mask == 1) positions.

* l2_normalize(vec) -> np.ndarray
    Scale to unit length; near-zero vectors stay finite.
"""

from typing import Sequence

import numpy as np

from .config import NORM_EPS
from .pipeline_types import TokenEncoding


def pad_encoding(
    ids: Sequence[int],
    attention_mask: Sequence[int],
    max_len: int,
) -> TokenEncoding:
    if max_len <= 0:
        raise ValueError(f"max_len must be positive, got {max_len}")
    if len(ids) != len(attention_mask):
        raise ValueError(
            f"ids and attention mask differ in length ({len(ids)} vs {len(attention_mask)})"
        )

    ids_arr = np.zeros((max_len,), dtype=np.int64)
    mask_arr = np.zeros((max_len,), dtype=np.int64)

    n = min(len(ids), max_len)
    if n:
        ids_arr[:n] = np.asarray(ids[:n], dtype=np.int64)
        mask_arr[:n] = np.asarray(attention_mask[:n], dtype=np.int64)
    return TokenEncoding(ids=ids_arr, attention_mask=mask_arr)


def masked_mean_pool(hidden: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
    """
    Mean-pool a ``(seq_len, hidden_dim)`` tensor (or ``(1, seq_len, hidden_dim)``)
    over positions where ``attention_mask == 1``.

    Returns the zero vector when no position is valid.
    """
    h = np.asarray(hidden, dtype=np.float32)
    if h.ndim == 3:
        if h.shape[0] != 1:
            raise ValueError(f"expected batch size 1, got hidden state shape {h.shape}")
        h = h[0]
    if h.ndim != 2:
        raise ValueError(f"hidden state must be (seq_len, hidden_dim), got {h.shape}")

    mask = np.asarray(attention_mask).reshape(-1)
    if mask.shape[0] != h.shape[0]:
        raise ValueError(
            f"attention mask length {mask.shape[0]} != sequence length {h.shape[0]}"
        )

    valid = mask == 1
    valid_tokens = int(valid.sum())
    if valid_tokens == 0:
        return np.zeros((h.shape[1],), dtype=np.float32)
    summed = h[valid].sum(axis=0, dtype=np.float64)
    return (summed / valid_tokens).astype(np.float32)


def l2_normalize(vec: np.ndarray, eps: float = NORM_EPS) -> np.ndarray:
    v = np.asarray(vec, dtype=np.float32)
    norm = float(np.sqrt(np.sum(v.astype(np.float64) ** 2))) + eps
    return (v / norm).astype(np.float32)
