# mealsearch/embedders.py
from __future__ import annotations

"""
Local ONNX embedders.

Every embedder exposes ``embed(text) -> np.ndarray`` (float32, L2-normalised,
fixed dimension per model).  Local variants share one pipeline:

    prefix -> tokenize -> truncate/pad to max_len -> ONNX forward
           -> masked mean pooling -> L2 normalisation

They differ only in tokenizer source, instruction prefix, ``max_len`` and
output dimension.  The remote variant lives in ``remote_embed``.
"""

from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
import onnxruntime as ort
from loguru import logger
from tokenizers import BertWordPieceTokenizer, Tokenizer

from . import config
from .errors import EmbeddingError
from .pipeline_types import TokenEncoding
from .pooling import l2_normalize, masked_mean_pool, pad_encoding


@runtime_checkable
class Embedder(Protocol):
    """Anything that turns text into a fixed-length normalised vector."""

    dim: int

    def embed(self, text: str) -> np.ndarray:
        ...


# ---------------------------------------------------------------------------
# Artifact loading
# ---------------------------------------------------------------------------

def load_tokenizer(model_dir: Path):
    """
    Load ``tokenizer.json`` if present, else a WordPiece ``vocab.txt``.
    Tokenizer-level padding is disabled; padding is applied in ``pad_encoding``.
    """
    tok_json = model_dir / "tokenizer.json"
    vocab = model_dir / "vocab.txt"
    if tok_json.exists():
        logger.info("Loading tokenizer from {}", tok_json)
        tok = Tokenizer.from_file(str(tok_json))
    elif vocab.exists():
        logger.info("Loading WordPiece vocabulary from {}", vocab)
        tok = BertWordPieceTokenizer(str(vocab), lowercase=True)
    else:
        raise FileNotFoundError(f"No tokenizer.json or vocab.txt in {model_dir}")
    tok.no_padding()
    return tok


def load_session(model_path: Path) -> ort.InferenceSession:
    if not model_path.exists():
        raise FileNotFoundError(f"ONNX model not found at {model_path}")
    logger.info("Loading ONNX model: {}", model_path)
    return ort.InferenceSession(str(model_path), providers=["CPUExecutionProvider"])


# ---------------------------------------------------------------------------
# Local embedders
# ---------------------------------------------------------------------------

class OnnxEmbedder:
    """
    Mean-pooled sentence embedder over an ONNX transformer encoder.

    ``session`` needs ``run(output_names, feeds)`` and ``get_inputs()``;
    ``tokenizer`` needs ``encode(text)`` returning ``.ids`` and
    ``.attention_mask``.
    """

    instruction: str = ""
    max_len: int = 512
    dim: int = 384

    def __init__(self, session, tokenizer, *, max_len: Optional[int] = None, dim: Optional[int] = None):
        self.session = session
        self.tokenizer = tokenizer
        if max_len is not None:
            self.max_len = max_len
        if dim is not None:
            self.dim = dim
        input_names = {i.name for i in session.get_inputs()}
        self._needs_token_types = "token_type_ids" in input_names

    @classmethod
    def from_dir(cls, model_dir: Path, **kwargs) -> "OnnxEmbedder":
        return cls(load_session(model_dir / "model.onnx"), load_tokenizer(model_dir), **kwargs)

    def prompt(self, text: str) -> str:
        return f"{self.instruction}{text}" if self.instruction else text

    def encode(self, text: str) -> TokenEncoding:
        try:
            enc = self.tokenizer.encode(self.prompt(text))
        except Exception as e:
            raise EmbeddingError(f"{type(self).__name__}: tokenisation failed: {e}") from e
        return pad_encoding(enc.ids, enc.attention_mask, self.max_len)

    def _feeds(self, encoding: TokenEncoding) -> Dict[str, np.ndarray]:
        shape: Tuple[int, int] = (1, self.max_len)
        feeds = {
            "input_ids": encoding.ids.reshape(shape),
            "attention_mask": encoding.attention_mask.reshape(shape),
        }
        if self._needs_token_types:
            feeds["token_type_ids"] = np.zeros(shape, dtype=np.int64)
        return feeds

    def embed(self, text: str) -> np.ndarray:
        encoding = self.encode(text)
        try:
            outputs = self.session.run(None, self._feeds(encoding))
        except Exception as e:
            raise EmbeddingError(f"{type(self).__name__}: inference failed: {e}") from e

        hidden = np.asarray(outputs[0])
        if hidden.ndim != 3 or hidden.shape[1] != self.max_len or hidden.shape[-1] != self.dim:
            raise EmbeddingError(
                f"{type(self).__name__}: expected hidden state (1, {self.max_len}, {self.dim}), "
                f"got {hidden.shape}"
            )
        pooled = masked_mean_pool(hidden, encoding.attention_mask)
        return l2_normalize(pooled)


class BgeEmbedder(OnnxEmbedder):
    """bge-small-en-v1.5: retrieval instruction prefix, 512 tokens."""

    instruction = config.BGE_QUERY_INSTRUCTION
    max_len = config.BGE_MAX_LEN
    dim = config.BGE_DIM


class MiniLmEmbedder(OnnxEmbedder):
    """all-MiniLM-L6-v2: raw text, 256 tokens."""

    max_len = config.MINILM_MAX_LEN
    dim = config.MINILM_DIM
