from __future__ import annotations

"""
Query text normalisation.

Embedding models see the query exactly as the user typed it apart from
unicode, whitespace and length clean-up; no lower-casing or synonym
rewriting happens here because each model's tokenizer owns that.

Public helpers:

* basic_clean(text) -> str
* clamp_text_length(text) -> str
* normalize_query(text) -> str
    basic_clean + clamp, and raises InvalidQuery on blank input.
"""

import re
import unicodedata

from .config import MAX_INPUT_CHARS
from .errors import InvalidQuery


def _normalise_unicode(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\u2018", "'").replace("\u2019", "'")
    text = text.replace("\u201c", '"').replace("\u201d", '"')
    text = text.replace("\u2013", "-").replace("\u2014", "-")
    return text


def clamp_text_length(text: str, limit: int = MAX_INPUT_CHARS) -> str:
    return text if len(text) <= limit else text[:limit]


def basic_clean(text: str | None) -> str:
    """Normalise unicode and collapse whitespace."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    text = _normalise_unicode(text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def normalize_query(text: str | None) -> str:
    cleaned = clamp_text_length(basic_clean(text)).strip()
    if not cleaned:
        raise InvalidQuery("query must not be empty")
    return cleaned
