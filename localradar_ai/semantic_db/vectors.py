"""
Embedding vectors
-----------------
Embedding providers do not agree on a response shape. A raw response is
classified into one of four known shapes, each with its own flattening
rule, and reduced to a flat list of floats:

    FlatEmbedding        [0.1, 0.2, ...]
    NestedEmbedding      [[0.1, 0.2], [0.3, ...]]      (sub-sequences concatenated)
    StructuredEmbedding  {"last_hidden_state": [...]}  (most relevant field used)
    OpaqueEmbedding      {"a": 0.1, "b": {"c": 0.2}}   (numeric leaves, sorted keys)

cosine_similarity() compares two vectors over their common prefix.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

EmbeddingVector = List[float]

# Payload fields that carry the embedding, most relevant first
STRUCTURED_FIELDS = ("last_hidden_state", "embedding", "embeddings", "values", "vector", "data")


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _flatten(value: Any, out: List[float]) -> None:
    """Append every numeric leaf of value to out, depth-first."""
    if _is_number(value):
        out.append(float(value))
    elif _is_sequence(value):
        for v in value:
            _flatten(v, out)
    elif isinstance(value, Mapping):
        for key in sorted(value, key=str):
            _flatten(value[key], out)


@dataclass(frozen=True)
class FlatEmbedding:
    values: Sequence[Any]

    def vector(self) -> Optional[EmbeddingVector]:
        return [float(v) for v in self.values]


@dataclass(frozen=True)
class NestedEmbedding:
    values: Sequence[Any]

    def vector(self) -> Optional[EmbeddingVector]:
        out: List[float] = []
        for sub in self.values:
            _flatten(sub, out)
        return out or None


@dataclass(frozen=True)
class StructuredEmbedding:
    field: str
    payload: Mapping[str, Any]

    def vector(self) -> Optional[EmbeddingVector]:
        return normalize_embedding(self.payload[self.field])


@dataclass(frozen=True)
class OpaqueEmbedding:
    payload: Mapping[str, Any]

    def vector(self) -> Optional[EmbeddingVector]:
        out: List[float] = []
        _flatten(self.payload, out)
        return out or None


RawEmbedding = Union[FlatEmbedding, NestedEmbedding, StructuredEmbedding, OpaqueEmbedding]


def classify_embedding(raw: Any) -> Optional[RawEmbedding]:
    """Tag a raw provider response with its shape, or None if it has no numeric data."""
    if raw is None:
        return None

    # numpy arrays and similar
    if not isinstance(raw, (str, bytes, Mapping)) and hasattr(raw, "tolist"):
        raw = raw.tolist()

    if _is_sequence(raw):
        if not raw:
            return None
        if all(_is_number(v) for v in raw):
            return FlatEmbedding(raw)
        return NestedEmbedding(raw)

    if isinstance(raw, Mapping):
        for name in STRUCTURED_FIELDS:
            value = raw.get(name)
            if value is not None and classify_embedding(value) is not None:
                return StructuredEmbedding(name, raw)
        return OpaqueEmbedding(raw)

    return None


def normalize_embedding(raw: Any) -> Optional[EmbeddingVector]:
    """
    Reduce a provider response to a flat vector. Returns None when no
    numeric data can be located; callers skip the item in that case.
    """
    tagged = classify_embedding(raw)
    if tagged is None:
        logger.warning(f"Could not extract a vector from embedding of type {type(raw).__name__}")
        return None
    vector = tagged.vector()
    if not vector:
        logger.warning(f"{type(tagged).__name__} contained no numeric values")
        return None
    return vector


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity over the first min(len(a), len(b)) dimensions.
    Returns 0.0 for missing or zero-magnitude vectors; the result is
    clamped to [-1, 1].
    """
    if not a or not b:
        return 0.0

    n = min(len(a), len(b))
    if len(a) != len(b):
        logger.debug(f"Comparing vectors of different dimensions ({len(a)} vs {len(b)}), using first {n}")

    dot = mag_a = mag_b = 0.0
    for i in range(n):
        x, y = a[i], b[i]
        dot += x * y
        mag_a += x * x
        mag_b += y * y

    if mag_a == 0 or mag_b == 0:
        return 0.0

    similarity = dot / (math.sqrt(mag_a) * math.sqrt(mag_b))
    if not math.isfinite(similarity):
        return 0.0
    return max(-1.0, min(1.0, similarity))
