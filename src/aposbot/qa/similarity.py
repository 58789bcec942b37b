"""Cosine similarity between embedding vectors."""

import math
from collections.abc import Sequence


class DimensionMismatchError(ValueError):
    """Raised when two vectors of different length are compared."""

    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute the cosine similarity of two vectors.

    Args:
        a: First vector.
        b: Second vector, same length as ``a``.

    Returns:
        Similarity in [-1, 1]. 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Vectors must have the same dimensions (got {len(a)} and {len(b)})"
        )

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    # Rounding can push parallel vectors slightly past the bounds
    return max(-1.0, min(1.0, similarity))
