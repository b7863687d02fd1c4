"""Vector math used to score feature vectors against each other."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Union

import numpy as np

from .exceptions import DimensionMismatchException

VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(values: VectorLike) -> np.ndarray:
    """Convert a sequence of numbers to a float64 numpy vector."""
    return np.asarray(values, dtype=np.float64)


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two equal-length vectors.

    A zero vector has similarity 0.0 to every vector, itself included.
    The result is not clamped, so rounding error may put it marginally
    outside [-1, 1].

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|)

    Raises:
        DimensionMismatchException: If the vectors differ in length
    """
    vec_a = as_vector(a)
    vec_b = as_vector(b)

    if vec_a.ndim != 1 or vec_b.ndim != 1 or vec_a.shape != vec_b.shape:
        raise DimensionMismatchException(expected=vec_a.size, actual=vec_b.size)

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(vec_a, vec_b)) / (norm_a * norm_b)


def round_score(value: float, places: int = 2) -> float:
    """
    Round half away from zero to a number of decimal places.

    Works on the shortest decimal form of the float, so 0.125 becomes
    0.13 and -0.125 becomes -0.13.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def to_display_score(value: float) -> float:
    """Clamp a raw cosine similarity into [0, 1] and round it to two places."""
    return round_score(min(max(value, 0.0), 1.0))
