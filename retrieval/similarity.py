"""Vector similarity scoring."""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero magnitude."""
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class SimilarityIndex(ABC):
    """Ranks stored vectors against a query vector."""

    @abstractmethod
    def rank(
        self,
        query_vector: Sequence[float],
        vectors: Sequence[Sequence[float]],
        limit: int
    ) -> List[Tuple[int, float]]:
        """
        Return up to ``limit`` (position, score) pairs, best first.

        Equal scores keep the order of ``vectors``.
        """
        pass


class FlatIndex(SimilarityIndex):
    """Exhaustive scan scoring every vector. O(n) per query."""

    def rank(
        self,
        query_vector: Sequence[float],
        vectors: Sequence[Sequence[float]],
        limit: int
    ) -> List[Tuple[int, float]]:
        if limit <= 0 or len(vectors) == 0:
            return []

        matrix = np.asarray(vectors, dtype=float)
        query = np.asarray(query_vector, dtype=float)
        if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
            raise ValueError(
                f"Query dimension {query.shape[0]} does not match stored dimension "
                f"{matrix.shape[1] if matrix.ndim == 2 else 'mixed'}"
            )

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.zeros(len(vectors), dtype=float)
        nonzero = norms > 0
        scores[nonzero] = dots[nonzero] / norms[nonzero]

        order = np.argsort(-scores, kind="stable")[:limit]
        return [(int(i), float(scores[i])) for i in order]
