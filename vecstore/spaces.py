"""Similarity metrics between vectors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from vecstore.types import Distance

VectorLike = Sequence[float] | np.ndarray


def _as_vector(vector: VectorLike) -> np.ndarray:
    return np.asarray(vector, dtype=np.float32)


def _aligned(v1: VectorLike, v2: VectorLike) -> tuple[np.ndarray, np.ndarray]:
    a, b = _as_vector(v1), _as_vector(v2)
    length = min(len(a), len(b))
    return a[:length], b[:length]


def _dot(v1: VectorLike, v2: VectorLike) -> float:
    a, b = _aligned(v1, v2)
    return float(np.dot(a, b))


def _strict_dot(v1: VectorLike, v2: VectorLike) -> float:
    a, b = _as_vector(v1), _as_vector(v2)
    if a.shape != b.shape:
        raise ValueError(f"vector shapes differ: {a.shape} and {b.shape}")
    return float(np.dot(a, b))


def _neg_euclid(v1: VectorLike, v2: VectorLike) -> float:
    a, b = _aligned(v1, v2)
    diff = a - b
    return float(-np.sqrt(np.sum(diff * diff, dtype=np.float32)))


class Metric(ABC):
    """A similarity measure: the greater the value, the closer the vectors."""

    @abstractmethod
    def distance(self) -> Distance:
        """The distance function this metric implements."""

    @abstractmethod
    def similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        """Similarity of two vectors, over the length of the shorter one."""

    @abstractmethod
    def blas_similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        """Similarity computed with vectorised array operations."""

    @abstractmethod
    def preprocess(self, vector: VectorLike) -> np.ndarray | None:
        """Transform a vector before storing it; None when no transform is needed."""


class DotProductMetric(Metric):
    def distance(self) -> Distance:
        return Distance.DOT

    def similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _dot(v1, v2)

    def blas_similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _strict_dot(v1, v2)

    def preprocess(self, vector: VectorLike) -> np.ndarray | None:
        return None


class CosineMetric(Metric):
    """Cosine similarity: vectors are normalised on insert, then compared by dot product."""

    def distance(self) -> Distance:
        return Distance.COSINE

    def similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _dot(v1, v2)

    def blas_similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _strict_dot(v1, v2)

    def preprocess(self, vector: VectorLike) -> np.ndarray | None:
        values = _as_vector(vector)
        length = np.sqrt(np.sum(values * values, dtype=np.float32))
        with np.errstate(divide="ignore", invalid="ignore"):
            return (values / length).astype(np.float32)


class EuclidMetric(Metric):
    """Negated Euclidean distance, so that closer vectors score higher."""

    def distance(self) -> Distance:
        return Distance.EUCLID

    def similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _neg_euclid(v1, v2)

    def blas_similarity(self, v1: VectorLike, v2: VectorLike) -> float:
        return _neg_euclid(v1, v2)

    def preprocess(self, vector: VectorLike) -> np.ndarray | None:
        return None