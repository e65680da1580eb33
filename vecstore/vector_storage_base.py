"""Interfaces shared by vector storages and their scorers."""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np

from vecstore.spaces import VectorLike


def _score_key(score: float) -> tuple[bool, float]:
    # NaN sorts above every number, as a total float order would place it.
    if math.isnan(score):
        return (True, 0.0)
    return (False, score)


@dataclass(frozen=True)
class ScoredPointOffset:
    """An internal point offset with its score; ordered by score only."""

    idx: int
    score: float

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ScoredPointOffset):
            return NotImplemented
        return _score_key(self.score) < _score_key(other.score)

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ScoredPointOffset):
            return NotImplemented
        return _score_key(self.score) <= _score_key(other.score)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ScoredPointOffset):
            return NotImplemented
        return _score_key(self.score) > _score_key(other.score)

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ScoredPointOffset):
            return NotImplemented
        return _score_key(self.score) >= _score_key(other.score)


class RawScorer(ABC):
    """Scores stored points against one fixed query."""

    @abstractmethod
    def score_points(self, points: Iterable[int]) -> Iterator[ScoredPointOffset]:
        """Score the given points, skipping deleted ones."""

    @abstractmethod
    def check_point(self, point: int) -> bool:
        """True if the point exists and is not deleted."""

    @abstractmethod
    def score_point(self, point: int) -> float:
        """Score the stored vector under ``point`` against the query."""

    @abstractmethod
    def score_internal(self, point_a: int, point_b: int) -> float:
        """Score two stored vectors against each other."""


class VectorStorage(ABC):
    """Storage of vectors addressed by internal offsets starting at zero, without gaps."""

    @abstractmethod
    def vector_dim(self) -> int:
        """Dimension of the stored vectors."""

    @abstractmethod
    def vector_count(self) -> int:
        """Number of searchable (not deleted) vectors."""

    @abstractmethod
    def deleted_count(self) -> int:
        """Number of vectors marked as deleted but still stored."""

    @abstractmethod
    def total_vector_count(self) -> int:
        """Number of all stored vectors, deleted included."""

    @abstractmethod
    def get_vector(self, key: int) -> np.ndarray | None:
        """A copy of the vector under ``key``; None if missing or deleted."""

    @abstractmethod
    def put_vector(self, vector: VectorLike) -> int:
        """Append a vector and return its offset."""

    @abstractmethod
    def update_vector(self, key: int, vector: VectorLike) -> int:
        """Replace the vector under ``key`` and return the key."""

    @abstractmethod
    def update_from(self, other: VectorStorage) -> range:
        """Append all live vectors of ``other``; return the range of new offsets."""

    @abstractmethod
    def delete(self, key: int) -> None:
        """Mark the vector under ``key`` as deleted."""

    @abstractmethod
    def is_deleted(self, key: int) -> bool:
        """Whether the vector under ``key`` is marked as deleted."""

    @abstractmethod
    def iter_ids(self) -> Iterator[int]:
        """Offsets of the vectors that are not deleted, in increasing order."""

    @abstractmethod
    def flush(self) -> None:
        """Persist pending changes."""

    @abstractmethod
    def raw_scorer(self, vector: VectorLike) -> RawScorer:
        """A scorer for ``vector``, preprocessed by the storage metric."""

    @abstractmethod
    def raw_scorer_internal(self, point_id: int) -> RawScorer:
        """A scorer whose query is the stored vector under ``point_id``."""

    @abstractmethod
    def score_points(
        self, vector: VectorLike, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        """Best ``top`` of the given points for ``vector``, best first."""

    @abstractmethod
    def score_all(self, vector: VectorLike, top: int) -> list[ScoredPointOffset]:
        """Best ``top`` of all live points for ``vector``, best first."""

    @abstractmethod
    def score_internal(
        self, point: int, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        """Best ``top`` of the given points for the stored vector under ``point``."""

    def sample_ids(self) -> Iterator[int]:
        """Random offsets of live vectors, drawn as many times as there are stored vectors."""
        total = self.total_vector_count()
        for _ in range(total):
            candidate = random.randrange(total)
            if not self.is_deleted(candidate):
                yield candidate