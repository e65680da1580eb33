"""In-memory vector storage persisted to an SQLite key-value table."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Iterable, Iterator

import numpy as np

from vecstore.spaces import Metric, VectorLike
from vecstore.tools import metric_object, peek_top_scores_iterable
from vecstore.types import Distance
from vecstore.vector_storage_base import RawScorer, ScoredPointOffset, VectorStorage

logger = logging.getLogger(__name__)

_DB_FILE = "vectors.sqlite"
_DTYPE = np.dtype("<f4")


def _flag(deleted: list[bool], point: int) -> bool:
    if point < 0:
        raise IndexError(f"point offset {point} is negative")
    return deleted[point]


def _to_vector(vector: VectorLike) -> np.ndarray:
    return np.array(vector, dtype=np.float32)


@dataclass(eq=False)
class SimpleRawScorer(RawScorer):
    """Scorer over the live vectors of a :class:`SimpleVectorStorage`."""

    query: np.ndarray
    metric: Metric
    vectors: list[np.ndarray]
    deleted: list[bool]

    def score_points(self, points: Iterable[int]) -> Iterator[ScoredPointOffset]:
        for point in points:
            if not _flag(self.deleted, point):
                yield ScoredPointOffset(
                    point, self.metric.blas_similarity(self.query, self.vectors[point])
                )

    def check_point(self, point: int) -> bool:
        return 0 <= point < len(self.vectors) and not self.deleted[point]

    def score_point(self, point: int) -> float:
        return self.metric.blas_similarity(self.query, self.vectors[point])

    def score_internal(self, point_a: int, point_b: int) -> float:
        return self.metric.blas_similarity(self.vectors[point_a], self.vectors[point_b])


class SimpleVectorStorage(VectorStorage):
    """Keeps all vectors in RAM and writes every change through to disk."""

    def __init__(
        self,
        dim: int,
        metric: Metric,
        vectors: list[np.ndarray],
        deleted: list[bool],
        deleted_count: int,
        store: sqlite3.Connection,
    ) -> None:
        self._dim = dim
        self._metric = metric
        self._vectors = vectors
        self._deleted = deleted
        self._deleted_count = deleted_count
        self._store = store

    @classmethod
    def open(cls, path: str | Path, dim: int, distance: Distance) -> SimpleVectorStorage:
        """Open the storage in directory ``path``, creating it when missing."""
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)
        store = sqlite3.connect(str(directory / _DB_FILE), check_same_thread=False)
        store.execute(
            "CREATE TABLE IF NOT EXISTS vectors ("
            "id INTEGER PRIMARY KEY, deleted INTEGER NOT NULL, vector BLOB NOT NULL)"
        )
        store.commit()

        vectors: list[np.ndarray] = []
        deleted: list[bool] = []
        deleted_count = 0
        for point_id, is_deleted, blob in store.execute(
            "SELECT id, deleted, vector FROM vectors ORDER BY id"
        ):
            vector = np.frombuffer(blob, dtype=_DTYPE).astype(np.float32)
            if vector.shape != (dim,):
                store.close()
                raise ValueError(
                    f"stored vector {point_id} has {vector.size} elements, expected {dim}"
                )
            if is_deleted:
                deleted_count += 1
            while len(vectors) <= point_id:
                vectors.append(np.zeros(dim, dtype=np.float32))
                deleted.append(False)
            deleted[point_id] = bool(is_deleted)
            vectors[point_id] = vector

        logger.debug("Segment vectors: %d", len(vectors))
        logger.debug(
            "Estimated segment size %d MB", len(vectors) * dim * _DTYPE.itemsize // 1024 // 1024
        )
        return cls(dim, metric_object(distance), vectors, deleted, deleted_count, store)

    def close(self) -> None:
        """Commit pending writes and release the underlying database."""
        self._store.commit()
        self._store.close()

    def __enter__(self) -> SimpleVectorStorage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _update_stored(self, point_ids: Iterable[int]) -> None:
        rows = [
            (
                point_id,
                int(self._deleted[point_id]),
                self._vectors[point_id].astype(_DTYPE).tobytes(),
            )
            for point_id in point_ids
        ]
        self._store.executemany(
            "INSERT OR REPLACE INTO vectors (id, deleted, vector) VALUES (?, ?, ?)", rows
        )
        self._store.commit()

    def _checked(self, vector: VectorLike) -> np.ndarray:
        values = _to_vector(vector)
        if values.shape != (self._dim,):
            raise ValueError(f"vector must have {self._dim} elements, got shape {values.shape}")
        return values

    def _query(self, vector: VectorLike) -> np.ndarray:
        processed = self._metric.preprocess(vector)
        return _to_vector(vector) if processed is None else processed

    def vector_dim(self) -> int:
        return self._dim

    def vector_count(self) -> int:
        return len(self._vectors) - self._deleted_count

    def deleted_count(self) -> int:
        return self._deleted_count

    def total_vector_count(self) -> int:
        return len(self._vectors)

    def get_vector(self, key: int) -> np.ndarray | None:
        if key < 0 or key >= len(self._deleted) or self._deleted[key]:
            return None
        return self._vectors[key].copy()

    def put_vector(self, vector: VectorLike) -> int:
        values = self._checked(vector)
        self._vectors.append(values)
        self._deleted.append(False)
        new_id = len(self._vectors) - 1
        self._update_stored([new_id])
        return new_id

    def update_vector(self, key: int, vector: VectorLike) -> int:
        if not 0 <= key < len(self._vectors):
            raise IndexError(f"point offset {key} is out of range")
        self._vectors[key] = self._checked(vector)
        self._update_stored([key])
        return key

    def update_from(self, other: VectorStorage) -> range:
        start = len(self._vectors)
        for point_id in other.iter_ids():
            vector = other.get_vector(point_id)
            if vector is None:
                raise ValueError(f"vector {point_id} vanished from the source storage")
            # Vectors of another storage are already preprocessed.
            self._deleted.append(False)
            self._vectors.append(_to_vector(vector))
        end = len(self._vectors)
        self._update_stored(range(start, end))
        return range(start, end)

    def delete(self, key: int) -> None:
        if key < 0 or key >= len(self._deleted):
            return
        if not self._deleted[key]:
            self._deleted_count += 1
        self._deleted[key] = True
        self._update_stored([key])

    def is_deleted(self, key: int) -> bool:
        return _flag(self._deleted, key)

    def iter_ids(self) -> Iterator[int]:
        return (point for point in range(len(self._vectors)) if not self._deleted[point])

    def flush(self) -> None:
        self._store.commit()

    def raw_scorer(self, vector: VectorLike) -> SimpleRawScorer:
        return SimpleRawScorer(self._query(vector), self._metric, self._vectors, self._deleted)

    def raw_scorer_internal(self, point_id: int) -> SimpleRawScorer:
        return SimpleRawScorer(
            self._vectors[point_id].copy(), self._metric, self._vectors, self._deleted
        )

    def score_points(
        self, vector: VectorLike, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        query = self._query(vector)
        scores = (
            ScoredPointOffset(point, self._metric.blas_similarity(query, self._vectors[point]))
            for point in points
            if not _flag(self._deleted, point)
        )
        return peek_top_scores_iterable(scores, top)

    def score_all(self, vector: VectorLike, top: int) -> list[ScoredPointOffset]:
        query = self._query(vector)
        scores = (
            ScoredPointOffset(point, self._metric.blas_similarity(query, stored))
            for point, stored in enumerate(self._vectors)
            if not self._deleted[point]
        )
        return peek_top_scores_iterable(scores, top)

    def score_internal(
        self, point: int, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        vector = self.get_vector(point)
        if vector is None:
            raise ValueError(f"point {point} is missing or deleted")
        return self.score_points(vector, points, top)