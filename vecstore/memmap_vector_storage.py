"""Vector storage backed by memory-mapped files; vectors are only appended in bulk."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Iterable, Iterator

import numpy as np

from vecstore.mmap_vectors import MmapVectors
from vecstore.spaces import Metric, VectorLike
from vecstore.tools import metric_object, peek_top_scores_iterable
from vecstore.types import Distance
from vecstore.vector_storage_base import RawScorer, ScoredPointOffset, VectorStorage

_VECTORS_FILE = "matrix.dat"
_DELETED_FILE = "deleted.dat"
_DTYPE = np.dtype("<f4")


def _stored(store: MmapVectors, point: int) -> np.ndarray:
    vector = store.raw_vector(point)
    if vector is None:
        raise IndexError(f"point offset {point} is out of range")
    return vector


def _live(store: MmapVectors, point: int) -> bool:
    return store.deleted(point) is False


@dataclass(eq=False)
class MemmapRawScorer(RawScorer):
    """Scorer over the live vectors of a memory-mapped store."""

    query: np.ndarray
    metric: Metric
    mmap_store: MmapVectors

    def score_points(self, points: Iterable[int]) -> Iterator[ScoredPointOffset]:
        for point in points:
            if _live(self.mmap_store, point):
                yield ScoredPointOffset(
                    point, self.metric.similarity(self.query, _stored(self.mmap_store, point))
                )

    def check_point(self, point: int) -> bool:
        return 0 <= point < self.mmap_store.num_vectors and _live(self.mmap_store, point)

    def score_point(self, point: int) -> float:
        return self.metric.similarity(self.query, _stored(self.mmap_store, point))

    def score_internal(self, point_a: int, point_b: int) -> float:
        return self.metric.similarity(
            _stored(self.mmap_store, point_a), _stored(self.mmap_store, point_b)
        )


class MemmapVectorStorage(VectorStorage):
    """Vectors kept in a memory-mapped file; single puts and updates are not supported."""

    def __init__(
        self,
        vectors_path: Path,
        deleted_path: Path,
        mmap_store: MmapVectors,
        metric: Metric,
    ) -> None:
        self._vectors_path = vectors_path
        self._deleted_path = deleted_path
        self._mmap_store: MmapVectors | None = mmap_store
        self._metric = metric

    @classmethod
    def open(cls, path: str | Path, dim: int, distance: Distance) -> MemmapVectorStorage:
        """Open the storage in directory ``path``, creating it when missing."""
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)
        vectors_path = directory / _VECTORS_FILE
        deleted_path = directory / _DELETED_FILE
        store = MmapVectors.open(vectors_path, deleted_path, dim)
        return cls(vectors_path, deleted_path, store, metric_object(distance))

    def close(self) -> None:
        """Flush the deletion flags and release the mappings."""
        if self._mmap_store is not None:
            self._mmap_store.close()
            self._mmap_store = None

    def __enter__(self) -> MemmapVectorStorage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def _store(self) -> MmapVectors:
        if self._mmap_store is None:
            raise ValueError("storage is closed")
        return self._mmap_store

    def _query(self, vector: VectorLike) -> np.ndarray:
        processed = self._metric.preprocess(vector)
        return np.array(vector, dtype=np.float32) if processed is None else processed

    def vector_dim(self) -> int:
        return self._store.dim

    def vector_count(self) -> int:
        store = self._store
        return store.num_vectors - store.deleted_count

    def deleted_count(self) -> int:
        return self._store.deleted_count

    def total_vector_count(self) -> int:
        return self._store.num_vectors

    def get_vector(self, key: int) -> np.ndarray | None:
        return self._store.get_vector(key)

    def put_vector(self, vector: VectorLike) -> int:
        raise io.UnsupportedOperation("Can't put vector in mmap storage")

    def update_vector(self, key: int, vector: VectorLike) -> int:
        raise io.UnsupportedOperation("Can't directly update vector in mmap storage")

    def update_from(self, other: VectorStorage) -> range:
        dim = self.vector_dim()
        start = self._store.num_vectors
        chunks: list[bytes] = []
        for point_id in other.iter_ids():
            vector = other.get_vector(point_id)
            if vector is None:
                raise ValueError(f"vector {point_id} vanished from the source storage")
            values = np.asarray(vector, dtype=_DTYPE)
            if values.shape != (dim,):
                raise ValueError(f"vector must have {dim} elements, got shape {values.shape}")
            chunks.append(values.tobytes())
        end = start + len(chunks)

        self.close()
        try:
            with self._vectors_path.open("ab") as file:
                file.writelines(chunks)
            with self._deleted_path.open("ab") as file:
                file.write(bytes(end - start))
        finally:
            self._mmap_store = MmapVectors.open(self._vectors_path, self._deleted_path, dim)
        return range(start, end)

    def delete(self, key: int) -> None:
        self._store.delete(key)

    def is_deleted(self, key: int) -> bool:
        return bool(self._store.deleted(key))

    def iter_ids(self) -> Iterator[int]:
        store = self._store
        return (point for point in range(store.num_vectors) if not store.deleted(point))

    def flush(self) -> None:
        if self._mmap_store is not None:
            self._mmap_store.flush()

    def raw_scorer(self, vector: VectorLike) -> MemmapRawScorer:
        return MemmapRawScorer(self._query(vector), self._metric, self._store)

    def raw_scorer_internal(self, point_id: int) -> MemmapRawScorer:
        vector = self.get_vector(point_id)
        if vector is None:
            raise ValueError(f"point {point_id} is missing or deleted")
        return MemmapRawScorer(vector, self._metric, self._store)

    def score_points(
        self, vector: VectorLike, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        query = self._query(vector)
        store = self._store
        scores = (
            ScoredPointOffset(point, self._metric.similarity(query, _stored(store, point)))
            for point in points
            if _live(store, point)
        )
        return peek_top_scores_iterable(scores, top)

    def score_all(self, vector: VectorLike, top: int) -> list[ScoredPointOffset]:
        query = self._query(vector)
        store = self._store
        scores = (
            ScoredPointOffset(point, self._metric.similarity(query, _stored(store, point)))
            for point in self.iter_ids()
        )
        return peek_top_scores_iterable(scores, top)

    def score_internal(
        self, point: int, points: Iterable[int], top: int
    ) -> list[ScoredPointOffset]:
        vector = self.get_vector(point)
        if vector is None:
            raise ValueError(f"point {point} is missing or deleted")
        return self.score_points(vector, points, top)