"""Top-k selection helpers and metric lookup."""

from __future__ import annotations

import heapq
from typing import Generic, Iterable, Iterator, Protocol, Sequence, TypeVar

from vecstore.spaces import CosineMetric, DotProductMetric, EuclidMetric, Metric
from vecstore.types import Distance


class _Ordered(Protocol):
    def __lt__(self, other: object, /) -> bool: ...


T = TypeVar("T", bound=_Ordered)


class FixedLengthPriorityQueue(Generic[T]):
    """Keeps the ``length`` largest values pushed so far; the smallest is evicted first."""

    def __init__(self, length: int) -> None:
        if length <= 0:
            raise ValueError("queue length must be positive")
        self._length = length
        self._heap: list[T] = []

    def push(self, value: T) -> T | None:
        """Add a value; return the value that no longer fits, if any."""
        if len(self._heap) < self._length:
            heapq.heappush(self._heap, value)
            return None
        if self._heap[0] < value:
            return heapq.heapreplace(self._heap, value)
        return value

    def into_vec(self) -> list[T]:
        """Held values, largest first."""
        return sorted(self._heap, reverse=True)

    def top(self) -> T | None:
        """The smallest held value, the next one to be evicted."""
        return self._heap[0] if self._heap else None

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self) -> Iterator[T]:
        return iter(self.into_vec())


def peek_top_scores_iterable(scores: Iterable[T], top: int) -> list[T]:
    """The ``top`` largest scores, largest first; all scores unchanged when ``top`` is 0."""
    if top == 0:
        return list(scores)
    queue: FixedLengthPriorityQueue[T] = FixedLengthPriorityQueue(top)
    for score in scores:
        queue.push(score)
    return queue.into_vec()


def peek_top_scores(scores: Sequence[T], top: int) -> list[T]:
    return peek_top_scores_iterable(iter(scores), top)


_METRICS: dict[Distance, type[Metric]] = {
    Distance.COSINE: CosineMetric,
    Distance.EUCLID: EuclidMetric,
    Distance.DOT: DotProductMetric,
}


def metric_object(distance: Distance) -> Metric:
    """The metric implementing ``distance``."""
    return _METRICS[distance]()