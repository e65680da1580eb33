import math

import pytest

from vecstore.simple_vector_storage import SimpleVectorStorage
from vecstore.tools import peek_top_scores
from vecstore.types import Distance
from vecstore.vector_storage_base import ScoredPointOffset


def test_ordering():
    assert ScoredPointOffset(idx=10, score=0.9) > ScoredPointOffset(idx=20, score=0.6)


def test_ordering_ignores_idx_but_equality_does_not():
    a = ScoredPointOffset(idx=1, score=0.5)
    b = ScoredPointOffset(idx=2, score=0.5)
    assert a <= b and b <= a
    assert not a < b
    assert a != b
    assert a == ScoredPointOffset(idx=1, score=0.5)


def test_nan_sorts_above_numbers():
    assert ScoredPointOffset(1, math.nan) > ScoredPointOffset(2, 1e30)


def test_top_selection_uses_score_order():
    points = [ScoredPointOffset(i, s) for i, s in enumerate([0.1, 0.9, 0.4, 0.7])]
    assert [p.idx for p in peek_top_scores(points, 2)] == [1, 3]


@pytest.fixture
def storage(tmp_path):
    with SimpleVectorStorage.open(tmp_path / "store", 2, Distance.DOT) as opened:
        yield opened


def test_sample_ids_skip_deleted(storage):
    for i in range(6):
        storage.put_vector([float(i), 1.0])
    storage.delete(1)
    storage.delete(4)
    samples = list(storage.sample_ids())
    assert len(samples) <= 6
    assert all(0 <= s < 6 for s in samples)
    assert not {1, 4} & set(samples)


def test_sample_ids_empty(storage):
    assert list(storage.sample_ids()) == []


def test_sample_ids_all_deleted(storage):
    storage.put_vector([1.0, 1.0])
    storage.delete(0)
    assert list(storage.sample_ids()) == []