import numpy as np
import pytest

from vecstore.simple_vector_storage import SimpleVectorStorage
from vecstore.types import Distance
from vecstore.vector_storage_base import ScoredPointOffset

VEC0 = [1.0, 0.0, 1.0, 1.0]
VEC1 = [1.0, 0.0, 1.0, 0.0]
VEC2 = [1.0, 1.0, 1.0, 1.0]
VEC3 = [1.0, 1.0, 0.0, 1.0]
VEC4 = [1.0, 0.0, 0.0, 0.0]


@pytest.fixture
def storage(tmp_path):
    with SimpleVectorStorage.open(tmp_path / "storage_dir", 4, Distance.DOT) as opened:
        yield opened


def _fill(storage):
    return [storage.put_vector(v) for v in (VEC0, VEC1, VEC2, VEC3, VEC4)]


def test_score_points(storage):
    ids = _fill(storage)
    assert ids[1] == 1
    assert ids[4] == 4

    query = [0.0, 1.0, 1.1, 1.0]
    closest = storage.score_points(query, [0, 1, 2, 3, 4], 2)
    assert closest[0].idx == 2
    top_idx = closest[0].idx

    storage.delete(top_idx)

    closest = storage.score_points(query, [0, 1, 2, 3, 4], 2)
    raw_scorer = storage.raw_scorer(query)
    raw_res1 = list(raw_scorer.score_points(iter([0, 1, 2, 3, 4])))
    raw_res2 = list(raw_scorer.score_points(iter([0, 1, 2, 3, 4])))
    assert raw_res1 == raw_res2

    assert closest[0].idx != 2
    assert raw_res1[closest[0].idx] == closest[0]

    all_ids1 = list(storage.iter_ids())
    all_ids2 = list(storage.iter_ids())
    assert all_ids1 == all_ids2
    assert top_idx not in all_ids1


def test_counts_and_get_vector(storage):
    _fill(storage)
    storage.delete(3)
    storage.delete(3)
    assert storage.vector_count() == 4
    assert storage.deleted_count() == 1
    assert storage.total_vector_count() == 5
    assert storage.vector_dim() == 4
    assert storage.get_vector(3) is None
    assert storage.get_vector(10) is None
    np.testing.assert_array_equal(storage.get_vector(1), np.array(VEC1, dtype=np.float32))
    assert storage.is_deleted(3)
    assert not storage.is_deleted(0)


def test_delete_out_of_range_is_ignored(storage):
    _fill(storage)
    storage.delete(100)
    assert storage.deleted_count() == 0


def test_put_wrong_dimension(storage):
    with pytest.raises(ValueError):
        storage.put_vector([1.0, 1.0, 1.0])
    assert storage.total_vector_count() == 0


def test_update_vector(storage):
    _fill(storage)
    assert storage.update_vector(0, [2.0, 2.0, 2.0, 2.0]) == 0
    np.testing.assert_array_equal(storage.get_vector(0), np.full(4, 2.0, dtype=np.float32))
    with pytest.raises(IndexError):
        storage.update_vector(7, VEC0)
    with pytest.raises(ValueError):
        storage.update_vector(0, [1.0])


def test_persistence(tmp_path):
    path = tmp_path / "persist"
    with SimpleVectorStorage.open(path, 4, Distance.DOT) as storage:
        _fill(storage)
        storage.delete(2)
        storage.update_vector(4, [0.0, 0.0, 0.0, 5.0])
    with SimpleVectorStorage.open(path, 4, Distance.DOT) as reopened:
        assert reopened.total_vector_count() == 5
        assert reopened.deleted_count() == 1
        assert list(reopened.iter_ids()) == [0, 1, 3, 4]
        np.testing.assert_array_equal(
            reopened.get_vector(4), np.array([0.0, 0.0, 0.0, 5.0], dtype=np.float32)
        )


def test_reopen_with_other_dimension_fails(tmp_path):
    path = tmp_path / "dims"
    with SimpleVectorStorage.open(path, 4, Distance.DOT) as storage:
        storage.put_vector(VEC0)
    with pytest.raises(ValueError):
        SimpleVectorStorage.open(path, 3, Distance.DOT)


def test_update_from(tmp_path, storage):
    with SimpleVectorStorage.open(tmp_path / "other", 4, Distance.DOT) as other:
        _fill(other)
        other.delete(1)
        storage.put_vector(VEC4)
        new_range = storage.update_from(other)
    assert new_range == range(1, 5)
    assert storage.total_vector_count() == 5
    np.testing.assert_array_equal(storage.get_vector(2), np.array(VEC2, dtype=np.float32))


def test_score_all_and_top_zero(storage):
    _fill(storage)
    best = storage.score_all(VEC2, 2)
    assert [p.idx for p in best] == [2, 0]
    assert best[0].score == pytest.approx(4.0)
    every = storage.score_points(VEC2, [4, 0], 0)
    assert [p.idx for p in every] == [4, 0]


def test_score_internal(storage):
    _fill(storage)
    res = storage.score_internal(4, [0, 1, 2, 3, 4], 1)
    assert res[0].score == pytest.approx(1.0)
    storage.delete(4)
    with pytest.raises(ValueError):
        storage.score_internal(4, [0], 1)


def test_raw_scorer_methods(storage):
    _fill(storage)
    storage.delete(1)
    scorer = storage.raw_scorer([-1.0, -1.0, -1.0, -1.0])
    assert scorer.check_point(0)
    assert not scorer.check_point(1)
    assert not scorer.check_point(5)
    assert scorer.score_point(2) == pytest.approx(-4.0)
    assert scorer.score_internal(2, 3) == pytest.approx(3.0)
    res = list(scorer.score_points([0, 1, 4]))
    assert res == [ScoredPointOffset(0, -3.0), ScoredPointOffset(4, -1.0)]


def test_raw_scorer_internal(storage):
    _fill(storage)
    scorer = storage.raw_scorer_internal(2)
    assert scorer.score_point(3) == pytest.approx(3.0)


def test_cosine_query_is_normalised(tmp_path):
    with SimpleVectorStorage.open(tmp_path / "cos", 4, Distance.COSINE) as storage:
        storage.put_vector([1.0, 0.0, 0.0, 0.0])
        scorer = storage.raw_scorer([2.0, 0.0, 0.0, 0.0])
        assert scorer.score_point(0) == pytest.approx(1.0)
        assert storage.score_all([3.0, 0.0, 0.0, 0.0], 1)[0].score == pytest.approx(1.0)