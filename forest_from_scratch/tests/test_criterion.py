import numpy as np
import pytest

from forest_from_scratch.criterion import (
    entropy_impurity,
    gini_impurity,
    label_impurity,
    node_impurity,
    prefix_split_impurity,
    split_impurity,
)


def test_gini_impurity_values():
    """Gini = 1 - Σ p²"""
    assert gini_impurity([5, 5]) == pytest.approx(0.5)
    assert gini_impurity([4, 0]) == pytest.approx(0.0)
    assert gini_impurity([3, 1]) == pytest.approx(0.375)


def test_empty_group_contributes_zero():
    assert gini_impurity([0, 0]) == 0.0
    assert entropy_impurity([0, 0, 0]) == 0.0
    assert split_impurity([0, 0], [3, 1]) == pytest.approx(0.375)
    assert split_impurity([0, 0], [0, 0]) == 0.0


def test_entropy_impurity_values():
    assert entropy_impurity([2, 2]) == pytest.approx(1.0)
    assert entropy_impurity([4, 0]) == pytest.approx(0.0)
    assert entropy_impurity([1, 1, 1, 1]) == pytest.approx(2.0)


def test_split_impurity_is_weighted_by_group_size():
    assert split_impurity([2, 0], [0, 2]) == pytest.approx(0.0)
    assert split_impurity([1, 1], [1, 1]) == pytest.approx(0.5)
    # (1/4) * 0 + (3/4) * (1 - 1/9 - 4/9)
    assert split_impurity([1, 0], [1, 2]) == pytest.approx(1 / 3)


def test_split_impurity_vectorized_over_candidates():
    left = np.array([[2, 0], [1, 1], [0, 0]])
    right = np.array([[0, 2], [1, 1], [2, 2]])

    scores = split_impurity(left, right)

    np.testing.assert_allclose(scores, [0.0, 0.5, 0.5])


def test_criterion_is_deterministic():
    counts = np.array([3, 7, 2])
    assert node_impurity(counts, 'gini') == node_impurity(counts.copy(), 'gini')
    assert node_impurity(counts, 'entropy') == node_impurity(counts.copy(), 'entropy')


def test_unknown_criterion_raises():
    with pytest.raises(ValueError):
        node_impurity([1, 1], 'mse')


def test_label_impurity_from_raw_labels():
    assert label_impurity(['a', 'b', 'a', 'b']) == pytest.approx(0.5)
    assert label_impurity([7, 7, 7]) == pytest.approx(0.0)
    assert label_impurity([]) == 0.0
    assert label_impurity(['a', 'b'], criterion='entropy') == pytest.approx(1.0)


@pytest.mark.parametrize('criterion', ['gini', 'entropy'])
def test_prefix_split_impurity_matches_explicit_counts(criterion):
    """누적 계산이 접두사마다 클래스 개수를 직접 센 결과와 같아야 한다"""
    rng = np.random.default_rng(4)
    codes = rng.integers(0, 5, size=40)
    totals = np.bincount(codes, minlength=5)

    onehot = np.eye(5)[codes]
    left = np.cumsum(onehot, axis=0)
    expected = split_impurity(left, totals[None, :] - left, criterion)

    np.testing.assert_allclose(prefix_split_impurity(codes, totals, criterion), expected, atol=1e-12)


def test_prefix_split_impurity_many_classes():
    # 모든 샘플이 다른 클래스면 어느 위치에서 잘라도 같은 점수
    n = 500
    scores = prefix_split_impurity(np.arange(n), np.ones(n), 'gini')

    np.testing.assert_allclose(scores[:-1], (n - 2) / n)
    assert scores[-1] == pytest.approx(1 - 1 / n)


def test_prefix_split_impurity_unknown_criterion():
    with pytest.raises(ValueError):
        prefix_split_impurity([0, 1], [1, 1], 'mse')
