import numpy as np
import pytest

from forest_from_scratch import ShapeError
from forest_from_scratch.tree_builder import (
    DecisionTreeBuilder,
    TreeBuilderParams,
    encode_labels,
    majority_label,
    resolve_max_features,
)


def _build(X, y, seed=0, **kwargs):
    return DecisionTreeBuilder().build(X, y, np.random.default_rng(seed), **kwargs)


def test_identical_labels_give_single_leaf():
    """모든 레이블이 같으면 분할 없이 리프 하나"""
    tree = _build([[1, 9], [2, 8], [3, 7]], [5, 5, 5])

    assert len(tree) == 1
    assert tree.root_node.is_leaf()
    assert tree.root_node.prediction == 5
    assert tree.root_node.class_distribution == {5: 3}


def test_single_row_gives_leaf():
    tree = _build([[1.0, 2.0]], ['only'])

    assert len(tree) == 1
    assert tree.root_node.prediction == 'only'


def test_no_improving_split_gives_leaf_with_first_seen_tie_break():
    # 모든 행이 같으면 어떤 분할도 불순도를 줄이지 못한다
    tree = _build([[1, 1]] * 4, ['b', 'a', 'a', 'b'])

    leaf = tree.root_node
    assert leaf.is_leaf()
    assert leaf.prediction == 'b'
    assert leaf.class_counts == (('b', 2), ('a', 2))


def test_leaf_prediction_is_majority_label():
    # 오른쪽 리프는 분리 불가능한 행 세 개 (c, d, d)
    X = [[0], [5], [5], [5]]
    y = ['a', 'c', 'd', 'd']
    tree = _build(X, y)

    right = tree[tree.root_node.right]
    assert right.is_leaf()
    assert right.prediction == 'd'
    assert right.class_distribution == {'c': 1, 'd': 2}


def test_majority_label_helper():
    assert majority_label(['x', 'y', 'y']) == ('y', (('x', 1), ('y', 2)))
    assert majority_label([3, 1, 1, 3])[0] == 3

    with pytest.raises(ValueError):
        majority_label([])


def test_encode_labels_first_seen_order():
    classes, codes = encode_labels(['b', 'a', 'b', 'c'])

    assert classes == ['b', 'a', 'c']
    np.testing.assert_array_equal(codes, [0, 1, 0, 2])


def test_threshold_is_observed_value():
    tree = _build([[1.0], [3.0]], ['a', 'b'])

    root = tree.root_node
    assert not root.is_leaf()
    assert root.threshold == 1.0


def test_feature_tie_broken_by_lowest_index():
    # 두 피처 모두 완벽한 분할
    X = [[0, 0], [0, 0], [1, 1], [1, 1]]
    tree = _build(X, ['a', 'a', 'b', 'b'])

    assert tree.root_node.feature_index == 0
    assert tree.root_node.threshold == 0.0


def test_threshold_tie_broken_by_lowest_value():
    # 임계값 0과 2의 점수가 1/3로 동일
    tree = _build([[0], [1], [2], [3]], ['a', 'b', 'b', 'a'])

    assert tree.root_node.feature_index == 0
    assert tree.root_node.threshold == 0.0


def test_children_stored_before_parent():
    rng = np.random.default_rng(3)
    X = rng.normal(size=(40, 3))
    y = (X[:, 0] + X[:, 1] > 0).astype(int)

    tree = _build(X, y)

    assert tree.root == len(tree) - 1
    for index, node in enumerate(tree.nodes):
        if not node.is_leaf():
            assert node.left < index
            assert node.right < index


def test_fully_grown_tree_fits_training_data():
    rng = np.random.default_rng(11)
    X = rng.normal(size=(50, 4))
    y = list(rng.integers(0, 3, size=50))

    tree = _build(X, y)
    predictions = [tree.predict_row(row) for row in X]

    assert predictions == y


def test_same_seed_gives_same_tree():
    rng = np.random.default_rng(5)
    X = rng.normal(size=(60, 6))
    y = (X[:, 2] > 0).astype(int) + (X[:, 4] > 0.5).astype(int)

    first = _build(X, y, seed=123, randomize_features=True, max_features=2)
    second = _build(X, y, seed=123, randomize_features=True, max_features=2)

    assert first.to_dict() == second.to_dict()


def test_build_does_not_mutate_inputs():
    X = np.array([[3.0, 1.0], [1.0, 2.0], [2.0, 0.0]])
    y = np.array(['a', 'b', 'a'])
    X_before, y_before = X.copy(), y.copy()

    _build(X, y)

    np.testing.assert_array_equal(X, X_before)
    np.testing.assert_array_equal(y, y_before)


def test_max_depth_limits_tree():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(80, 3))
    y = rng.integers(0, 4, size=80)

    builder = DecisionTreeBuilder(TreeBuilderParams(max_depth=2))
    tree = builder.build(X, y, np.random.default_rng(0))

    assert tree.get_depth() <= 2


def test_min_samples_leaf_respected():
    rng = np.random.default_rng(1)
    X = rng.normal(size=(60, 2))
    y = rng.integers(0, 2, size=60)

    builder = DecisionTreeBuilder(TreeBuilderParams(min_samples_leaf=5))
    tree = builder.build(X, y, np.random.default_rng(0))

    assert all(leaf.n_samples >= 5 for leaf in tree.leaves())


@pytest.mark.parametrize('X, y', [
    ([], []),
    ([[1, 2], [3, 4]], [1]),
    ([[1, 2], [3]], [0, 1]),
])
def test_invalid_shapes_fail_before_building(X, y):
    with pytest.raises(ShapeError):
        _build(X, y)


def test_builder_params_validation():
    with pytest.raises(ValueError):
        TreeBuilderParams(criterion='mse')
    with pytest.raises(ValueError):
        TreeBuilderParams(min_samples_split=1)
    with pytest.raises(ValueError):
        TreeBuilderParams(min_samples_leaf=0)


def test_resolve_max_features():
    assert resolve_max_features(None, 7) == 7
    assert resolve_max_features('sqrt', 16) == 4
    assert resolve_max_features('log2', 8) == 3
    assert resolve_max_features(0.5, 10) == 5
    assert resolve_max_features(20, 5) == 5
    assert resolve_max_features('sqrt', 2) == 1

    for bad in (0, -1, 0.0, 1.5, 'half', True):
        with pytest.raises(ValueError):
            resolve_max_features(bad, 4)
