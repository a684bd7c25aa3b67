"""
Decision Tree Builder - 분할 기반 트리 구축
==========================================

CART 방식의 분류 트리 구축기.

알고리즘:
--------
1. 현재 샘플 집합의 레이블이 모두 같거나, 샘플 수 < min_samples_split 이거나,
   max_depth에 도달하면 리프 생성
2. 후보 피처 결정: 전체 피처, 또는 (randomize_features=True) rng로 뽑은 부분집합
3. 후보 피처마다, 해당 열의 고유값 각각을 임계값으로 사용:
       left  = row[feature] <= threshold
       right = row[feature] >  threshold
   분할 후 가중 불순도로 점수 계산 (criterion.prefix_split_impurity)
4. 점수가 가장 낮은 (feature, threshold) 선택.
   동점이면 먼저 만난 쪽 (feature 오름차순, threshold 오름차순)
5. 불순도 감소량 = I_parent - I_split 가 min_impurity_decrease보다
   엄격히 크지 않으면 리프
6. 왼쪽, 오른쪽 서브트리를 만든 뒤 SplitNode 추가 (작업 스택, 재귀 없음)

리프 예측:
    prediction = 다수 레이블 (동점이면 학습 순서상 먼저 등장한 레이블)

무작위성은 인자로 전달된 numpy.random.Generator 하나뿐이므로,
같은 시드는 항상 같은 트리를 만든다.

Author: ML From Scratch Project
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np

from .base import check_X_y
from .criterion import CRITERIA, node_impurity, prefix_split_impurity
from .tree_node import LeafNode, SplitNode, TreeStructure

logger = logging.getLogger(__name__)

# 부동소수점 동점 판정 허용 오차
_TIE_EPS = 1e-12


@dataclass
class TreeBuilderParams:
    criterion: str = 'gini'
    max_depth: Optional[int] = None
    min_samples_split: int = 2
    min_samples_leaf: int = 1
    min_impurity_decrease: float = 0.0

    def __post_init__(self) -> None:
        if self.criterion not in CRITERIA:
            raise ValueError(f"criterion must be one of: {', '.join(CRITERIA)}")
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("max_depth must be None or >= 0")
        if self.min_samples_split < 2:
            raise ValueError("min_samples_split must be >= 2")
        if self.min_samples_leaf < 1:
            raise ValueError("min_samples_leaf must be >= 1")
        if self.min_impurity_decrease < 0:
            raise ValueError("min_impurity_decrease must be >= 0")


def resolve_max_features(max_features: Any, n_features: int) -> int:
    """
    각 분할에서 고려할 피처 수 결정

    - None: 모든 피처
    - int: min(max_features, n_features)
    - float: 비율 (0, 1]
    - 'sqrt': sqrt(n_features)
    - 'log2': log2(n_features)
    """
    if max_features is None:
        return n_features
    if isinstance(max_features, str):
        if max_features == 'sqrt':
            return max(1, int(np.sqrt(n_features)))
        if max_features == 'log2':
            return max(1, int(np.log2(n_features)))
    elif isinstance(max_features, bool):
        pass
    elif isinstance(max_features, numbers.Integral):
        if max_features >= 1:
            return min(int(max_features), n_features)
    elif isinstance(max_features, numbers.Real):
        if 0.0 < max_features <= 1.0:
            return max(1, int(max_features * n_features))

    raise ValueError(
        f"max_features는 None, 양의 정수, (0, 1] 실수, 'sqrt', 'log2' 중 하나여야 합니다: "
        f"{max_features!r}"
    )


def encode_labels(labels: Sequence[Hashable]) -> Tuple[List[Hashable], np.ndarray]:
    """
    레이블을 처음 등장한 순서의 클래스 인덱스로 변환

    Returns
    -------
    classes : list
        처음 등장한 순서의 고유 레이블
    codes : ndarray of shape (n_samples,)
        각 샘플의 클래스 인덱스
    """
    index_of = {}
    codes = np.empty(len(labels), dtype=np.int64)

    for i, label in enumerate(labels):
        if label not in index_of:
            index_of[label] = len(index_of)
        codes[i] = index_of[label]

    return list(index_of), codes


def majority_label(labels: Sequence[Hashable]) -> Tuple[Hashable, Tuple[Tuple[Hashable, int], ...]]:
    """
    다수 레이블과 처음 등장한 순서의 클래스별 개수

    동점이면 먼저 등장한 레이블을 선택한다.
    """
    if len(labels) == 0:
        raise ValueError("빈 레이블 목록에서는 다수 레이블을 정할 수 없습니다.")

    classes, codes = encode_labels(labels)
    counts = np.bincount(codes, minlength=len(classes))
    class_counts = tuple((label, int(count)) for label, count in zip(classes, counts))

    # argmax는 최댓값 중 첫 번째 인덱스 = 가장 먼저 등장한 레이블
    return classes[int(np.argmax(counts))], class_counts


class DecisionTreeBuilder:
    """
    학습 행렬과 레이블로 TreeStructure를 만드는 구축기

    Parameters
    ----------
    params : TreeBuilderParams, optional
        불순도 기준과 정지 조건. 기본값은 깊이 제한 없는 Gini 트리.

    Examples
    --------
    >>> import numpy as np
    >>> builder = DecisionTreeBuilder()
    >>> tree = builder.build([[0], [1], [2]], ['a', 'a', 'b'], np.random.default_rng(0))
    >>> tree.root_node.feature_index
    0
    """

    def __init__(self, params: Optional[TreeBuilderParams] = None):
        self.params = params if params is not None else TreeBuilderParams()

        # build() 호출 동안만 유효한 상태
        self._X: Optional[np.ndarray] = None
        self._codes: Optional[np.ndarray] = None
        self._classes: List[Hashable] = []
        self._rng: Optional[np.random.Generator] = None
        self._n_candidates = 0
        self._randomize = False
        self._tree: Optional[TreeStructure] = None

    def build(
        self,
        X: Any,
        y: Any,
        rng: Optional[np.random.Generator] = None,
        randomize_features: bool = False,
        max_features: Any = None
    ) -> TreeStructure:
        """
        트리 구축

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
        y : array-like of shape (n_samples,)
        rng : numpy.random.Generator, optional
            피처 서브샘플링에 쓰는 난수 생성기
        randomize_features : bool
            True면 분할마다 rng로 후보 피처 부분집합을 뽑는다
        max_features : None, int, float, 'sqrt', 'log2'
            분할마다 고려할 피처 수 (randomize_features=True일 때만 의미 있음)

        Returns
        -------
        tree : TreeStructure

        Raises
        ------
        ShapeError
            빈 X, 들쭉날쭉한 행, len(X) != len(y)
        """
        X, labels = check_X_y(X, y)
        n_samples, n_features = X.shape

        self._X = X
        self._classes, self._codes = encode_labels(labels)
        self._randomize = randomize_features
        self._n_candidates = resolve_max_features(max_features, n_features) \
            if randomize_features else n_features
        if randomize_features and rng is None:
            rng = np.random.default_rng()
        self._rng = rng
        self._tree = TreeStructure()

        try:
            root = self._grow(np.arange(n_samples))
            tree = self._tree
            tree.root = root
        finally:
            self._X = None
            self._codes = None
            self._rng = None
            self._tree = None

        logger.debug(
            "트리 구축 완료: 노드 %d개, 리프 %d개, 깊이 %d",
            len(tree), tree.get_n_leaves(), tree.get_depth()
        )
        return tree

    def _class_counts(self, rows: np.ndarray) -> np.ndarray:
        return np.bincount(self._codes[rows], minlength=len(self._classes))

    def _make_leaf(self, rows: np.ndarray) -> int:
        """리프 생성. rows는 학습 순서를 유지하므로 동점 처리도 학습 순서를 따른다."""
        prediction, class_counts = majority_label(
            [self._classes[code] for code in self._codes[rows]]
        )
        return self._tree.add(LeafNode(prediction=prediction, class_counts=class_counts))

    def _candidate_features(self) -> np.ndarray:
        n_features = self._X.shape[1]
        if not self._randomize or self._n_candidates >= n_features:
            return np.arange(n_features)

        chosen = self._rng.choice(n_features, size=self._n_candidates, replace=False)
        return np.sort(chosen)

    def _find_best_split(
        self,
        rows: np.ndarray,
        total_counts: np.ndarray
    ) -> Tuple[Optional[int], Optional[float], float]:
        """
        최적의 분할점 탐색

        피처마다 값을 정렬하면 임계값 후보 각각은 정렬된 순서의 접두사
        분할 하나에 대응한다. 접두사 점수는 prefix_split_impurity가
        한 번에 계산한다.

        Returns
        -------
        best_feature : int or None
        best_threshold : float or None
        best_score : float
            분할 후 가중 불순도 (후보가 없으면 inf)
        """
        n_rows = len(rows)
        min_leaf = self.params.min_samples_leaf

        best_feature = None
        best_threshold = None
        best_score = np.inf

        codes = self._codes[rows]

        for feature_idx in self._candidate_features():
            col = self._X[rows, feature_idx]
            order = np.argsort(col, kind='stable')
            sorted_col = col[order]

            # 고유값 = 임계값 후보 (오름차순)
            thresholds = np.unique(sorted_col)
            n_left = np.searchsorted(sorted_col, thresholds, side='right')

            valid = (n_left >= min_leaf) & (n_rows - n_left >= min_leaf)
            if not np.any(valid):
                continue

            prefix_scores = prefix_split_impurity(codes[order], total_counts, self.params.criterion)
            scores = np.where(valid, prefix_scores[n_left - 1], np.inf)

            # 허용 오차 안의 동점이면 가장 작은 임계값
            feature_best = np.min(scores)
            candidate = int(np.flatnonzero(scores <= feature_best + _TIE_EPS)[0])
            score = float(scores[candidate])

            if score < best_score - _TIE_EPS:
                best_score = score
                best_feature = int(feature_idx)
                best_threshold = float(thresholds[candidate])

        return best_feature, best_threshold, best_score

    def _choose_split(self, rows: np.ndarray, depth: int) -> Optional[Dict[str, Any]]:
        """
        노드를 분할할지 결정

        Returns
        -------
        split : dict or None
            SplitNode 필드(left/right 제외)와 'left_rows', 'right_rows'.
            리프로 끝나야 하면 None.
        """
        n_samples = len(rows)
        total_counts = self._class_counts(rows)
        impurity = float(node_impurity(total_counts, self.params.criterion))

        should_stop = (
            n_samples < self.params.min_samples_split or
            np.count_nonzero(total_counts) <= 1 or
            (self.params.max_depth is not None and depth >= self.params.max_depth)
        )
        if should_stop:
            return None

        best_feature, best_threshold, best_score = self._find_best_split(rows, total_counts)

        if best_feature is None:
            return None

        gain = impurity - best_score
        if gain <= self.params.min_impurity_decrease + _TIE_EPS:
            return None

        left_mask = self._X[rows, best_feature] <= best_threshold

        logger.debug(
            "depth=%d n=%d: X%d <= %.6g (gain=%.6f, left=%d, right=%d)",
            depth, n_samples, best_feature, best_threshold, gain,
            int(np.count_nonzero(left_mask)), int(n_samples - np.count_nonzero(left_mask))
        )

        return {
            'feature_index': best_feature,
            'threshold': best_threshold,
            'n_samples': n_samples,
            'impurity': impurity,
            'left_rows': rows[left_mask],
            'right_rows': rows[~left_mask],
        }

    def _grow(self, rows: np.ndarray) -> int:
        """
        작업 스택으로 트리를 키우고 루트의 arena 인덱스를 반환

        스택 항목은 (rows, depth, split). split이 None이면 아직 결정하지 않은
        노드이고, 아니면 두 자식이 끝난 뒤 추가할 SplitNode다.
        왼쪽 서브트리, 오른쪽 서브트리, 부모 순으로 추가되므로
        자식 인덱스는 항상 부모보다 작다.
        """
        pending: List[Tuple[Optional[np.ndarray], int, Optional[Dict[str, Any]]]] = [(rows, 0, None)]
        finished: List[int] = []

        while pending:
            rows, depth, split = pending.pop()

            if split is not None:
                right = finished.pop()
                left = finished.pop()
                finished.append(self._tree.add(SplitNode(left=left, right=right, **split)))
                continue

            split = self._choose_split(rows, depth)
            if split is None:
                finished.append(self._make_leaf(rows))
                continue

            left_rows = split.pop('left_rows')
            right_rows = split.pop('right_rows')
            pending.append((None, depth, split))
            pending.append((right_rows, depth + 1, None))
            pending.append((left_rows, depth + 1, None))

        return finished.pop()
