"""
Decision Tree Classifier - From Scratch Implementation
======================================================

CART (Classification and Regression Trees) 알고리즘 기반 분류 트리.

수학적 배경:
-----------
분할 기준: Gini 불순도 (또는 Entropy) 감소 최대화

분할 전 Gini:
    Gini_parent = 1 - Σ p_k²

분할 후 가중 Gini:
    Gini_split = (n_left/n) * Gini_left + (n_right/n) * Gini_right

정보 이득 (Information Gain):
    Gain = Gini_parent - Gini_split

최적 분할: Gain이 최대인 (feature, threshold) 선택.
임계값 후보는 해당 피처에서 관측된 고유값 각각 (row[feature] <= threshold).

예측:
    leaf_prediction = 리프에 도달한 학습 샘플의 다수 레이블

Author: ML From Scratch Project
"""

import logging
from typing import Any, Dict, Hashable, List, Optional, Sequence

import numpy as np

from .base import BaseModel, check_X, check_X_y, check_random_state, restore_classes, restore_params
from .exceptions import RestoreError
from .tree_builder import DecisionTreeBuilder, TreeBuilderParams, resolve_max_features
from .tree_node import TreeStructure

logger = logging.getLogger(__name__)


class DecisionTreeClassifier(BaseModel):
    """
    CART 기반 결정 트리 분류 모델 (From Scratch)

    Parameters
    ----------
    criterion : {'gini', 'entropy'}, default='gini'
        분할 불순도 기준

    max_depth : int, default=None
        트리의 최대 깊이. None이면 순수해지거나 더 나눌 수 없을 때까지 확장.

    min_samples_split : int, default=2
        내부 노드를 분할하기 위한 최소 샘플 수.

    min_samples_leaf : int, default=1
        리프 노드에 있어야 하는 최소 샘플 수.

    min_impurity_decrease : float, default=0.0
        분할을 수행하기 위한 최소 불순도 감소량 (이 값보다 엄격히 커야 함).

    max_features : int or float or str, default=None
        randomize=True일 때 각 분할에서 고려할 피처 수.
        - None: 모든 피처 사용
        - int: 해당 수의 피처 사용
        - float: 비율로 피처 수 결정
        - 'sqrt': sqrt(n_features)
        - 'log2': log2(n_features)

    randomize : bool, default=False
        분할마다 피처 부분집합을 무작위로 뽑을지 여부

    random_state : int, default=None
        랜덤 시드 (피처 서브샘플링용). 같은 시드는 같은 트리를 만든다.

    feature_names : list of str, default=None
        export_text() 등에서 쓸 피처 이름

    Attributes
    ----------
    tree_ : TreeStructure
        학습된 트리 (노드 배열 + 루트 인덱스)

    classes_ : list
        학습 레이블 (처음 등장한 순서)

    n_features_ : int
        학습에 사용된 피처 수

    feature_importances_ : ndarray of shape (n_features,)
        피처 중요도 (불순도 감소 기반)

    Examples
    --------
    >>> from forest_from_scratch import DecisionTreeClassifier
    >>> X = [[1, 20], [2, 21], [3, 22], [4, 22]]
    >>> y = [1, 0, 1, 0]
    >>> tree = DecisionTreeClassifier().fit(X, y)
    >>> tree.predict([[1, 20]])
    array([1], dtype=object)
    """

    _param_names = (
        'criterion', 'max_depth', 'min_samples_split', 'min_samples_leaf',
        'min_impurity_decrease', 'max_features', 'randomize', 'random_state',
        'feature_names'
    )

    def __init__(
        self,
        criterion: str = 'gini',
        max_depth: Optional[int] = None,
        min_samples_split: int = 2,
        min_samples_leaf: int = 1,
        min_impurity_decrease: float = 0.0,
        max_features: Optional[Any] = None,
        randomize: bool = False,
        random_state: Optional[int] = None,
        feature_names: Optional[Sequence[str]] = None
    ):
        self.criterion = criterion
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.min_impurity_decrease = min_impurity_decrease
        self.max_features = max_features
        self.randomize = randomize
        self.random_state = random_state
        self.feature_names = list(feature_names) if feature_names is not None else None

        # 잘못된 하이퍼파라미터는 생성 시점에 ValueError
        self._builder_params()
        check_random_state(random_state)
        if max_features is not None:
            resolve_max_features(max_features, 1)

        # 학습 후 설정되는 속성들
        self.tree_: Optional[TreeStructure] = None
        self.classes_: List[Hashable] = []
        self.n_features_: int = 0
        self.feature_importances_: Optional[np.ndarray] = None

    def _builder_params(self) -> TreeBuilderParams:
        return TreeBuilderParams(
            criterion=self.criterion,
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            min_impurity_decrease=self.min_impurity_decrease
        )

    def fit(self, X: Any, y: Any) -> 'DecisionTreeClassifier':
        """
        결정 트리 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            학습 데이터
        y : array-like of shape (n_samples,)
            레이블 (숫자 또는 문자열)

        Returns
        -------
        self : DecisionTreeClassifier
            학습된 모델

        Raises
        ------
        ShapeError
            len(X) != len(y), 빈 X, 들쭉날쭉한 행
        """
        # 입력 검증 (실패 시 기존 상태 유지)
        X, labels = check_X_y(X, y)

        # 랜덤 시드 설정
        rng = np.random.default_rng(self.random_state)

        builder = DecisionTreeBuilder(self._builder_params())
        tree = builder.build(
            X, labels, rng,
            randomize_features=self.randomize,
            max_features=self.max_features
        )

        # 구축이 끝난 뒤에만 상태 교체
        self._set_fitted_state(tree, _first_seen(labels), X.shape[1])

        logger.info(
            "DecisionTreeClassifier 학습 완료: 샘플 %d, 피처 %d, 깊이 %d, 리프 %d",
            X.shape[0], self.n_features_, self.get_depth(), self.get_n_leaves()
        )
        return self

    def _set_fitted_state(self, tree: TreeStructure, classes: List[Hashable], n_features: int) -> None:
        self.tree_ = tree
        self.classes_ = classes
        self.n_features_ = n_features
        self.feature_importances_ = tree.feature_importances(n_features, self.criterion)

    def predict(self, X: Any) -> np.ndarray:
        """
        예측 수행

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            예측할 데이터. 1차원이면 한 행으로 처리.

        Returns
        -------
        y_pred : ndarray of shape (n_samples,), dtype=object
            예측 레이블 (학습 레이블과 같은 Python 타입)
        """
        self._check_is_fitted(self.tree_ is not None)
        X = check_X(X, self.n_features_)

        y_pred = np.empty(X.shape[0], dtype=object)
        for i, row in enumerate(X):
            y_pred[i] = self.tree_.predict_row(row)
        return y_pred

    def predict_proba(self, X: Any) -> np.ndarray:
        """
        리프의 클래스 빈도 (열 순서 = classes_)

        Returns
        -------
        proba : ndarray of shape (n_samples, n_classes)
        """
        self._check_is_fitted(self.tree_ is not None)
        X = check_X(X, self.n_features_)

        column_of = {label: j for j, label in enumerate(self.classes_)}
        proba = np.zeros((X.shape[0], len(self.classes_)))

        for i, leaf_index in enumerate(self.tree_.apply(X)):
            leaf = self.tree_[leaf_index]
            n_samples = leaf.n_samples
            if n_samples == 0:
                proba[i, column_of[leaf.prediction]] = 1.0
                continue
            for label, count in leaf.class_counts:
                proba[i, column_of[label]] = count / n_samples

        return proba

    def apply(self, X: Any) -> np.ndarray:
        """각 행이 도달하는 리프의 노드 인덱스"""
        self._check_is_fitted(self.tree_ is not None)
        return self.tree_.apply(check_X(X, self.n_features_))

    def get_depth(self) -> int:
        """트리의 최대 깊이 반환"""
        if self.tree_ is None:
            return 0
        return self.tree_.get_depth()

    def get_n_leaves(self) -> int:
        """리프 노드 수 반환"""
        if self.tree_ is None:
            return 0
        return self.tree_.get_n_leaves()

    def export_tree_structure(self) -> Dict:
        """트리 구조를 딕셔너리로 내보내기 (시각화용)"""
        if self.tree_ is None:
            return {}
        return self.tree_.to_dict()

    def export_text(self, decimals: int = 2) -> str:
        """텍스트 규칙으로 내보내기"""
        self._check_is_fitted(self.tree_ is not None)
        return self.tree_.export_text(self.feature_names, decimals)

    # ------------------------------------------------------------------
    # 체크포인트
    # ------------------------------------------------------------------

    def to_checkpoint(self) -> Dict[str, Any]:
        """
        현재 모델의 체크포인트 반환

        Returns
        -------
        state : dict
            {'model', 'params', 'classes', 'n_features', 'root'}.
            JSON으로 직렬화 가능한 값만 포함.
        """
        self._check_is_fitted(self.tree_ is not None)
        return {
            'model': type(self).__name__,
            'params': self.get_params(),
            'classes': list(self.classes_),
            'n_features': self.n_features_,
            'root': self.tree_.to_dict(),
        }

    def from_checkpoint(self, state: Dict[str, Any]) -> 'DecisionTreeClassifier':
        """
        체크포인트에서 모델 복원

        Raises
        ------
        RestoreError
            root가 없거나 손상된 경우
        """
        if not isinstance(state, dict):
            raise RestoreError("체크포인트는 딕셔너리여야 합니다.")
        if state.get('root') is None:
            raise RestoreError("체크포인트에 트리(root)가 없습니다.")

        tree = TreeStructure.from_dict(state['root'])

        max_feature_index = max(
            (node.feature_index for node in tree.nodes if not node.is_leaf()),
            default=-1
        )
        n_features = state.get('n_features', max_feature_index + 1)
        if not isinstance(n_features, int) or n_features <= max_feature_index:
            raise RestoreError(
                f"n_features({n_features!r})가 트리의 피처 인덱스({max_feature_index})와 맞지 않습니다."
            )

        seen = _first_seen(
            label
            for leaf in tree.leaves()
            for label in [label for label, _ in leaf.class_counts] + [leaf.prediction]
        )
        classes = restore_classes(state.get('classes'), seen)
        restored = restore_params(state, self._param_names)

        # 파라미터 검증이 통과한 뒤에만 상태 교체
        try:
            candidate = type(self)(**{**self.get_params(), **restored})
        except (TypeError, ValueError) as e:
            raise RestoreError(f"체크포인트의 파라미터가 올바르지 않습니다: {e}") from e

        for name in self._param_names:
            setattr(self, name, getattr(candidate, name))
        self._set_fitted_state(tree, classes, n_features)
        return self

    def __repr__(self) -> str:
        if self.tree_ is None:
            return "DecisionTreeClassifier(not fitted)"

        return (
            f"DecisionTreeClassifier("
            f"depth={self.get_depth()}, "
            f"n_leaves={self.get_n_leaves()}, "
            f"n_features={self.n_features_})"
        )


def _first_seen(labels) -> List[Hashable]:
    """처음 등장한 순서의 고유 레이블"""
    return list(dict.fromkeys(labels))
