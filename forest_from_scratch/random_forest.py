"""
Random Forest Classifier - From Scratch Implementation
======================================================

분할마다의 랜덤 피처 선택으로 서로 다른 트리를 만들고,
다수결(plurality vote)로 최종 클래스를 정하는 앙상블.

수학적 배경:
-----------
1. 트리 시드:
   seed_m = random_state * 7919 + m   (m = 트리 인덱스)
   - 트리마다 다른 시드 → 서로 다른 피처 부분집합 → 트리 간 상관관계 감소
   - 시드 하나로 전체 앙상블 재현 가능

2. 학습 데이터:
   - 기본값: 모든 트리가 전체 X / y로 학습 (부트스트랩 없음)
   - bootstrap=True: 각 트리가 자신의 시드로 복원 추출한 샘플로 학습 (확장 기능)

3. 최종 예측 (다수결):
   ŷ = argmax_c Σ_m 1[h_m(x) = c]
   동점이면 트리 순서상 먼저 예측된 레이블을 선택한다.
   (사전순/최소 인덱스가 아님에 유의)

4. 병렬 학습:
   트리들은 서로 독립이므로 joblib으로 n_jobs개 워커에 분배한다.
   각 트리는 자신의 시드에만 의존하므로 결과는 n_jobs와 무관하다.

Author: ML From Scratch Project
"""

import logging
import numbers
from collections import Counter
from typing import Any, Dict, Hashable, List, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from .base import (
    BaseModel,
    check_X,
    check_X_y,
    check_random_state,
    restore_classes,
    restore_params,
)
from .decision_tree import DecisionTreeClassifier
from .exceptions import RestoreError
from .tree_builder import TreeBuilderParams, resolve_max_features

logger = logging.getLogger(__name__)

# 시드 조합에 쓰는 고정 홀수 소수
SEED_PRIME = 7919


def tree_seed(random_state: Optional[int], index: int) -> Optional[int]:
    """기본 시드와 트리 인덱스로 트리별 시드 생성 (시드가 없으면 None)"""
    if random_state is None:
        return None
    return random_state * SEED_PRIME + index


def vote_predictions(predictions: Sequence[Hashable]) -> Hashable:
    """
    다수결 집계

    Parameters
    ----------
    predictions : sequence
        한 샘플에 대한 트리별 예측 (트리 순서)

    Returns
    -------
    label
        가장 많이 예측된 레이블. 동점이면 predictions에서 먼저 나온 레이블.
    """
    if len(predictions) == 0:
        raise ValueError("투표할 예측이 없습니다.")

    # Counter는 처음 등장한 순서를 유지하므로, 엄격히 클 때만 갱신하면
    # 동점에서 먼저 나온 레이블이 남는다.
    best_label, best_count = None, 0
    for label, count in Counter(predictions).items():
        if count > best_count:
            best_label, best_count = label, count
    return best_label


def _fit_tree(
    X: np.ndarray,
    labels: List[Hashable],
    seed: Optional[int],
    tree_params: Dict[str, Any],
    bootstrap: bool
) -> DecisionTreeClassifier:
    """트리 하나 학습 (joblib 워커에서 실행)"""
    if bootstrap:
        rng = np.random.default_rng([seed, 1]) if seed is not None else np.random.default_rng()
        sample_indices = rng.choice(len(labels), len(labels), replace=True)
        X = X[sample_indices]
        labels = [labels[i] for i in sample_indices]

    tree = DecisionTreeClassifier(randomize=True, random_state=seed, **tree_params)
    return tree.fit(X, labels)


class RandomForestClassifier(BaseModel):
    """
    Random Forest 분류 모델 (From Scratch)

    Parameters
    ----------
    n_estimators : int, default=10
        트리 개수

    max_features : str or int or float, default='sqrt'
        각 분할에서 고려할 피처 수
        - 'sqrt': sqrt(n_features)
        - 'log2': log2(n_features)
        - int: 해당 수
        - float: 비율
        - None: 모든 피처 (트리 간 차이가 없어짐)

    criterion : {'gini', 'entropy'}, default='gini'
        분할 불순도 기준

    max_depth : int, default=None
        각 트리의 최대 깊이. None이면 완전히 확장

    min_samples_split : int, default=2
        내부 노드를 분할하기 위한 최소 샘플 수

    min_samples_leaf : int, default=1
        리프 노드에 있어야 하는 최소 샘플 수

    bootstrap : bool, default=False
        부트스트랩 샘플 사용 여부. 기본값은 모든 트리가 전체 데이터로 학습.

    random_state : int, default=None
        기본 랜덤 시드. None이면 실행마다 결과가 달라진다.

    n_jobs : int, default=1
        병렬 처리 수 (joblib). -1이면 모든 코어

    verbose : int, default=0
        0보다 크면 진행 상황을 INFO 레벨로 로깅

    Attributes
    ----------
    estimators_ : list of DecisionTreeClassifier
        학습된 트리들 (학습 순서)

    classes_ : list
        학습 레이블 (처음 등장한 순서)

    n_features_ : int
        학습에 사용된 피처 수

    feature_importances_ : ndarray of shape (n_features,)
        피처 중요도 (모든 트리의 평균)

    Examples
    --------
    >>> from forest_from_scratch import RandomForestClassifier
    >>> X = [[0, 0], [1, 1], [2, 1], [1, 5], [3, 2]]
    >>> y = [0, 1, 2, 3, 7]
    >>> rf = RandomForestClassifier(n_estimators=10, random_state=42)
    >>> predictions = rf.fit(X, y).predict(X)
    """

    _param_names = (
        'n_estimators', 'max_features', 'criterion', 'max_depth',
        'min_samples_split', 'min_samples_leaf', 'bootstrap',
        'random_state', 'n_jobs', 'verbose'
    )

    def __init__(
        self,
        n_estimators: int = 10,
        max_features: Optional[Any] = 'sqrt',
        criterion: str = 'gini',
        max_depth: Optional[int] = None,
        min_samples_split: int = 2,
        min_samples_leaf: int = 1,
        bootstrap: bool = False,
        random_state: Optional[int] = None,
        n_jobs: int = 1,
        verbose: int = 0
    ):
        self.n_estimators = n_estimators
        self.max_features = max_features
        self.criterion = criterion
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.bootstrap = bootstrap
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.verbose = verbose

        if isinstance(n_estimators, bool) or not isinstance(n_estimators, numbers.Integral) \
                or n_estimators < 1:
            raise ValueError(f"n_estimators는 1 이상의 정수여야 합니다: {n_estimators!r}")
        check_random_state(random_state)
        if max_features is not None:
            resolve_max_features(max_features, 1)
        TreeBuilderParams(
            criterion=criterion,
            max_depth=max_depth,
            min_samples_split=min_samples_split,
            min_samples_leaf=min_samples_leaf
        )

        # 학습 후 설정되는 속성들
        self.estimators_: List[DecisionTreeClassifier] = []
        self.classes_: List[Hashable] = []
        self.n_features_: int = 0
        self.feature_importances_: Optional[np.ndarray] = None

    def _tree_params(self) -> Dict[str, Any]:
        return {
            'criterion': self.criterion,
            'max_depth': self.max_depth,
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features,
        }

    def _log_level(self) -> int:
        return logging.INFO if self.verbose > 0 else logging.DEBUG

    def fit(self, X: Any, y: Any) -> 'RandomForestClassifier':
        """
        Random Forest 모델 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            학습 데이터
        y : array-like of shape (n_samples,)
            레이블

        Returns
        -------
        self : RandomForestClassifier
            학습된 모델
        """
        # 입력 검증
        X, labels = check_X_y(X, y)

        logger.log(
            self._log_level(),
            "Random Forest 학습 시작: %d개 트리 (n_jobs=%s, bootstrap=%s)",
            self.n_estimators, self.n_jobs, self.bootstrap
        )

        tree_params = self._tree_params()
        # 결과는 인덱스 순서로 모인다
        estimators = Parallel(n_jobs=self.n_jobs)(
            delayed(_fit_tree)(X, labels, tree_seed(self.random_state, m), tree_params, self.bootstrap)
            for m in range(self.n_estimators)
        )

        step = max(1, self.n_estimators // 10)
        for m, tree in enumerate(estimators):
            if (m + 1) % step == 0:
                logger.log(
                    self._log_level(),
                    "트리 %d/%d 완료 (깊이 %d, 리프 %d)",
                    m + 1, self.n_estimators, tree.get_depth(), tree.get_n_leaves()
                )

        # 모든 트리가 만들어진 뒤에만 상태 교체
        self._set_fitted_state(estimators, list(dict.fromkeys(labels)), X.shape[1])
        return self

    def _set_fitted_state(
        self,
        estimators: List[DecisionTreeClassifier],
        classes: List[Hashable],
        n_features: int
    ) -> None:
        self.estimators_ = estimators
        self.classes_ = classes
        self.n_features_ = n_features
        self.feature_importances_ = np.mean(
            [tree.feature_importances_ for tree in estimators], axis=0
        )

    def _tree_predictions(self, X: Any) -> np.ndarray:
        """트리별 예측 (n_estimators, n_samples)"""
        self._check_is_fitted(len(self.estimators_) > 0)
        X = check_X(X, self.n_features_)

        predictions = np.empty((len(self.estimators_), X.shape[0]), dtype=object)
        for m, tree in enumerate(self.estimators_):
            predictions[m] = tree.predict(X)
        return predictions

    def predict(self, X: Any) -> np.ndarray:
        """
        다수결 예측

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            예측할 데이터

        Returns
        -------
        y_pred : ndarray of shape (n_samples,), dtype=object
            예측 레이블
        """
        predictions = self._tree_predictions(X)

        y_pred = np.empty(predictions.shape[1], dtype=object)
        for i in range(predictions.shape[1]):
            y_pred[i] = vote_predictions(list(predictions[:, i]))
        return y_pred

    def predict_proba(self, X: Any) -> np.ndarray:
        """
        트리별 리프 클래스 빈도의 평균 (열 순서 = classes_)

        Returns
        -------
        proba : ndarray of shape (n_samples, n_classes)
        """
        self._check_is_fitted(len(self.estimators_) > 0)
        X = check_X(X, self.n_features_)

        column_of = {label: j for j, label in enumerate(self.classes_)}
        proba = np.zeros((X.shape[0], len(self.classes_)))

        for tree in self.estimators_:
            tree_proba = tree.predict_proba(X)
            # 부트스트랩 트리는 일부 클래스만 보았을 수 있다
            columns = [column_of[label] for label in tree.classes_]
            proba[:, columns] += tree_proba

        return proba / len(self.estimators_)

    def vote_counts(self, X: Any) -> List[Dict[Hashable, int]]:
        """샘플별 레이블 득표 수 (트리 순서상 처음 등장한 순서)"""
        predictions = self._tree_predictions(X)
        return [dict(Counter(predictions[:, i])) for i in range(predictions.shape[1])]

    # ------------------------------------------------------------------
    # 체크포인트
    # ------------------------------------------------------------------

    def to_checkpoint(self) -> Dict[str, Any]:
        """
        현재 모델의 체크포인트 반환

        Returns
        -------
        state : dict
            {'model', 'params', 'n_estimators', 'classes', 'trees'}
        """
        self._check_is_fitted(len(self.estimators_) > 0)
        return {
            'model': type(self).__name__,
            'params': self.get_params(),
            'n_estimators': len(self.estimators_),
            'classes': list(self.classes_),
            'trees': [tree.to_checkpoint() for tree in self.estimators_],
        }

    def from_checkpoint(self, state: Dict[str, Any]) -> 'RandomForestClassifier':
        """
        체크포인트에서 모델 복원

        Raises
        ------
        RestoreError
            trees가 없거나, 리스트가 아니거나, 비어 있거나, 손상된 트리가 있는 경우
        """
        if not isinstance(state, dict):
            raise RestoreError("체크포인트는 딕셔너리여야 합니다.")

        trees = state.get('trees')
        if trees is None:
            raise RestoreError("모델을 복원하려면 트리 목록(trees)이 필요합니다.")
        if not isinstance(trees, list) or len(trees) == 0:
            raise RestoreError("trees는 비어 있지 않은 리스트여야 합니다.")

        estimators = []
        for m, tree_state in enumerate(trees):
            try:
                estimators.append(DecisionTreeClassifier().from_checkpoint(tree_state))
            except RestoreError as e:
                raise RestoreError(f"trees[{m}] 복원 실패: {e}") from e

        n_features = {tree.n_features_ for tree in estimators}
        if len(n_features) != 1:
            raise RestoreError(f"트리들의 피처 수가 서로 다릅니다: {sorted(n_features)}")

        n_estimators = state.get('n_estimators', len(estimators))
        if n_estimators != len(estimators):
            raise RestoreError(
                f"n_estimators({n_estimators})와 트리 수({len(estimators)})가 다릅니다."
            )

        seen = list(dict.fromkeys(
            label for tree in estimators for label in tree.classes_
        ))
        classes = restore_classes(state.get('classes'), seen)

        params = {
            **self.get_params(),
            **restore_params(state, self._param_names),
            'n_estimators': n_estimators,
        }
        try:
            candidate = type(self)(**{name: params[name] for name in self._param_names})
        except (TypeError, ValueError) as e:
            raise RestoreError(f"체크포인트의 파라미터가 올바르지 않습니다: {e}") from e

        for name in self._param_names:
            setattr(self, name, getattr(candidate, name))
        self._set_fitted_state(estimators, classes, n_features.pop())
        return self

    def __repr__(self) -> str:
        if len(self.estimators_) == 0:
            return "RandomForestClassifier(not fitted)"

        return (
            f"RandomForestClassifier("
            f"n_estimators={len(self.estimators_)}, "
            f"max_features={self.max_features!r}, "
            f"max_depth={self.max_depth})"
        )
