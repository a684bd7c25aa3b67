"""
공통 모델 인터페이스와 입력 검증
================================

라이브러리의 모든 추정기(결정 트리, 랜덤 포레스트, 나이브 베이즈 등)가
따르는 계약:

    fit(X, y) -> self
    predict(X) -> ndarray
    to_checkpoint() -> dict      (JSON 직렬화 가능한 순수 구조)
    from_checkpoint(state) -> self

Author: ML From Scratch Project
"""

import numbers
from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, List, Sequence, Tuple

import numpy as np

from .exceptions import NotFittedError, RestoreError, ShapeError


def normalize_label(label: Any) -> Hashable:
    """NumPy 스칼라 레이블을 동일한 Python 스칼라로 변환"""
    if isinstance(label, np.generic):
        return label.item()
    return label


def normalize_value(value: Any) -> Any:
    """체크포인트용: NumPy 스칼라/배열을 Python 기본형으로 변환"""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


def restore_params(state: Dict[str, Any], param_names: Sequence[str]) -> Dict[str, Any]:
    """체크포인트의 'params'에서 알려진 생성자 인자만 추출"""
    params = state.get('params', {})
    if not isinstance(params, dict):
        raise RestoreError(f"params는 딕셔너리여야 합니다 ({type(params).__name__})")
    return {name: params[name] for name in param_names if name in params}


def restore_classes(stored: Any, seen: Sequence[Hashable]) -> List[Hashable]:
    """
    체크포인트의 'classes' 검증

    없으면 seen(모델 안에서 처음 등장한 순서)을 그대로 쓰고,
    있으면 seen의 모든 레이블을 포함하는 리스트여야 한다.
    """
    if stored is None:
        return list(seen)
    if not isinstance(stored, list):
        raise RestoreError(f"classes는 리스트여야 합니다 ({type(stored).__name__})")

    classes = [normalize_label(label) for label in stored]
    try:
        known = set(classes)
        missing = [label for label in seen if label not in known]
    except TypeError as e:
        raise RestoreError(f"classes에 해시할 수 없는 레이블이 있습니다: {e}") from e

    if missing:
        raise RestoreError(f"classes에 트리가 예측하는 레이블이 빠져 있습니다: {missing!r}")
    return classes


def _as_matrix(X: Any, name: str = 'X') -> np.ndarray:
    """리스트/배열을 2차원 float64 행렬로 변환 (들쭉날쭉한 행은 ShapeError)"""
    if not isinstance(X, np.ndarray):
        X = list(X)
        if X and all(np.ndim(row) == 1 for row in X):
            widths = {len(row) for row in X}
            if len(widths) > 1:
                raise ShapeError(
                    f"{name}의 모든 행은 길이가 같아야 합니다: "
                    f"발견된 길이 {sorted(widths)}"
                )

    try:
        return np.asarray(X, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ShapeError(f"{name}를 숫자 행렬로 변환할 수 없습니다: {e}") from e


def check_X_y(X: Any, y: Any) -> Tuple[np.ndarray, List[Hashable]]:
    """
    학습 입력 검증

    Returns
    -------
    X : ndarray of shape (n_samples, n_features)
    y : list of labels (Python 스칼라)

    Raises
    ------
    ShapeError
        빈 학습셋, 들쭉날쭉한 행, 2차원이 아닌 X, len(X) != len(y)
    """
    X = _as_matrix(X)

    if X.ndim >= 1 and X.shape[0] == 0:
        raise ShapeError("빈 학습 데이터로는 학습할 수 없습니다.")
    if X.ndim != 2:
        raise ShapeError(f"X는 2차원 행렬이어야 합니다: ndim={X.ndim}")
    if X.shape[1] == 0:
        raise ShapeError("X에 피처가 하나도 없습니다.")

    y_array = np.asarray(y, dtype=object) if not isinstance(y, np.ndarray) else y
    if y_array.ndim != 1:
        raise ShapeError(f"y는 1차원 벡터여야 합니다: ndim={y_array.ndim}")

    if X.shape[0] != len(y_array):
        raise ShapeError(
            f"X와 y의 샘플 수가 일치하지 않습니다: {X.shape[0]} vs {len(y_array)}"
        )

    labels = [normalize_label(label) for label in y_array]
    return X, labels


def check_X(X: Any, n_features: int) -> np.ndarray:
    """예측 입력 검증. 1차원 입력은 한 행으로 처리"""
    X = _as_matrix(X)

    if X.ndim == 1:
        if X.size == 0:
            return X.reshape(0, n_features)
        X = X.reshape(1, -1)

    if X.ndim != 2:
        raise ShapeError(f"X는 2차원 행렬이어야 합니다: ndim={X.ndim}")

    if X.shape[0] > 0 and X.shape[1] != n_features:
        raise ShapeError(
            f"피처 수가 학습 시와 다릅니다: {X.shape[1]} vs {n_features}"
        )

    return X


def check_random_state(random_state: Any) -> None:
    """random_state는 None 또는 0 이상의 정수"""
    if random_state is None:
        return
    if isinstance(random_state, bool) or not isinstance(random_state, numbers.Integral):
        raise ValueError(f"random_state는 정수여야 합니다: {random_state!r}")
    if random_state < 0:
        raise ValueError(f"random_state는 0 이상이어야 합니다: {random_state}")


class BaseModel(ABC):
    """
    모든 추정기가 구현하는 공통 계약

    하위 클래스는 `_param_names`에 생성자 인자 이름을 나열한다.
    get_params()와 체크포인트의 'params' 항목이 이 목록을 사용한다.
    """

    _param_names: Tuple[str, ...] = ()

    def get_params(self) -> Dict[str, Any]:
        """생성자 인자를 딕셔너리로 반환"""
        return {name: normalize_value(getattr(self, name)) for name in self._param_names}

    @abstractmethod
    def fit(self, X, y) -> 'BaseModel':
        """학습. 이전 상태는 덮어쓴다."""

    @abstractmethod
    def predict(self, X) -> np.ndarray:
        """입력 행마다 하나의 예측값 (입력 순서 유지)"""

    @abstractmethod
    def to_checkpoint(self) -> Dict[str, Any]:
        """JSON으로 표현 가능한 모델 스냅샷"""

    @abstractmethod
    def from_checkpoint(self, state: Dict[str, Any]) -> 'BaseModel':
        """스냅샷에서 모델 복원"""

    def _check_is_fitted(self, fitted: bool) -> None:
        if not fitted:
            raise NotFittedError(
                f"{type(self).__name__} 모델이 학습되지 않았습니다. fit()을 먼저 호출하세요."
            )
