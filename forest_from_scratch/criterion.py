"""
Split Criterion - 분할 불순도 계산
==================================

후보 분할(왼쪽/오른쪽 그룹)의 비용을 계산한다. 값이 낮을수록 좋은 분할.

수학적 배경:
-----------
Gini 불순도:
    Gini = 1 - Σ p_k²

Entropy:
    H = -Σ p_k * log2(p_k)

분할 후 가중 불순도:
    I_split = (n_left/n) * I_left + (n_right/n) * I_right

크기가 0인 그룹의 기여는 0으로 처리한다.

모든 함수는 부수효과가 없으며, 같은 입력에 항상 같은 값을 반환한다.
클래스별 개수 배열(counts)의 마지막 축을 클래스 축으로 보므로
여러 임계값 후보를 한 번에 (2차원 배열로) 평가할 수 있다.
"""

import numpy as np
from collections import Counter
from typing import Sequence, Hashable


CRITERIA = ('gini', 'entropy')


def gini_impurity(counts: np.ndarray) -> np.ndarray:
    """
    Gini 불순도

    Parameters
    ----------
    counts : ndarray of shape (..., n_classes)
        클래스별 샘플 수

    Returns
    -------
    impurity : ndarray of shape (...)
        빈 그룹은 0
    """
    counts = np.asarray(counts, dtype=np.float64)
    totals = counts.sum(axis=-1)
    safe_totals = np.where(totals > 0, totals, 1.0)
    probs = counts / safe_totals[..., None]
    impurity = 1.0 - np.sum(probs ** 2, axis=-1)
    return np.where(totals > 0, impurity, 0.0)


def entropy_impurity(counts: np.ndarray) -> np.ndarray:
    """Entropy (log2). 빈 그룹은 0"""
    counts = np.asarray(counts, dtype=np.float64)
    totals = counts.sum(axis=-1)
    safe_totals = np.where(totals > 0, totals, 1.0)
    probs = counts / safe_totals[..., None]

    # 0 * log(0) = 0
    with np.errstate(divide='ignore', invalid='ignore'):
        terms = np.where(probs > 0, probs * np.log2(probs), 0.0)

    impurity = -np.sum(terms, axis=-1)
    return np.where(totals > 0, impurity, 0.0)


_IMPURITY_FUNCTIONS = {
    'gini': gini_impurity,
    'entropy': entropy_impurity,
}


def node_impurity(counts: np.ndarray, criterion: str = 'gini') -> np.ndarray:
    """기준 이름으로 불순도 함수 선택"""
    try:
        func = _IMPURITY_FUNCTIONS[criterion]
    except KeyError:
        raise ValueError(
            f"지원하지 않는 criterion입니다: {criterion!r} (가능: {CRITERIA})"
        ) from None
    return func(counts)


def split_impurity(
    left_counts: np.ndarray,
    right_counts: np.ndarray,
    criterion: str = 'gini'
) -> np.ndarray:
    """
    분할 후 가중 불순도

    I_split = (n_left/n) * I_left + (n_right/n) * I_right

    Parameters
    ----------
    left_counts, right_counts : ndarray of shape (..., n_classes)
        각 그룹의 클래스별 샘플 수. 임계값 후보 여러 개를
        (n_candidates, n_classes)로 한 번에 넘길 수 있다.

    Returns
    -------
    score : ndarray of shape (...)
        n == 0이면 0
    """
    left_counts = np.asarray(left_counts, dtype=np.float64)
    right_counts = np.asarray(right_counts, dtype=np.float64)

    n_left = left_counts.sum(axis=-1)
    n_right = right_counts.sum(axis=-1)
    n_total = n_left + n_right
    safe_total = np.where(n_total > 0, n_total, 1.0)

    score = (
        (n_left / safe_total) * node_impurity(left_counts, criterion) +
        (n_right / safe_total) * node_impurity(right_counts, criterion)
    )
    return np.where(n_total > 0, score, 0.0)


def label_impurity(labels: Sequence[Hashable], criterion: str = 'gini') -> float:
    """레이블 시퀀스에서 바로 불순도 계산"""
    if len(labels) == 0:
        return 0.0
    counts = np.array(list(Counter(labels).values()), dtype=np.float64)
    return float(node_impurity(counts, criterion))


def _xlog2x(x: np.ndarray) -> np.ndarray:
    """x * log2(x), 0 * log2(0) = 0"""
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(x > 0, x * np.log2(np.where(x > 0, x, 1.0)), 0.0)


def prefix_split_impurity(
    sorted_codes: np.ndarray,
    total_counts: np.ndarray,
    criterion: str = 'gini'
) -> np.ndarray:
    """
    정렬된 샘플의 모든 접두사 분할에 대한 가중 불순도

    score[i] = 앞의 i+1개를 왼쪽, 나머지를 오른쪽으로 보냈을 때의 I_split.
    클래스별 개수 행렬을 만들지 않고, 샘플 하나가 오른쪽에서 왼쪽으로
    옮겨갈 때의 변화량만 누적하므로 클래스 수와 무관하게 O(n log n).

    Gini:
        I_split = 1 - (Σ L_c² / n_left + Σ R_c² / n_right) / n
    Entropy:
        I_split = (f(n_left) - Σ f(L_c) + f(n_right) - Σ f(R_c)) / n,  f(x) = x log2 x

    Parameters
    ----------
    sorted_codes : ndarray of shape (n,)
        피처 값 순서로 정렬된 클래스 인덱스
    total_counts : ndarray of shape (n_classes,)
        이 샘플들의 클래스별 개수

    Returns
    -------
    scores : ndarray of shape (n,)
        마지막 원소는 오른쪽이 빈 분할 (= 노드 불순도)
    """
    if criterion not in _IMPURITY_FUNCTIONS:
        raise ValueError(
            f"지원하지 않는 criterion입니다: {criterion!r} (가능: {CRITERIA})"
        )

    codes = np.asarray(sorted_codes, dtype=np.int64)
    totals = np.asarray(total_counts, dtype=np.float64)
    n = len(codes)
    if n == 0:
        return np.zeros(0)

    # rank[i] = codes[:i] 중 codes[i]와 같은 클래스의 개수 (왼쪽에 이미 있는 수)
    by_class = np.argsort(codes, kind='stable')
    grouped = codes[by_class]
    rank = np.empty(n, dtype=np.float64)
    rank[by_class] = np.arange(n) - np.searchsorted(grouped, grouped, side='left')
    remaining = totals[codes] - rank          # 옮기기 직전 오른쪽의 같은 클래스 수

    n_left = np.arange(1, n + 1, dtype=np.float64)
    n_right = n - n_left

    if criterion == 'gini':
        left_sq = np.cumsum(2.0 * rank + 1.0)
        right_sq = np.sum(totals ** 2) + np.cumsum(1.0 - 2.0 * remaining)
        right_term = np.divide(right_sq, n_right, out=np.zeros(n), where=n_right > 0)
        return 1.0 - (left_sq / n_left + right_term) / n

    left_f = np.cumsum(_xlog2x(rank + 1.0) - _xlog2x(rank))
    right_f = np.sum(_xlog2x(totals)) + np.cumsum(_xlog2x(remaining - 1.0) - _xlog2x(remaining))
    return (_xlog2x(n_left) - left_f + _xlog2x(n_right) - right_f) / n
