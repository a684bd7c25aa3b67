import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest


@pytest.fixture
def toy_data():
    """네 샘플, 두 피처의 작은 이진 분류 데이터"""
    X = [[1, 20], [2, 21], [3, 22], [4, 22]]
    y = [1, 0, 1, 0]
    return X, y


@pytest.fixture
def multiclass_data():
    """세 클래스, 다섯 피처. 앞의 두 피처가 클래스를 결정한다."""
    rng = np.random.default_rng(7)
    X = rng.normal(size=(90, 5))
    y = np.where(X[:, 0] > 0.5, 'high', np.where(X[:, 1] > 0, 'mid', 'low'))
    return X, y
