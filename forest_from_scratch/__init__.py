"""
Forest From Scratch - 결정 트리와 랜덤 포레스트 직접 구현
========================================================

이 모듈은 분류용 결정 트리와 랜덤 포레스트를 라이브러리 없이 직접 구현합니다.
NumPy만 사용하여 알고리즘의 수학적 원리를 명확히 보여줍니다.

모든 추정기는 같은 계약을 따릅니다:
    fit(X, y) / predict(X) / to_checkpoint() / from_checkpoint(state)

구현된 알고리즘:
- DecisionTreeClassifier: CART 기반 분류 트리 (Gini / Entropy)
- RandomForestClassifier: 랜덤 피처 선택 + 다수결 앙상블

Author: ML From Scratch Project
"""

from .exceptions import ModelError, ShapeError, NotFittedError, RestoreError
from .base import BaseModel
from .tree_builder import DecisionTreeBuilder, TreeBuilderParams
from .tree_node import LeafNode, SplitNode, TreeStructure
from .decision_tree import DecisionTreeClassifier
from .random_forest import RandomForestClassifier, vote_predictions
from .checkpoint import dumps, loads, save_checkpoint, load_checkpoint
from .visualizer import TreeVisualizer

__all__ = [
    'BaseModel',
    'DecisionTreeBuilder',
    'TreeBuilderParams',
    'TreeStructure',
    'SplitNode',
    'LeafNode',
    'DecisionTreeClassifier',
    'RandomForestClassifier',
    'vote_predictions',
    'dumps',
    'loads',
    'save_checkpoint',
    'load_checkpoint',
    'TreeVisualizer',
    'ModelError',
    'ShapeError',
    'NotFittedError',
    'RestoreError'
]

__version__ = '1.0.0'
