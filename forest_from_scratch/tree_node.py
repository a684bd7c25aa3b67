"""
Decision Tree Node - 트리 자료구조
==================================

노드는 두 종류:

- SplitNode: row[feature_index] <= threshold 이면 left, 아니면 right로 이동
- LeafNode: 도달한 학습 샘플의 다수 레이블(prediction)과 클래스별 개수

노드는 포인터 대신 배열(arena) 안의 정수 인덱스로 자식을 참조한다.
빌더는 자식을 부모보다 먼저 추가하므로(후위 순서) 자식 인덱스는 항상
부모 인덱스보다 작다. 노드는 생성 후 변경되지 않는다.

체크포인트 형식은 재귀적인 딕셔너리:

    {"type": "split", "feature_index", "threshold", "n_samples",
     "impurity", "left": {...}, "right": {...}}
    {"type": "leaf", "prediction", "class_distribution": [[label, count], ...]}

Author: ML From Scratch Project
"""

from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .base import normalize_label
from .criterion import node_impurity
from .exceptions import RestoreError


@dataclass(frozen=True)
class SplitNode:
    """내부 분할 노드"""

    feature_index: int
    threshold: float
    left: int                  # 왼쪽 자식 인덱스 (값 <= threshold)
    right: int                 # 오른쪽 자식 인덱스 (값 > threshold)
    n_samples: int = 0         # 노드에 도달한 샘플 수
    impurity: float = 0.0      # 분할 전 불순도

    def is_leaf(self) -> bool:
        return False


@dataclass(frozen=True)
class LeafNode:
    """예측 노드"""

    prediction: Hashable
    class_counts: Tuple[Tuple[Hashable, int], ...] = ()   # 처음 등장한 순서

    def is_leaf(self) -> bool:
        return True

    @property
    def class_distribution(self) -> Dict[Hashable, int]:
        return dict(self.class_counts)

    @property
    def n_samples(self) -> int:
        return sum(count for _, count in self.class_counts)


Node = Union[SplitNode, LeafNode]


class TreeStructure:
    """
    노드 배열(arena)과 루트 인덱스

    Parameters
    ----------
    nodes : list of SplitNode / LeafNode
        자식 참조는 이 리스트의 인덱스
    root : int, optional
        루트 인덱스. 기본값은 마지막 노드 (후위 순서로 구축된 경우)
    """

    def __init__(self, nodes: Optional[List[Node]] = None, root: Optional[int] = None):
        self.nodes: List[Node] = list(nodes) if nodes is not None else []
        self.root = root if root is not None else len(self.nodes) - 1

    def add(self, node: Node) -> int:
        """노드를 추가하고 인덱스를 반환"""
        self.nodes.append(node)
        return len(self.nodes) - 1

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    @property
    def root_node(self) -> Node:
        return self.nodes[self.root]

    def apply_row(self, row: np.ndarray) -> int:
        """한 행이 도달하는 리프의 인덱스"""
        index = self.root
        node = self.nodes[index]

        while not node.is_leaf():
            if row[node.feature_index] <= node.threshold:
                index = node.left
            else:
                index = node.right
            node = self.nodes[index]

        return index

    def apply(self, X: np.ndarray) -> np.ndarray:
        return np.array([self.apply_row(row) for row in X], dtype=np.int64)

    def predict_row(self, row: np.ndarray) -> Hashable:
        return self.nodes[self.apply_row(row)].prediction

    def leaves(self) -> List[LeafNode]:
        return [node for node in self.nodes if node.is_leaf()]

    def get_depth(self) -> int:
        """루트에서 가장 깊은 리프까지의 간선 수"""
        max_depth = 0
        stack = [(self.root, 0)]

        while stack:
            index, depth = stack.pop()
            node = self.nodes[index]
            if node.is_leaf():
                max_depth = max(max_depth, depth)
            else:
                stack.append((node.left, depth + 1))
                stack.append((node.right, depth + 1))

        return max_depth

    def get_n_leaves(self) -> int:
        return len(self.leaves())

    def feature_importances(self, n_features: int, criterion: str = 'gini') -> np.ndarray:
        """
        피처 중요도 (불순도 감소 기반)

        importance[i] = Σ n_samples * (I_parent - I_split) for splits using feature i

        자식 불순도는 리프면 class_counts로, 분할 노드면 저장된 값으로 계산한다.
        """
        importances = np.zeros(n_features)

        def _node_stats(node: Node) -> Tuple[int, float]:
            if node.is_leaf():
                counts = np.array([count for _, count in node.class_counts], dtype=np.float64)
                return node.n_samples, float(node_impurity(counts, criterion)) if counts.size else 0.0
            return node.n_samples, node.impurity

        for node in self.nodes:
            if node.is_leaf() or node.n_samples == 0:
                continue

            n_left, imp_left = _node_stats(self.nodes[node.left])
            n_right, imp_right = _node_stats(self.nodes[node.right])

            decrease = node.impurity - (
                (n_left / node.n_samples) * imp_left +
                (n_right / node.n_samples) * imp_right
            )
            importances[node.feature_index] += node.n_samples * max(decrease, 0.0)

        # 정규화
        total = np.sum(importances)
        if total > 0:
            importances /= total

        return importances

    # ------------------------------------------------------------------
    # 직렬화
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """재귀적인 체크포인트 구조로 변환 (후위 순회, 파이썬 재귀 없음)"""
        converted: Dict[int, Dict[str, Any]] = {}
        stack = [(self.root, False)]

        while stack:
            index, children_done = stack.pop()
            node = self.nodes[index]

            if node.is_leaf():
                converted[index] = {
                    'type': 'leaf',
                    'prediction': node.prediction,
                    'class_distribution': [[label, count] for label, count in node.class_counts],
                }
            elif not children_done:
                stack.append((index, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
            else:
                converted[index] = {
                    'type': 'split',
                    'feature_index': node.feature_index,
                    'threshold': node.threshold,
                    'n_samples': node.n_samples,
                    'impurity': node.impurity,
                    'left': converted[node.left],
                    'right': converted[node.right],
                }

        return converted[self.root]

    @classmethod
    def from_dict(cls, state: Dict[str, Any]) -> 'TreeStructure':
        """
        체크포인트 구조에서 복원

        왼쪽, 오른쪽, 부모 순으로 추가하므로 fit으로 만든 트리와
        같은 arena 배치가 된다.

        Raises
        ------
        RestoreError
            노드 타입이 없거나 필수 필드가 빠진 경우
        """
        structure = cls()
        finished: List[int] = []
        stack = [(state, 'root', False)]

        while stack:
            node_state, path, children_done = stack.pop()

            if not isinstance(node_state, dict):
                raise RestoreError(f"{path}: 노드는 딕셔너리여야 합니다 ({type(node_state).__name__})")

            node_type = node_state.get('type')

            if node_type == 'split' and not children_done:
                if 'left' not in node_state or 'right' not in node_state:
                    raise RestoreError(f"{path}: 필수 필드가 없습니다: 'left'/'right'")
                stack.append((node_state, path, True))
                stack.append((node_state['right'], path + '.right', False))
                stack.append((node_state['left'], path + '.left', False))
                continue

            if node_type == 'split':
                right = finished.pop()
                left = finished.pop()
                finished.append(structure.add(_split_from_dict(node_state, path, left, right)))
            elif node_type == 'leaf':
                finished.append(structure.add(_leaf_from_dict(node_state, path)))
            else:
                raise RestoreError(f"{path}: 알 수 없는 노드 타입: {node_type!r}")

        structure.root = finished.pop()
        return structure

    def export_text(
        self,
        feature_names: Optional[Sequence[str]] = None,
        decimals: int = 2
    ) -> str:
        """들여쓰기된 텍스트 규칙으로 트리 표현"""
        lines: List[str] = []

        def _name(feature_index: int) -> str:
            if feature_names is not None:
                return str(feature_names[feature_index])
            return f"X{feature_index}"

        # 항목: (노드 인덱스, 깊이) 또는 이미 완성된 텍스트 한 줄
        stack: List[Union[Tuple[int, int], str]] = [(self.root, 0)]

        while stack:
            item = stack.pop()
            if isinstance(item, str):
                lines.append(item)
                continue

            index, depth = item
            node = self.nodes[index]
            indent = '|   ' * depth

            if node.is_leaf():
                lines.append(f"{indent}|--- class: {node.prediction} {node.class_distribution}")
                continue

            name = _name(node.feature_index)
            lines.append(f"{indent}|--- {name} <= {node.threshold:.{decimals}f}")
            stack.append((node.right, depth + 1))
            stack.append(f"{indent}|--- {name} >  {node.threshold:.{decimals}f}")
            stack.append((node.left, depth + 1))

        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"TreeStructure(n_nodes={len(self.nodes)}, root={self.root})"


def _leaf_from_dict(state: Dict[str, Any], path: str) -> LeafNode:
    try:
        class_counts = tuple(
            (normalize_label(label), int(count))
            for label, count in state.get('class_distribution', [])
        )
        prediction = normalize_label(state['prediction'])
        # 레이블은 해시 가능해야 한다 (리스트 등은 TypeError)
        hash((prediction, class_counts))
        return LeafNode(prediction=prediction, class_counts=class_counts)
    except KeyError as e:
        raise RestoreError(f"{path}: 필수 필드가 없습니다: {e}") from e
    except (TypeError, ValueError) as e:
        raise RestoreError(f"{path}: 잘못된 노드 값: {e}") from e


def _split_from_dict(state: Dict[str, Any], path: str, left: int, right: int) -> SplitNode:
    try:
        return SplitNode(
            feature_index=int(state['feature_index']),
            threshold=float(state['threshold']),
            left=left,
            right=right,
            n_samples=int(state.get('n_samples', 0)),
            impurity=float(state.get('impurity', 0.0))
        )
    except KeyError as e:
        raise RestoreError(f"{path}: 필수 필드가 없습니다: {e}") from e
    except (TypeError, ValueError) as e:
        raise RestoreError(f"{path}: 잘못된 노드 값: {e}") from e
