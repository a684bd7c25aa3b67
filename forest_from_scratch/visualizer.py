"""
Tree Visualizer - 트리/포레스트 시각화 도구
===========================================

학습된 결정 트리와 랜덤 포레스트의 내부를 시각화합니다.

주요 기능:
- 결정 트리 구조 시각화
- 피처 중요도 (포레스트는 트리별 분포 포함)
- 포레스트 투표 분포 (샘플별 득표율)

Author: ML From Scratch Project
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .exceptions import NotFittedError

logger = logging.getLogger(__name__)


class TreeVisualizer:
    """
    트리 모델 시각화 클래스

    Parameters
    ----------
    figsize : tuple, default=(12, 8)
        기본 Figure 크기

    style : str, optional
        Matplotlib 스타일

    dpi : int, default=100
        Figure DPI
    """

    def __init__(
        self,
        figsize: Tuple[int, int] = (12, 8),
        style: Optional[str] = None,
        dpi: int = 100
    ):
        self.figsize = figsize
        self.style = style
        self.dpi = dpi

        # 스타일 설정
        if self.style:
            try:
                plt.style.use(self.style)
            except OSError:
                logger.warning("Matplotlib 스타일을 찾을 수 없어 기본값을 사용합니다: %s", self.style)

        # 색상 팔레트
        self.colors = {
            'primary': '#2E86AB',
            'secondary': '#A23B72',
            'accent': '#F18F01',
            'neutral': '#3B3B3B',
        }

    def plot_decision_tree(
        self,
        tree,
        feature_names: Optional[List[str]] = None,
        max_depth: int = 4,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Decision Tree Structure"
    ) -> plt.Figure:
        """
        결정 트리 구조 시각화

        Parameters
        ----------
        tree : DecisionTreeClassifier
            시각화할 트리
        feature_names : list, optional
            피처 이름 리스트 (없으면 tree.feature_names, 그것도 없으면 X0, X1, ...)
        max_depth : int
            표시할 최대 깊이
        figsize : tuple, optional
            Figure 크기
        title : str
            그래프 제목

        Returns
        -------
        fig : matplotlib.Figure
        """
        if tree.tree_ is None:
            raise NotFittedError("트리가 학습되지 않았습니다.")

        feature_names = feature_names or tree.feature_names

        fig, ax = plt.subplots(figsize=figsize or (14, 10), dpi=self.dpi)

        # 트리 구조 추출
        tree_dict = tree.export_tree_structure()

        # 노드 위치 계산
        positions = self._calculate_tree_positions(tree_dict, max_depth)

        # 노드와 엣지 그리기
        self._draw_tree_nodes(ax, tree_dict, positions, feature_names, max_depth)

        ax.set_xlim(-0.1, 1.1)
        ax.set_ylim(-0.1, 1.1)
        ax.axis('off')
        ax.set_title(title, fontsize=14, fontweight='bold', pad=20)

        plt.tight_layout()
        return fig

    def _calculate_tree_positions(
        self,
        node: Dict,
        max_depth: int,
        x: float = 0.5,
        y: float = 0.95,
        x_offset: float = 0.25,
        depth: int = 0,
        positions: Optional[Dict] = None
    ) -> Dict:
        """트리 노드 위치 계산"""
        if positions is None:
            positions = {}

        positions[id(node)] = (x, y)

        if depth >= max_depth or node['type'] == 'leaf':
            return positions

        y_child = y - 0.15
        x_offset_child = x_offset / 2

        self._calculate_tree_positions(
            node['left'], max_depth, x - x_offset, y_child,
            x_offset_child, depth + 1, positions
        )
        self._calculate_tree_positions(
            node['right'], max_depth, x + x_offset, y_child,
            x_offset_child, depth + 1, positions
        )

        return positions

    def _node_text(self, node: Dict, feature_names: Optional[List[str]]) -> str:
        if node['type'] == 'leaf':
            n_samples = sum(count for _, count in node['class_distribution'])
            return f"클래스: {node['prediction']}\n샘플: {n_samples}"

        feat_idx = node['feature_index']
        feat_name = feature_names[feat_idx] if feature_names else f"X{feat_idx}"
        return f"{feat_name}\n≤ {node['threshold']:.2f}\n샘플: {node['n_samples']}"

    def _draw_tree_nodes(
        self,
        ax: plt.Axes,
        node: Dict,
        positions: Dict,
        feature_names: Optional[List[str]],
        max_depth: int,
        depth: int = 0
    ):
        """트리 노드와 엣지 그리기"""
        if id(node) not in positions:
            return

        x, y = positions[id(node)]
        is_leaf = node['type'] == 'leaf'

        # 노드 색상 (깊이에 따라)
        if is_leaf:
            color = plt.cm.Greens(0.6)
        else:
            color = plt.cm.Blues(0.3 + 0.5 * (1 - depth / max(max_depth, 1)))

        bbox = dict(
            boxstyle='round,pad=0.3',
            facecolor=color,
            edgecolor='gray',
            alpha=0.9
        )
        ax.text(x, y, self._node_text(node, feature_names), ha='center', va='center',
                fontsize=8, bbox=bbox)

        if is_leaf or depth >= max_depth:
            return

        # 자식 노드 연결 (왼쪽: 조건 참, 오른쪽: 거짓)
        for child, mark, mark_color, shift in (
            (node['left'], 'T', 'green', -0.02),
            (node['right'], 'F', 'red', 0.02),
        ):
            if id(child) not in positions:
                continue
            x_child, y_child = positions[id(child)]
            ax.plot([x, x_child], [y - 0.03, y_child + 0.03],
                    'k-', linewidth=1, alpha=0.7)
            ax.text((x + x_child) / 2 + shift, (y + y_child) / 2,
                    mark, fontsize=7, color=mark_color)
            self._draw_tree_nodes(ax, child, positions, feature_names, max_depth, depth + 1)

    def plot_feature_importance(
        self,
        model,
        feature_names: Optional[List[str]] = None,
        top_k: int = 15,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Feature Importance"
    ) -> plt.Figure:
        """
        피처 중요도 (불순도 감소 기반)

        포레스트면 막대는 트리 평균, 점은 트리 하나하나의 중요도,
        오차 막대는 트리 간 표준편차. 점이 넓게 퍼진 피처는
        일부 트리에서만 쓰인 피처다.

        Parameters
        ----------
        model : DecisionTreeClassifier or RandomForestClassifier
            학습된 모델
        feature_names : list, optional
            피처 이름 리스트 (없으면 X0, X1, ...)
        top_k : int
            평균 중요도 상위 몇 개를 표시할지

        Returns
        -------
        fig : matplotlib.Figure
        """
        if model.feature_importances_ is None:
            raise NotFittedError(f"{type(model).__name__}가 학습되지 않았습니다.")

        per_tree = np.array([
            tree.feature_importances_ for tree in getattr(model, 'estimators_', [])
        ]).reshape(-1, len(model.feature_importances_))
        mean = model.feature_importances_

        names = feature_names or getattr(model, 'feature_names', None) or \
            [f"X{i}" for i in range(len(mean))]
        order = np.argsort(-mean, kind='stable')[:top_k]
        positions = np.arange(len(order))

        fig, ax = plt.subplots(figsize=figsize or (8, max(3, 0.5 * len(order) + 1)), dpi=self.dpi)

        ax.barh(
            positions,
            mean[order],
            xerr=per_tree[:, order].std(axis=0) if len(per_tree) > 1 else None,
            color=self.colors['primary'],
            alpha=0.7,
            capsize=3,
            label='forest mean' if len(per_tree) else 'tree'
        )

        if len(per_tree):
            # 트리마다 세로로 살짝 흩뜨려 겹침 방지
            jitter = np.linspace(-0.25, 0.25, len(per_tree))
            for row, offset in zip(per_tree, jitter):
                ax.scatter(row[order], positions + offset, s=10,
                           color=self.colors['accent'], alpha=0.6)
            ax.scatter([], [], s=10, color=self.colors['accent'], label='single tree')

        ax.set_yticks(positions)
        ax.set_yticklabels([str(names[i]) for i in order])
        ax.invert_yaxis()
        ax.set_xlabel('Importance', fontsize=10)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(loc='lower right', fontsize=8)
        ax.grid(True, alpha=0.3, axis='x')

        plt.tight_layout()
        return fig

    def plot_vote_distribution(
        self,
        forest,
        X: np.ndarray,
        sample_indices: Optional[List[int]] = None,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Forest Vote Distribution"
    ) -> plt.Figure:
        """
        샘플별 트리 투표 분포 (누적 막대)

        승자 레이블의 득표율이 낮을수록 트리들의 의견이 갈린 샘플이다.

        Parameters
        ----------
        forest : RandomForestClassifier
            학습된 포레스트
        X : ndarray
            투표를 확인할 데이터
        sample_indices : list, optional
            표시할 샘플 인덱스 (기본값: 처음 20개)
        """
        X = np.asarray(X, dtype=np.float64)
        if sample_indices is None:
            sample_indices = list(range(min(20, len(X))))

        votes = forest.vote_counts(X[sample_indices])
        classes = forest.classes_
        n_trees = len(forest.estimators_)

        fig, ax = plt.subplots(figsize=figsize or self.figsize, dpi=self.dpi)

        colors = plt.cm.tab10(np.linspace(0, 1, max(len(classes), 1)))
        bottom = np.zeros(len(sample_indices))
        positions = np.arange(len(sample_indices))

        for color, label in zip(colors, classes):
            shares = np.array([v.get(label, 0) for v in votes]) / n_trees
            ax.bar(positions, shares, bottom=bottom, color=color, alpha=0.85, label=str(label))
            bottom += shares

        ax.set_xticks(positions)
        ax.set_xticklabels([str(i) for i in sample_indices])
        ax.set_xlabel('Sample', fontsize=11)
        ax.set_ylabel('Vote Share', fontsize=11)
        ax.set_ylim(0, 1.05)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(title='Class', loc='upper right', fontsize=8)
        ax.grid(True, alpha=0.3, axis='y')

        plt.tight_layout()
        return fig

    def save_figure(
        self,
        fig: plt.Figure,
        filepath: str,
        dpi: Optional[int] = None
    ):
        """Figure 저장"""
        fig.savefig(filepath, dpi=dpi or self.dpi, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        logger.info("Figure saved: %s", filepath)
