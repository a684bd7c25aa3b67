import matplotlib.pyplot as plt
import pytest

from forest_from_scratch import (
    DecisionTreeClassifier,
    NotFittedError,
    RandomForestClassifier,
    TreeVisualizer,
)


def test_plot_decision_tree(toy_data):
    X, y = toy_data
    tree = DecisionTreeClassifier().fit(X, y)

    fig = TreeVisualizer().plot_decision_tree(tree, feature_names=['a', 'b'], max_depth=2)

    texts = [t.get_text() for t in fig.axes[0].texts]
    assert any(text.startswith('a\n≤ 1.00') for text in texts)
    plt.close(fig)


def test_plot_decision_tree_requires_fit():
    with pytest.raises(NotFittedError):
        TreeVisualizer().plot_decision_tree(DecisionTreeClassifier())


def test_plot_feature_importance_and_votes(tmp_path, multiclass_data):
    X, y = multiclass_data
    tree = DecisionTreeClassifier().fit(X, y)
    forest = RandomForestClassifier(n_estimators=5, random_state=0).fit(X, y)
    visualizer = TreeVisualizer()

    fig = visualizer.plot_feature_importance(tree)
    assert len(fig.axes[0].patches) == 5
    plt.close(fig)

    fig = visualizer.plot_feature_importance(forest, top_k=3)
    labels = [t.get_text() for t in fig.axes[0].get_yticklabels()]
    assert len(fig.axes[0].patches) == 3
    assert len(labels) == 3
    plt.close(fig)

    fig = visualizer.plot_vote_distribution(forest, X, sample_indices=[0, 1, 2])
    path = tmp_path / 'votes.png'
    visualizer.save_figure(fig, str(path))
    assert path.exists()
    plt.close(fig)


def test_plot_feature_importance_requires_fit():
    with pytest.raises(NotFittedError):
        TreeVisualizer().plot_feature_importance(RandomForestClassifier())
