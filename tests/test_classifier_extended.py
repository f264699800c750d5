import numpy as np
import pytest
from sklearn.base import clone

from cartpy import CARTClassifier
from cartpy.exceptions import SizeNotOnPathError


def _tiny_dataset():
    """Return a small classification dataset with a numeric and categorical feature."""
    X = np.array([[1, 'A'], [2, 'A'], [3, 'B'], [4, 'B']], dtype=object)
    y = np.array([0, 0, 1, 1])
    return X, y


def _blobs(n=60, seed=0):
    rng = np.random.default_rng(seed)
    X = np.vstack([rng.normal(0, 1, size=(n // 2, 2)), rng.normal(3, 1, size=(n // 2, 2))])
    y = np.array(['no'] * (n // 2) + ['yes'] * (n // 2))
    return X, y


def test_classifier_proba_sums_to_one():
    X, y = _tiny_dataset()
    clf = CARTClassifier(min_node_size=2, feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    proba = clf.predict_proba(X)
    # probabilities for each row should sum to 1
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert proba.shape == (4, 2)
    assert list(clf.classes_) == [0, 1]


def test_classifier_rule_export():
    X, y = _tiny_dataset()
    clf = CARTClassifier(min_node_size=2, feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    # trace rule for each sample
    rules = clf.predict_rule(X, feature_names=['num', 'cat'])
    assert len(rules) == len(X)
    # export full tree rules
    tree_rules = clf.export_rules(feature_names=['num', 'cat'], class_names=['no', 'yes'])
    assert len(tree_rules) == clf.get_n_leaves()
    # each exported rule should contain implication symbol
    assert all('=>' in r for r in tree_rules)


def test_classifier_print_tree(capsys):
    X, y = _tiny_dataset()
    clf = CARTClassifier(min_node_size=2, feature_names=['num', 'cat'], categorical_features=[1])
    clf.fit(X, y)
    clf.print_tree()
    out = capsys.readouterr().out
    assert 'num <= 2.5' in out


def test_classifier_graphviz_export(tmp_path):
    pytest.importorskip("graphviz")
    X, y = _tiny_dataset()
    clf = CARTClassifier(min_node_size=2, categorical_features=[1]).fit(X, y)
    assert 'digraph' in clf.export_graphviz()
    # the dot format does not need the external graphviz binary
    out_path = clf.export_graphviz(str(tmp_path / 'test_tree'), feature_names=['num', 'cat'],
                                   class_names=['no', 'yes'], format='dot')
    # returned filename must end with .dot
    assert out_path.endswith('.dot')
    assert (tmp_path / 'test_tree.dot').exists()


def test_classifier_not_fitted_raises():
    clf = CARTClassifier()
    with pytest.raises(ValueError):
        clf.predict([[1, 'A']])
    with pytest.raises(ValueError):
        clf.predict_rule([[1, 'A']])
    with pytest.raises(ValueError):
        clf.export_rules()


def test_classifier_max_depth():
    X, y = _blobs()
    clf = CARTClassifier(min_node_size=2, max_depth=1)
    clf.fit(X, y)
    preds = clf.predict(X)
    assert preds.shape == y.shape
    assert clf.get_depth() <= 1


def test_classifier_cross_validated_pruning():
    X, y = _blobs()
    clf = CARTClassifier(min_node_size=2, cv_folds=5).fit(X, y)
    assert clf.cv_result_ is not None
    assert clf.get_n_leaves() == clf.cv_result_.chosen_size
    assert clf.score(X, y) > 0.8


def test_classifier_prune_size():
    X, y = _blobs()
    clf = CARTClassifier(min_node_size=2, prune_size=1).fit(X, y)
    assert clf.get_n_leaves() == 1
    assert set(clf.predict(X)) == {'no'}


def test_classifier_prune_size_off_path():
    # both halves split on x1 with identical gain, so they are collapsed together
    X = np.array([[0, 0]] * 3 + [[0, 1]] + [[1, 0]] * 3 + [[1, 1]], dtype=float)
    y = np.array(['a'] * 3 + ['b'] + ['c'] * 3 + ['d'])
    full = CARTClassifier(min_node_size=2).fit(X, y)
    assert full.pruning_path_.sizes == [4, 2, 1]
    assert full.tree_.feature_index == 0
    with pytest.raises(SizeNotOnPathError) as exc:
        CARTClassifier(min_node_size=2, prune_size=3).fit(X, y)
    assert exc.value.nearest_larger == 4
    assert exc.value.nearest_smaller == 2


def test_classifier_cost_complexity_pruning_path():
    X, y = _blobs()
    path = CARTClassifier(min_node_size=2).cost_complexity_pruning_path(X, y)
    assert len(path.ccp_alphas) == len(path.impurities) == len(path.n_leaves)
    assert path.n_leaves[-1] == 1
    assert np.all(np.diff(path.impurities) >= -1e-9)


def test_classifier_apply_and_clone():
    X, y = _blobs()
    clf = CARTClassifier(min_node_size=2, max_depth=2)
    leaves = clf.fit(X, y).apply(X)
    assert leaves.min() >= 0 and leaves.max() < clf.get_n_leaves()
    copy = clone(clf)
    assert copy.get_params() == clf.get_params()
    assert not hasattr(copy, 'tree_')


def test_classifier_misclassification_pruning_with_cv():
    X, y = _blobs()
    clf = CARTClassifier(min_node_size=2, prune_measure='misclassification', cv_folds=5)
    clf.fit(X, y)
    assert clf.pruning_path_.measure == 'misclassification'
    assert clf.get_n_leaves() == clf.cv_result_.chosen_size
    assert clf.score(X, y) > 0.8
