import math

import numpy as np
import pytest

from cartpy import SampleSet, TreeConfig, cross_validate, fit_pruned
from cartpy.cross_validation import align_by_size, heldout_error
from cartpy.exceptions import InvalidConfigError
from cartpy.node import Leaf, Split, n_leaves
from cartpy.pruning import prune_path


def _step_regression(n=100, seed=3):
    rng = np.random.default_rng(seed)
    X = rng.uniform(0, 10, size=(n, 2))
    y = np.where(X[:, 0] < 5, 0.0, 10.0) + rng.normal(0, 1.0, size=n)
    return SampleSet(X, y)


def _blobs(n=80, seed=4):
    rng = np.random.default_rng(seed)
    X = np.vstack([rng.normal(0, 1, size=(n // 2, 2)), rng.normal(3, 1, size=(n // 2, 2))])
    y = ["left"] * (n // 2) + ["right"] * (n // 2)
    return SampleSet(X, y)


def _leaf(risk):
    return Leaf(value=0.0, n_samples=1, impurity=float(risk))


def _split(left, right, risk):
    return Split(feature_index=0, feature_name="x0", kind="numeric", left=left, right=right,
                 value=0.0, n_samples=2, impurity=float(risk), threshold=0.0)


def test_alignment_uses_entries_with_at_least_s_leaves():
    b = _split(_leaf(1), _leaf(1), 5)
    c = _split(_split(_leaf(1), _leaf(1), 5), _leaf(1), 16)
    path = prune_path(_split(b, c, 31))
    assert path.sizes == [5, 3, 1]
    errors = {5: 0.1, 3: 0.2, 1: 0.5}
    aligned = align_by_size(path, errors, [1, 2, 3, 4, 5, 6])
    assert list(aligned[:5]) == [0.5, 0.2, 0.2, 0.1, 0.1]
    assert math.isnan(aligned[5])


def test_regression_cv_result_shape():
    samples = _step_regression()
    cv = cross_validate(samples, k=5, config=TreeConfig(min_node_size=5), random_state=0)
    assert list(cv.sizes) == sorted(cv.sizes)
    assert cv.sizes[0] == 1
    assert len(cv.mean_error) == len(cv.sizes) == len(cv.std_error) == len(cv.n_folds)
    assert cv.fold_errors.shape == (5, len(cv.sizes))
    assert cv.error_mode == "rss"
    assert cv.chosen_size in cv.sizes
    assert cv.chosen_size >= 2
    best = np.nanmin(cv.mean_error)
    assert cv.error_for_size(cv.chosen_size) == pytest.approx(best)
    assert cv.chosen_alpha == cv.path.entry_for_size(cv.chosen_size).alpha
    assert cv.to_dict()["chosen_size"] == cv.chosen_size


def test_every_fold_contributes_to_single_leaf():
    cv = cross_validate(_step_regression(), k=4, config=TreeConfig(min_node_size=5))
    assert cv.n_folds[0] == 4


def test_cv_is_reproducible_and_independent_of_n_jobs():
    samples = _blobs()
    config = TreeConfig(min_node_size=4)
    a = cross_validate(samples, k=4, config=config, random_state=11)
    b = cross_validate(samples, k=4, config=config, random_state=11, n_jobs=2)
    assert a.sizes == b.sizes
    assert a.chosen_size == b.chosen_size
    assert np.array_equal(a.mean_error, b.mean_error, equal_nan=True)
    assert np.array_equal(a.fold_errors, b.fold_errors, equal_nan=True)


def test_classification_uses_misclassification_rate():
    samples = _blobs()
    cv = cross_validate(samples, k=4, config=TreeConfig(min_node_size=4))
    assert cv.error_mode == "misclassification"
    finite = [e for e in cv.mean_error if not math.isnan(e)]
    assert all(0.0 <= e <= 1.0 for e in finite)
    assert cv.chosen_size >= 2


def test_contiguous_folds_do_not_need_a_seed():
    cv = cross_validate(_step_regression(), k=5, config=TreeConfig(min_node_size=5),
                        shuffle=False, random_state=None)
    assert cv.k == 5


def test_one_se_rule_never_picks_a_larger_tree():
    samples = _step_regression()
    config = TreeConfig(min_node_size=3)
    strict = cross_validate(samples, k=5, config=config)
    relaxed = cross_validate(samples, k=5, config=config, one_se=True)
    assert relaxed.chosen_size <= strict.chosen_size


@pytest.mark.parametrize("kwargs", [
    {"k": 1},
    {"k": 1000},
    {"k": 5, "random_state": None},
    {"k": 5, "error_mode": "misclassification"},
])
def test_invalid_cv_arguments(kwargs):
    with pytest.raises(InvalidConfigError):
        cross_validate(_step_regression(), **kwargs)


def test_fit_pruned_cuts_full_tree_to_chosen_size():
    samples = _step_regression()
    tree, cv = fit_pruned(samples, TreeConfig(min_node_size=5), k=5)
    assert n_leaves(tree) == cv.chosen_size
    assert tree == cv.path.tree_for_size(cv.chosen_size)


def test_heldout_error_modes():
    samples = SampleSet([[1.0], [2.0], [3.0], [4.0]], [1.0, 1.0, 3.0, 3.0])
    leaf = Leaf(value=2.0, n_samples=4, impurity=4.0)
    assert heldout_error(leaf, samples, "rss") == pytest.approx(4.0)
    assert heldout_error(leaf, samples, "mse") == pytest.approx(1.0)


def test_misclassification_guided_paths():
    samples = _blobs()
    cv = cross_validate(samples, k=4, config=TreeConfig(min_node_size=4),
                        measure="misclassification")
    assert cv.path.measure == "misclassification"
    assert cv.chosen_size in cv.path.sizes
    assert cv.n_folds[0] == 4
    tree, cv2 = fit_pruned(samples, TreeConfig(min_node_size=4), k=4, measure="misclassification")
    assert n_leaves(tree) == cv2.chosen_size


def test_impurity_guided_paths_by_default():
    cv = cross_validate(_blobs(), k=4, config=TreeConfig(min_node_size=4))
    assert cv.path.measure == "impurity"
