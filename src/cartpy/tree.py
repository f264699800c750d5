# -*- coding: utf-8 -*-
"""
cartpy.tree
===========

Scikit-learn style CART estimators.

``fit`` grows a full tree with :func:`cartpy.builder.build`, computes its
weakest-link pruning path and, when ``cv_folds`` is given, prunes it to the
size chosen by k-fold cross-validation (the ``tree()`` / ``cv.tree()`` /
``prune.tree()`` workflow).  An explicit ``prune_size`` cuts the tree to that
many leaves instead.

In addition to the core training and prediction routines, the estimators
provide rule tracing, rule export, pretty printing and Graphviz export of the
final tree.

This module holds the shared base class and :class:`CARTClassifier`;
:class:`cartpy.regressor.CARTRegressor` lives in its own module.
"""
from __future__ import annotations

from typing import List, Optional

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.utils import Bunch

from . import export
from .builder import build
from .config import TreeConfig
from .cross_validation import cross_validate
from .data import CLASSIFICATION, SampleSet
from .exceptions import SchemaMismatchError
from .node import depth, iter_leaves, n_leaves
from .predict import apply as _apply_row
from .pruning import prune_path, prune_to_size


class _BaseCART(BaseEstimator):
    """Fitting, pruning and export logic shared by the classifier and the regressor."""

    _task: str = ""

    def _check_fitted(self):
        if getattr(self, "tree_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def _maybe_feature_names(self, feature_names=None):
        return feature_names if feature_names is not None else getattr(self, "feature_names_", None)

    def _config(self) -> TreeConfig:
        return TreeConfig(
            max_depth=self.max_depth,
            min_node_size=self.min_node_size,
            min_leaf_size=self.min_leaf_size,
            min_impurity_decrease=self.min_impurity_decrease,
            criterion=self.criterion,
            max_categories=self.max_categories,
            max_features=self.max_features,
            random_state=self.random_state,
        )

    def _sample_set(self, X, y) -> SampleSet:
        return SampleSet(X, y, feature_names=self.feature_names,
                         categorical_features=self.categorical_features, task=self._task)

    def fit(self, X, y):
        """
        Grow the tree and, if requested, prune it.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training predictors.  Columns listed in ``categorical_features``
            (or holding strings/booleans) are categorical.
        y : array-like of shape (n_samples,)
            Response.

        Returns
        -------
        self
        """
        samples = self._sample_set(X, y)
        config = self._config()
        measure = self.prune_measure
        cv_result = None
        if self.cv_folds is not None:
            cv_result = cross_validate(
                samples, self.cv_folds, config, measure=measure,
                random_state=self.random_state if self.random_state is not None else 0,
                one_se=self.one_se, n_jobs=self.n_jobs,
            )
            path = cv_result.path
            full = path[0].tree
            tree = prune_to_size(full, cv_result.chosen_size, measure)
        else:
            full = build(samples, config)
            path = prune_path(full, measure)
            tree = full
        if self.prune_size is not None:
            tree = prune_to_size(full, self.prune_size, measure)

        # fitted attributes are only assigned once every step has succeeded
        self.feature_names_ = samples.feature_names
        self.n_features_in_ = samples.n_features
        self.classes_ = samples.classes
        self.full_tree_ = full
        self.pruning_path_ = path
        self.cv_result_ = cv_result
        self.tree_ = tree
        return self

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def _rows(self, X) -> list:
        if hasattr(X, "columns"):
            names = [str(c) for c in X.columns]
            return [dict(zip(names, r)) for r in np.asarray(X, dtype=object)]
        Xa = np.asarray(X, dtype=object)
        if Xa.ndim == 1:
            Xa = Xa.reshape(1, -1)
        if Xa.shape[1] != self.n_features_in_:
            raise SchemaMismatchError(
                f"X has {Xa.shape[1]} features, the tree was fitted with {self.n_features_in_}"
            )
        return list(Xa)

    def _leaves(self, X):
        self._check_fitted()
        return [_apply_row(self.tree_, r) for r in self._rows(X)]

    def apply(self, X) -> np.ndarray:
        """Index (left-to-right order) of the leaf each sample ends up in."""
        self._check_fitted()
        index = {id(leaf): i for i, leaf in enumerate(iter_leaves(self.tree_))}
        return np.array([index[id(leaf)] for leaf in self._leaves(X)], dtype=int)

    def get_n_leaves(self) -> int:
        self._check_fitted()
        return n_leaves(self.tree_)

    def get_depth(self) -> int:
        self._check_fitted()
        return depth(self.tree_)

    def cost_complexity_pruning_path(self, X, y) -> Bunch:
        """
        Pruning path of the full tree grown on ``(X, y)``.

        Returns
        -------
        Bunch
            ``ccp_alphas``, ``impurities`` (resubstitution risk) and
            ``n_leaves`` per subtree, from the full tree to the root leaf.
        """
        path = prune_path(build(self._sample_set(X, y), self._config()), self.prune_measure)
        return Bunch(ccp_alphas=np.array(path.alphas), impurities=np.array(
            [e.resub_error for e in path]), n_leaves=np.array(path.sizes))

    # ------------------------------------------------------------------
    # Rules / printing / Graphviz
    # ------------------------------------------------------------------
    def predict_rule(self, X, feature_names=None) -> List[str]:
        """Decision rule (antecedent) followed by each input sample."""
        self._check_fitted()
        fn = self._maybe_feature_names(feature_names)
        return [export.trace_rule(self.tree_, r, fn) for r in self._rows(X)]

    def export_rules(self, *, feature_names=None, class_names=None) -> List[str]:
        """All root-to-leaf rules as ``"<antecedent> => <prediction> (N=...)"``."""
        self._check_fitted()
        return export.export_rules(self.tree_, self._maybe_feature_names(feature_names),
                                   class_names)

    def export_graphviz(self, filename: Optional[str] = None, *, feature_names=None,
                        class_names=None, format: str = "png") -> str:
        """See :func:`cartpy.export.export_graphviz`."""
        self._check_fitted()
        return export.export_graphviz(self.tree_, filename,
                                      feature_names=self._maybe_feature_names(feature_names),
                                      class_names=class_names, format=format)

    def print_tree(self, feature_names=None, class_names=None) -> None:
        """Pretty-print the fitted tree to ``stdout``."""
        self._check_fitted()
        print(export.export_text(self.tree_, self._maybe_feature_names(feature_names),
                                 class_names))


class CARTClassifier(ClassifierMixin, _BaseCART):
    """
    CART classification tree with cost-complexity pruning.

    Parameters
    ----------
    criterion : {"gini", "entropy", "misclassification"}, default="gini"
        Impurity used to choose splits.
    max_depth : int or None, default=None
        Maximum depth of the tree.  If ``None`` the depth is unbounded.
    min_node_size : int, default=10
        Nodes with fewer samples are not split.
    min_leaf_size : int, default=1
        Minimum number of samples in each child after a split.
    min_impurity_decrease : float, default=0.0
        Minimal total impurity decrease required to accept a split.
    max_categories : int, default=10
        Level cap for exhaustive multi-class categorical split search.
    max_features : int or None, default=None
        Number of randomly drawn candidate features per split.
    cv_folds : int or None, default=None
        If set, prune to the size selected by ``cv_folds``-fold
        cross-validation.
    prune_size : int or None, default=None
        If set, prune the full tree to exactly this many leaves.
    prune_measure : {"impurity", "misclassification"}, default="impurity"
        Risk guiding the pruning path (``prune.tree`` vs ``prune.misclass``).
    one_se : bool, default=False
        Use the one-standard-error rule when selecting the size.
    n_jobs : int or None, default=None
        Parallel cross-validation folds.
    random_state : int, default=0
        Seed for the fold assignment and the per-split feature draw.
    feature_names : list[str] or None, default=None
        Optional feature names.  Taken from a DataFrame's columns if omitted.
    categorical_features : list[int|str] or None, default=None
        Indices or names of categorical input features.

    Attributes
    ----------
    tree_ : Node
        Final (possibly pruned) tree.
    full_tree_ : Node
        Unpruned tree grown on all samples.
    pruning_path_ : PruningPath
        Weakest-link path of ``full_tree_``.
    cv_result_ : CVResult or None
        Cross-validation outcome when ``cv_folds`` was given.
    classes_ : ndarray
        Class labels.
    """

    _task = CLASSIFICATION

    def __init__(self, *, criterion: Optional[str] = "gini", max_depth: Optional[int] = None,
                 min_node_size: int = 10, min_leaf_size: int = 1,
                 min_impurity_decrease: float = 0.0, max_categories: int = 10,
                 max_features: Optional[int] = None, cv_folds: Optional[int] = None,
                 prune_size: Optional[int] = None, prune_measure: str = "impurity",
                 one_se: bool = False, n_jobs: Optional[int] = None,
                 random_state: Optional[int] = 0, feature_names: Optional[List[str]] = None,
                 categorical_features: Optional[list] = None):
        self.criterion = criterion
        self.max_depth = max_depth
        self.min_node_size = min_node_size
        self.min_leaf_size = min_leaf_size
        self.min_impurity_decrease = min_impurity_decrease
        self.max_categories = max_categories
        self.max_features = max_features
        self.cv_folds = cv_folds
        self.prune_size = prune_size
        self.prune_measure = prune_measure
        self.one_se = one_se
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.feature_names = feature_names
        self.categorical_features = categorical_features

    def predict(self, X) -> np.ndarray:
        """
        Predict class labels for the provided samples.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input samples.

        Returns
        -------
        ndarray of shape (n_samples,)
            Majority class of the leaf reached by each sample.

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        UnseenCategoricalLevelError
            If a categorical value was not seen during training.
        """
        return np.array([leaf.value for leaf in self._leaves(X)])

    def predict_proba(self, X) -> np.ndarray:
        """Class distribution of the leaf reached by each sample, ordered like ``classes_``."""
        return np.vstack([leaf.proba for leaf in self._leaves(X)])
