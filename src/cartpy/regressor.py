"""CART regression tree (RSS splits, cost-complexity pruning) with a scikit-learn style API."""
from __future__ import annotations

from typing import List, Optional

import numpy as np
from sklearn.base import RegressorMixin

from .data import REGRESSION
from .tree import _BaseCART


class CARTRegressor(RegressorMixin, _BaseCART):
    r"""
    CARTRegressor(max_depth=None, min_node_size=10, min_leaf_size=1,
                  min_impurity_decrease=0.0, cv_folds=None, prune_size=None,
                  one_se=False, n_jobs=None, random_state=0, feature_names=None,
                  categorical_features=None)

    A CART regression tree with a scikit-learn style API.

    **Core behavior**

    - **Split criterion**: residual sum of squares.  Numeric thresholds are
      evaluated at every midpoint between distinct sorted values; categorical
      features are split by scanning the levels ordered by mean response,
      which finds the optimal bipartition.
    - **Pre-pruning**: ``min_node_size``, ``min_leaf_size``, ``max_depth`` and
      ``min_impurity_decrease``.
    - **Post-pruning**: weakest-link cost-complexity pruning on RSS, either to
      the size chosen by ``cv_folds``-fold cross-validation (held-out RSS) or
      to an explicit ``prune_size``.

    Parameters
    ----------
    max_depth : int or None, default=None
        Maximum depth of the tree.
    min_node_size : int, default=10
        Nodes with fewer samples are not split.
    min_leaf_size : int, default=1
        Minimum number of samples in each child after a split.
    min_impurity_decrease : float, default=0.0
        Minimal RSS improvement required to accept a split.
    max_features : int or None, default=None
        Number of randomly drawn candidate features per split.
    cv_folds : int or None, default=None
        Number of cross-validation folds used to pick the pruned size.
    prune_size : int or None, default=None
        Prune the full tree to exactly this many leaves.
    one_se : bool, default=False
        Use the one-standard-error rule when selecting the size.
    n_jobs : int or None, default=None
        Parallel cross-validation folds.
    random_state : int, default=0
        Seed for the fold assignment and the per-split feature draw.
    feature_names : sequence of str, optional
        Column names (used with ``categorical_features`` by name and in
        textual exports).
    categorical_features : sequence of int or str, optional
        Indices or names of categorical columns.

    Attributes
    ----------
    tree_ : Node
        Root of the final regression tree.
    full_tree_ : Node
        Unpruned tree.
    pruning_path_ : PruningPath
        Weakest-link path of ``full_tree_``.
    cv_result_ : CVResult or None
        Cross-validation outcome when ``cv_folds`` was given.
    """

    _task = REGRESSION

    def __init__(self, *, max_depth: Optional[int] = None, min_node_size: int = 10,
                 min_leaf_size: int = 1, min_impurity_decrease: float = 0.0,
                 max_features: Optional[int] = None, cv_folds: Optional[int] = None,
                 prune_size: Optional[int] = None, one_se: bool = False,
                 n_jobs: Optional[int] = None, random_state: Optional[int] = 0,
                 feature_names: Optional[List[str]] = None,
                 categorical_features: Optional[list] = None):
        self.max_depth = max_depth
        self.min_node_size = min_node_size
        self.min_leaf_size = min_leaf_size
        self.min_impurity_decrease = min_impurity_decrease
        self.max_features = max_features
        self.cv_folds = cv_folds
        self.prune_size = prune_size
        self.one_se = one_se
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.feature_names = feature_names
        self.categorical_features = categorical_features

    # regression trees always split and prune on RSS
    criterion = "rss"
    max_categories = 10
    prune_measure = "impurity"

    def predict(self, X) -> np.ndarray:
        """Mean response of the leaf reached by each sample."""
        return np.array([leaf.value for leaf in self._leaves(X)], dtype=float)
