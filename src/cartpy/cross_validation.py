"""
cartpy.cross_validation
=======================

k-fold selection of the pruned tree size.

Every fold grows a full tree on the other ``k - 1`` folds, computes its
pruning path and scores each subtree on the held-out rows.  Pruning paths of
different folds break at different ``alpha`` values, so the folds are aligned
by leaf count: the error reported by a fold for a candidate size ``s`` is the
error of its smallest subtree with at least ``s`` leaves.  A fold whose full
tree has fewer than ``s`` leaves does not contribute to ``s``.

Candidate sizes are the leaf counts on the pruning path of the tree grown on
all rows, so the chosen size can always be cut from that tree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import KFold

from .builder import build
from .config import TreeConfig
from .data import SampleSet
from .exceptions import InvalidConfigError
from .node import Node
from .predict import predict_many
from .pruning import PruningPath, prune_path, prune_to_size

logger = logging.getLogger(__name__)

REGRESSION_ERRORS = ("rss", "mse")
CLASSIFICATION_ERRORS = ("misclassification",)

_REL_TOL = 1e-12


@dataclass(frozen=True)
class CVResult:
    """
    Outcome of :func:`cross_validate`.

    Attributes
    ----------
    sizes : tuple[int, ...]
        Candidate leaf counts, ascending.
    mean_error : tuple[float, ...]
        Mean held-out error per size over the contributing folds (NaN if no
        fold contributed).
    std_error : tuple[float, ...]
        Standard error of that mean.
    n_folds : tuple[int, ...]
        Number of folds contributing to each size.
    chosen_size : int
        Selected leaf count.
    chosen_alpha : float
        Complexity parameter of the chosen subtree on the full-data path.
    error_mode : str
        ``"rss"``, ``"mse"`` or ``"misclassification"``.
    k : int
        Number of folds.
    fold_errors : ndarray of shape (k, n_sizes)
        Per-fold aligned errors.
    path : PruningPath
        Pruning path of the tree grown on all rows.
    """

    sizes: Tuple[int, ...]
    mean_error: Tuple[float, ...]
    std_error: Tuple[float, ...]
    n_folds: Tuple[int, ...]
    chosen_size: int
    chosen_alpha: float
    error_mode: str
    k: int
    fold_errors: np.ndarray = field(compare=False, repr=False)
    path: PruningPath = field(compare=False, repr=False)

    def error_for_size(self, size: int) -> float:
        return self.mean_error[self.sizes.index(size)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sizes": list(self.sizes),
            "mean_error": list(self.mean_error),
            "std_error": list(self.std_error),
            "n_folds": list(self.n_folds),
            "chosen_size": self.chosen_size,
            "chosen_alpha": self.chosen_alpha,
            "error_mode": self.error_mode,
            "k": self.k,
        }


def heldout_error(tree: Node, samples: SampleSet, error_mode: str) -> float:
    """Error of ``tree`` on ``samples``: RSS, MSE or misclassification rate."""
    pred = predict_many(tree, samples.iter_rows())
    truth = samples.targets()
    if error_mode == "misclassification":
        return float(np.mean(pred != truth))
    resid = pred.astype(float) - truth
    sse = float(resid @ resid)
    return sse / len(truth) if error_mode == "mse" else sse


def align_by_size(path: PruningPath, entry_errors: Dict[int, float],
                  sizes: Sequence[int]) -> np.ndarray:
    """
    Errors for ``sizes`` taken from the smallest path entry with at least
    that many leaves; NaN where the path has no such entry.
    """
    out = np.full(len(sizes), np.nan)
    for i, s in enumerate(sizes):
        entry = path.smallest_at_least(s)
        if entry is not None:
            out[i] = entry_errors[entry.n_leaves]
    return out


def _fold_errors(samples, train_idx, test_idx, config, measure, error_mode, sizes):
    train = samples.subset(train_idx)
    test = samples.subset(test_idx)
    path = prune_path(build(train, config), measure)
    errors = {e.n_leaves: heldout_error(e.tree, test, error_mode) for e in path}
    return align_by_size(path, errors, sizes)


def _resolve_error_mode(samples: SampleSet, error_mode: Optional[str]) -> str:
    allowed = CLASSIFICATION_ERRORS if samples.is_classification else REGRESSION_ERRORS
    if error_mode is None:
        return allowed[0]
    if error_mode not in allowed:
        raise InvalidConfigError(
            f"error_mode {error_mode!r} is not valid for {samples.task}; use one of {allowed}"
        )
    return error_mode


def cross_validate(samples: SampleSet, k: int = 10, config: Optional[TreeConfig] = None,
                   error_mode: Optional[str] = None, *, measure: str = "impurity",
                   shuffle: bool = True, random_state: Optional[int] = 0,
                   one_se: bool = False, n_jobs: Optional[int] = None) -> CVResult:
    """
    Choose a pruned tree size by k-fold cross-validation.

    Parameters
    ----------
    samples : SampleSet
        Training data.  Never modified.
    k : int, default=10
        Number of folds, ``2 <= k <= n_samples``.
    config : TreeConfig, optional
        Growing options used for every fold and for the full-data tree.
    error_mode : {"rss", "mse", "misclassification"}, optional
        Held-out error.  Defaults to ``"rss"`` for regression and
        ``"misclassification"`` (rate) for classification.
    measure : {"impurity", "misclassification"}, default="impurity"
        Risk guiding the pruning paths.
    shuffle : bool, default=True
        Randomly assign rows to folds.  ``False`` gives contiguous folds.
    random_state : int, default=0
        Seed of the fold assignment.  Must be given when ``shuffle=True``.
    one_se : bool, default=False
        Pick the smallest size whose error is within one standard error of
        the minimum instead of the strict minimum.
    n_jobs : int, optional
        Folds are run through ``joblib.Parallel``; results are aggregated in
        size order, so the outcome does not depend on ``n_jobs``.

    Returns
    -------
    CVResult
    """
    config = config or TreeConfig()
    n = samples.n_samples
    if not 2 <= k <= n:
        raise InvalidConfigError(f"k must satisfy 2 <= k <= n_samples ({n}), got {k}")
    if shuffle and random_state is None:
        raise InvalidConfigError("shuffled fold assignment requires an explicit random_state")
    error_mode = _resolve_error_mode(samples, error_mode)

    path = prune_path(build(samples, config), measure)
    sizes = sorted(set(path.sizes))

    folds = KFold(n_splits=k, shuffle=shuffle, random_state=random_state if shuffle else None)
    rows = Parallel(n_jobs=n_jobs)(
        delayed(_fold_errors)(samples, tr, te, config, measure, error_mode, sizes)
        for tr, te in folds.split(np.zeros((n, 1)))
    )
    fold_errors = np.vstack(rows)

    present = ~np.isnan(fold_errors)
    counts = present.sum(axis=0)
    filled = np.where(present, fold_errors, 0.0)
    with np.errstate(invalid="ignore", divide="ignore"):
        mean = np.where(counts > 0, filled.sum(axis=0) / np.maximum(counts, 1), np.nan)
        dev = np.where(present, fold_errors - mean, 0.0)
        var = (dev * dev).sum(axis=0) / np.maximum(counts - 1, 1)
        se = np.where(counts > 1, np.sqrt(var / np.maximum(counts, 1)), 0.0)

    chosen = _select_size(sizes, mean, se, one_se)
    chosen_alpha = path.entry_for_size(chosen).alpha
    logger.info("cross-validation (k=%d, %s): chose %d leaves (alpha=%.6g, error=%.6g)",
                k, error_mode, chosen, chosen_alpha, mean[sizes.index(chosen)])
    return CVResult(
        sizes=tuple(int(s) for s in sizes),
        mean_error=tuple(float(v) for v in mean),
        std_error=tuple(float(v) for v in se),
        n_folds=tuple(int(c) for c in counts),
        chosen_size=int(chosen),
        chosen_alpha=float(chosen_alpha),
        error_mode=error_mode,
        k=int(k),
        fold_errors=fold_errors,
        path=path,
    )


def _select_size(sizes, mean, se, one_se: bool) -> int:
    valid = ~np.isnan(mean)
    if not valid.any():
        # cannot happen: every fold has a root leaf, so size 1 always has data
        return int(sizes[0])
    best_i = int(np.nanargmin(mean))
    bound = mean[best_i] + (se[best_i] if one_se else 0.0)
    ok = valid & (mean <= bound + _REL_TOL * max(1.0, abs(bound)))
    # sizes are ascending, so the first acceptable size is the most pruned one
    return int(sizes[int(np.flatnonzero(ok)[0])])


def fit_pruned(samples: SampleSet, config: Optional[TreeConfig] = None, k: int = 10,
               **cv_options) -> Tuple[Node, CVResult]:
    """
    Grow on all rows, pick the size by cross-validation and prune to it.

    ``cv_options`` are forwarded to :func:`cross_validate`.
    """
    cv = cross_validate(samples, k, config, **cv_options)
    tree = prune_to_size(cv.path[0].tree, cv.chosen_size, cv.path.measure)
    return tree, cv
