"""
cartpy.splitter
===============

Exhaustive best-split search for a single node.

Numeric features are scanned over every midpoint between consecutive
distinct values using prefix sums, so each feature costs one sort plus a
vectorized pass.  Categorical features are split into two groups of levels:

* regression and binary classification order the levels by mean response
  (or positive-class proportion) and scan the ``L - 1`` prefixes, which is
  known to contain the optimal bipartition;
* multi-class classification enumerates all ``2**(L-1) - 1`` bipartitions,
  capped by ``TreeConfig.max_categories``.

The search never modifies the sample set.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .config import TreeConfig
from .criteria import class_impurity_rows, rss_from_sums
from .data import CATEGORICAL, NUMERIC, SampleSet
from .exceptions import FeatureCardinalityExceededError

_REL_TOL = 1e-9


def _first_min(scores: np.ndarray) -> int:
    # lowest index among (numerically) tied minima
    m = float(scores.min())
    return int(np.flatnonzero(scores <= m + _REL_TOL * max(1.0, abs(m)))[0])


@dataclass(frozen=True)
class SplitCandidate:
    """
    Best split found for a node.

    Attributes
    ----------
    feature_index : int
        Column the split tests.
    kind : {"numeric", "categorical"}
        Kind of the column.
    threshold : float or None
        Numeric threshold; rows with ``value <= threshold`` go left.
    left_codes : frozenset[int] or None
        Categorical level codes sent to the left child.
    score : float
        Sum of the two children's total impurities.
    n_left : int
        Number of rows sent to the left child.
    """

    feature_index: int
    kind: str
    threshold: Optional[float]
    left_codes: Optional[frozenset]
    score: float
    n_left: int

    def left_mask(self, samples: SampleSet, indices: np.ndarray) -> np.ndarray:
        col = samples.column(self.feature_index)[indices]
        if self.kind == NUMERIC:
            return col <= self.threshold
        return np.isin(col, np.fromiter(self.left_codes, dtype=np.intp))


class _NodeData:
    """Response views of the rows reaching a node, shared by all features."""

    def __init__(self, samples: SampleSet, indices: np.ndarray, criterion: str):
        self.n = len(indices)
        self.criterion = criterion
        y = samples.y[indices]
        if samples.is_classification:
            self.onehot = np.zeros((self.n, samples.n_classes), dtype=float)
            self.onehot[np.arange(self.n), y] = 1.0
            self.total = self.onehot.sum(axis=0)
            self.yc = None
        else:
            self.onehot = None
            # centering keeps the prefix-sum RSS numerically stable
            self.yc = y - y.mean()
            self.sy = float(self.yc.sum())
            self.sy2 = float((self.yc * self.yc).sum())

    @property
    def is_classification(self) -> bool:
        return self.onehot is not None

    def scores_from_prefix(self, n_left, left_counts=None, sy_left=None, sy2_left=None):
        """Children impurity totals for a batch of candidate left children."""
        if self.is_classification:
            right_counts = self.total - left_counts
            return (class_impurity_rows(left_counts, self.criterion)
                    + class_impurity_rows(right_counts, self.criterion))
        n_right = self.n - n_left
        return (rss_from_sums(n_left, sy_left, sy2_left)
                + rss_from_sums(n_right, self.sy - sy_left, self.sy2 - sy2_left))


def best_split(samples: SampleSet, indices, config: TreeConfig,
               features: Optional[Iterable[int]] = None) -> Optional[SplitCandidate]:
    """
    Find the split of ``samples[indices]`` minimizing the children's summed
    impurity.

    Parameters
    ----------
    samples : SampleSet
        Training data.
    indices : array-like of int
        Rows reaching the node.
    config : TreeConfig
        Supplies ``criterion``, ``min_node_size``, ``min_leaf_size`` and
        ``max_categories``.
    features : iterable of int, optional
        Eligible feature indices.  All features when omitted.

    Returns
    -------
    SplitCandidate or None
        ``None`` when the node is below ``min_node_size`` or no feature
        yields a split with at least ``min_leaf_size`` rows per child.
        Ties are broken by lowest feature index, then lowest threshold.

    Raises
    ------
    FeatureCardinalityExceededError
        If a multi-class categorical search would exceed ``max_categories``.
    """
    indices = np.asarray(indices, dtype=np.intp)
    n = len(indices)
    if n < config.min_node_size or n < 2 * config.min_leaf_size:
        return None
    node = _NodeData(samples, indices, config.resolve_criterion(samples.task))
    eligible = range(samples.n_features) if features is None else sorted(set(features))

    best: Optional[SplitCandidate] = None
    for j in eligible:
        feat = samples.features[j]
        col = samples.column(j)[indices]
        if feat.kind == CATEGORICAL:
            cand = _categorical_split(j, feat.name, col, node, config)
        else:
            cand = _numeric_split(j, col, node, config)
        if cand is None:
            continue
        if best is None or cand.score < best.score - _REL_TOL * max(1.0, abs(best.score)):
            best = cand
    return best


def _numeric_split(j: int, col: np.ndarray, node: _NodeData,
                   config: TreeConfig) -> Optional[SplitCandidate]:
    order = np.argsort(col, kind="mergesort")
    v = col[order]
    bd = np.nonzero(v[:-1] != v[1:])[0]
    n_left = bd + 1
    ok = (n_left >= config.min_leaf_size) & (node.n - n_left >= config.min_leaf_size)
    bd, n_left = bd[ok], n_left[ok]
    if bd.size == 0:
        return None

    if node.is_classification:
        cum = node.onehot[order].cumsum(axis=0)
        scores = node.scores_from_prefix(n_left, left_counts=cum[bd])
    else:
        ys = node.yc[order]
        sy = np.cumsum(ys)
        sy2 = np.cumsum(ys * ys)
        scores = node.scores_from_prefix(n_left, sy_left=sy[bd], sy2_left=sy2[bd])

    i = _first_min(scores)
    lo, hi = float(v[bd[i]]), float(v[bd[i] + 1])
    thr = 0.5 * (lo + hi)
    if thr >= hi:
        # adjacent floats: the midpoint rounds up onto the right value
        thr = lo
    return SplitCandidate(j, NUMERIC, thr, None, float(scores[i]), int(n_left[i]))


def _categorical_split(j: int, name: str, col: np.ndarray, node: _NodeData,
                       config: TreeConfig) -> Optional[SplitCandidate]:
    present = np.unique(col)
    L = len(present)
    if L < 2:
        return None
    local = np.searchsorted(present, col)
    cnt = np.bincount(local, minlength=L).astype(float)

    if node.is_classification:
        K = node.onehot.shape[1]
        counts = np.zeros((L, K), dtype=float)
        np.add.at(counts, local, node.onehot)
        if K <= 2:
            prop = counts[:, -1] / cnt
            return _ordered_scan(j, present, np.lexsort((present, prop)), cnt, node, config,
                                 counts=counts)
        if L > config.max_categories:
            raise FeatureCardinalityExceededError(name, L, config.max_categories)
        return _exhaustive(j, present, cnt, counts, node, config)

    sy = np.bincount(local, weights=node.yc, minlength=L)
    sy2 = np.bincount(local, weights=node.yc * node.yc, minlength=L)
    means = sy / cnt
    return _ordered_scan(j, present, np.lexsort((present, means)), cnt, node, config,
                         sy=sy, sy2=sy2)


def _ordered_scan(j, present, order, cnt, node, config, counts=None, sy=None, sy2=None):
    n_left = np.cumsum(cnt[order])[:-1]
    if node.is_classification:
        scores = node.scores_from_prefix(n_left, left_counts=np.cumsum(counts[order], axis=0)[:-1])
    else:
        scores = node.scores_from_prefix(n_left, sy_left=np.cumsum(sy[order])[:-1],
                                         sy2_left=np.cumsum(sy2[order])[:-1])
    ok = (n_left >= config.min_leaf_size) & (node.n - n_left >= config.min_leaf_size)
    if not ok.any():
        return None
    scores = np.where(ok, scores, np.inf)
    t = _first_min(scores)
    left = frozenset(int(c) for c in present[order[:t + 1]])
    return SplitCandidate(j, CATEGORICAL, None, left, float(scores[t]), int(n_left[t]))


def _exhaustive(j, present, cnt, counts, node, config):
    L = len(present)
    # the first level is pinned to the left group so each bipartition appears once
    masks = np.arange(2 ** (L - 1) - 1, dtype=np.int64)
    member = np.zeros((masks.size, L), dtype=bool)
    member[:, 0] = True
    for b in range(L - 1):
        member[:, b + 1] = (masks >> b) & 1
    mf = member.astype(float)
    n_left = mf @ cnt
    scores = node.scores_from_prefix(n_left, left_counts=mf @ counts)
    ok = (n_left >= config.min_leaf_size) & (node.n - n_left >= config.min_leaf_size)
    if not ok.any():
        return None
    scores = np.where(ok, scores, np.inf)
    s = _first_min(scores)
    left = frozenset(int(c) for c in present[member[s]])
    return SplitCandidate(j, CATEGORICAL, None, left, float(scores[s]), int(n_left[s]))
