"""Recursive partitioning: grow a full tree from a sample set."""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .config import TreeConfig
from .criteria import class_impurity, rss
from .data import CATEGORICAL, SampleSet
from .exceptions import EmptySubsetError
from .node import Leaf, Node, Split, depth, n_leaves
from .splitter import best_split

logger = logging.getLogger(__name__)

_TOL = 1e-12


def build(samples: SampleSet, config: Optional[TreeConfig] = None, indices=None) -> Node:
    """
    Grow a tree on ``samples`` (or on the rows ``indices`` of it).

    A node becomes a leaf when it has fewer than ``min_node_size`` rows, is
    pure, sits at ``max_depth``, has no valid split, or when the best split
    does not decrease the impurity by at least ``min_impurity_decrease``
    (zero-gain splits are never taken).  Otherwise the rows are partitioned by
    the split predicate and both sides are grown, left first.

    The result depends only on ``(samples, config)``: the optional per-split
    feature draw (``config.max_features``) is seeded by
    ``config.random_state``.

    Raises
    ------
    EmptySubsetError
        If there are no rows to grow on.
    InvalidConfigError
        If the configured criterion does not fit the task.
    FeatureCardinalityExceededError
        Propagated from the splitter.
    """
    config = config or TreeConfig()
    criterion = config.resolve_criterion(samples.task)
    idx = np.arange(samples.n_samples, dtype=np.intp) if indices is None \
        else np.asarray(indices, dtype=np.intp)
    if idx.size == 0:
        raise EmptySubsetError()
    rng = np.random.default_rng(config.random_state) if config.max_features is not None else None
    root = _Grower(samples, config, criterion, rng).grow(idx, 0)
    logger.debug("grew %s tree: %d rows, %d leaves, depth %d (criterion=%s)",
                 samples.task, idx.size, n_leaves(root), depth(root), criterion)
    return root


class _Grower:
    def __init__(self, samples: SampleSet, config: TreeConfig, criterion: str, rng):
        self.samples = samples
        self.config = config
        self.criterion = criterion
        self.rng = rng

    def _stats(self, idx: np.ndarray):
        y = self.samples.y[idx]
        if self.samples.is_classification:
            counts = np.bincount(y, minlength=self.samples.n_classes).astype(float)
            value = self.samples.classes[int(np.argmax(counts))]
            pure = np.count_nonzero(counts) <= 1
            return value, class_impurity(counts, self.criterion), tuple(counts), pure
        imp = rss(y)
        pure = bool(np.all(y == y[0]))
        return float(y.mean()), imp, None, pure

    def _eligible(self):
        if self.rng is None:
            return None
        m = self.samples.n_features
        k = min(self.config.max_features, m)
        return self.rng.choice(m, size=k, replace=False)

    def grow(self, idx: np.ndarray, level: int) -> Node:
        if idx.size == 0:
            raise EmptySubsetError()
        value, impurity, counts, pure = self._stats(idx)
        leaf = Leaf(value=value, n_samples=int(idx.size), impurity=impurity, class_counts=counts)
        cfg = self.config
        if idx.size < cfg.min_node_size or pure:
            return leaf
        if cfg.max_depth is not None and level >= cfg.max_depth:
            return leaf

        cand = best_split(self.samples, idx, cfg, features=self._eligible())
        if cand is None:
            return leaf
        decrease = impurity - cand.score
        if decrease <= _TOL * max(1.0, impurity) or decrease < cfg.min_impurity_decrease:
            return leaf

        mask = cand.left_mask(self.samples, idx)
        left = self.grow(idx[mask], level + 1)
        right = self.grow(idx[~mask], level + 1)

        feat = self.samples.features[cand.feature_index]
        left_levels = right_levels = None
        if feat.kind == CATEGORICAL:
            left_levels = frozenset(feat.levels[c] for c in cand.left_codes)
            right_levels = frozenset(feat.levels) - left_levels
        return Split(
            feature_index=cand.feature_index,
            feature_name=feat.name,
            kind=feat.kind,
            left=left,
            right=right,
            value=value,
            n_samples=int(idx.size),
            impurity=impurity,
            threshold=cand.threshold,
            left_levels=left_levels,
            right_levels=right_levels,
            class_counts=counts,
        )
