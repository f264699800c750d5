"""
Node impurity measures.

Every function returns a *total* impurity (summed over the rows of the node)
so that the impurity of a split is simply the sum of its two children:

* ``rss``: residual sum of squares around the node mean,
* ``gini``: ``n * sum_k p_k (1 - p_k)``,
* ``entropy``: ``n * -sum_k p_k log p_k`` (natural log),
* ``misclassification``: ``n - max_k n_k``.

The ``*_rows`` variants work on a 2-D array of class counts (one node per row)
and are used by the splitter to score all candidate thresholds at once.
"""
from __future__ import annotations

import numpy as np


def _totals(counts: np.ndarray) -> np.ndarray:
    return counts.sum(axis=-1)


def gini_rows(counts: np.ndarray) -> np.ndarray:
    counts = np.asarray(counts, dtype=float)
    n = _totals(counts)
    sq = (counts * counts).sum(axis=-1)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = n - np.where(n > 0, sq / n, 0.0)
    return np.maximum(out, 0.0)


def entropy_rows(counts: np.ndarray) -> np.ndarray:
    counts = np.asarray(counts, dtype=float)
    n = _totals(counts)[..., None]
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = np.where(counts > 0, counts * np.log(counts / n), 0.0)
    return np.maximum(-terms.sum(axis=-1), 0.0)


def misclassification_rows(counts: np.ndarray) -> np.ndarray:
    counts = np.asarray(counts, dtype=float)
    if counts.shape[-1] == 0:
        return np.zeros(counts.shape[:-1])
    return _totals(counts) - counts.max(axis=-1)


_CLASS_MEASURES = {
    "gini": gini_rows,
    "entropy": entropy_rows,
    "misclassification": misclassification_rows,
}


def class_impurity_rows(counts: np.ndarray, kind: str) -> np.ndarray:
    try:
        return _CLASS_MEASURES[kind](counts)
    except KeyError:
        raise ValueError(f"unknown classification impurity {kind!r}") from None


def class_impurity(counts: np.ndarray, kind: str) -> float:
    """Total impurity of a single node given its class counts."""
    return float(class_impurity_rows(np.asarray(counts, dtype=float)[None, :], kind)[0])


def rss(y: np.ndarray) -> float:
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return 0.0
    d = y - y.mean()
    return float((d * d).sum())


def rss_from_sums(n, sy, sy2):
    """RSS from counts, sums and sums of squares; works elementwise on arrays."""
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(n > 0, sy2 - sy * sy / np.where(n > 0, n, 1.0), 0.0)
    return np.maximum(out, 0.0)
