"""Root-to-leaf evaluation of a single tree."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

import numpy as np

from .data import NUMERIC, _isnan_scalar
from .exceptions import SchemaMismatchError
from .node import Leaf, Node


def _feature_value(node, row) -> Any:
    if isinstance(row, Mapping):
        if node.feature_name not in row:
            raise SchemaMismatchError(f"row has no feature {node.feature_name!r}")
        val = row[node.feature_name]
    else:
        try:
            val = row[node.feature_index]
        except IndexError:
            raise SchemaMismatchError(
                f"row of length {len(row)} has no feature {node.feature_name!r} "
                f"(index {node.feature_index})"
            ) from None
    if _isnan_scalar(val):
        raise SchemaMismatchError(f"missing value for feature {node.feature_name!r}")
    if node.kind == NUMERIC:
        try:
            return float(val)
        except (TypeError, ValueError):
            raise SchemaMismatchError(
                f"feature {node.feature_name!r} expects a numeric value, got {val!r}"
            ) from None
    return val


def apply(root: Node, row) -> Leaf:
    """
    Leaf reached by ``row``.

    ``row`` is either a mapping from feature name to value or a sequence
    indexed like the training features.

    Raises
    ------
    SchemaMismatchError
        If the row lacks a feature tested on its way down.
    UnseenCategoricalLevelError
        If a categorical value was not known to the split testing it.
    """
    node = root
    while not node.is_leaf:
        node = node.left if node.goes_left(_feature_value(node, row)) else node.right
    return node


def predict(root: Node, row) -> Any:
    """Mean response (regression) or majority class (classification) for ``row``."""
    return apply(root, row).value


def predict_proba(root: Node, row) -> np.ndarray:
    """Class-probability vector stored at the leaf reached by ``row``."""
    leaf = apply(root, row)
    if leaf.class_counts is None:
        raise ValueError("predict_proba requires a classification tree")
    return leaf.proba


def predict_many(root: Node, rows: Iterable) -> np.ndarray:
    """:func:`predict` for every row; an ndarray of values."""
    return np.array([predict(root, r) for r in rows])
