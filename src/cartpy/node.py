"""
cartpy.node
===========

Immutable tree nodes.

A tree is a single root node that owns its subtree: a :class:`Split` holds
exactly two children and a :class:`Leaf` holds none.  Nodes are frozen
dataclasses, so equality is structural and subtrees may be shared between the
snapshots of a pruning path without any risk of aliasing.

Both variants carry the statistics of the training rows that reached them
(``value``, ``n_samples``, ``impurity`` and, for classification,
``class_counts``); this is what lets the pruner collapse a split into a leaf
without looking at the data again.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from .data import CATEGORICAL, NUMERIC
from .exceptions import UnseenCategoricalLevelError


@dataclass(frozen=True)
class Leaf:
    """
    Terminal node.

    Attributes
    ----------
    value : float or class label
        Mean response (regression) or majority class (classification).
    n_samples : int
        Number of training rows that reached the node.
    impurity : float
        Total impurity of those rows.
    class_counts : tuple[float, ...] or None
        Per-class counts, ordered like the training classes.
    """

    value: Any
    n_samples: int
    impurity: float
    class_counts: Optional[Tuple[float, ...]] = None

    is_leaf: ClassVar[bool] = True

    @property
    def proba(self) -> Optional[np.ndarray]:
        if self.class_counts is None:
            return None
        counts = np.asarray(self.class_counts, dtype=float)
        tot = counts.sum()
        if tot <= 0:
            return np.full(len(counts), 1.0 / len(counts))
        return counts / tot


@dataclass(frozen=True)
class Split:
    """
    Internal node with a binary predicate.

    Numeric splits send ``value <= threshold`` to the left child.  Categorical
    splits send ``value in left_levels`` to the left child and every other
    training level (``right_levels``) to the right.
    """

    feature_index: int
    feature_name: str
    kind: str
    left: "Node"
    right: "Node"
    value: Any
    n_samples: int
    impurity: float
    threshold: Optional[float] = None
    left_levels: Optional[frozenset] = None
    right_levels: Optional[frozenset] = None
    class_counts: Optional[Tuple[float, ...]] = None

    is_leaf: ClassVar[bool] = False

    def goes_left(self, value: Any) -> bool:
        if self.kind == NUMERIC:
            return float(value) <= self.threshold
        if value in self.left_levels:
            return True
        if value in self.right_levels:
            return False
        raise UnseenCategoricalLevelError(self.feature_name, value,
                                          self.left_levels | self.right_levels)

    def describe(self, name: Optional[str] = None, left: bool = True) -> str:
        """Human readable condition for the left (or right) branch."""
        name = name or self.feature_name
        if self.kind == NUMERIC:
            op = "<=" if left else ">"
            return f"{name} {op} {self.threshold:.6g}"
        S = "{" + ", ".join(map(str, sorted(self.left_levels, key=str))) + "}"
        return f"{name} {'IN' if left else 'NOT IN'} {S}"


Node = Union[Leaf, Split]


def as_leaf(node: Node) -> Leaf:
    """Collapse ``node`` (and its whole subtree) into a single leaf."""
    if node.is_leaf:
        return node
    return Leaf(value=node.value, n_samples=node.n_samples, impurity=node.impurity,
                class_counts=node.class_counts)


def iter_nodes(node: Node) -> Iterator[Node]:
    """Pre-order traversal, left before right."""
    stack = [node]
    while stack:
        cur = stack.pop()
        yield cur
        if not cur.is_leaf:
            stack.append(cur.right)
            stack.append(cur.left)


def iter_leaves(node: Node) -> Iterator[Leaf]:
    return (n for n in iter_nodes(node) if n.is_leaf)


def n_leaves(node: Node) -> int:
    return sum(1 for _ in iter_leaves(node))


def depth(node: Node) -> int:
    if node.is_leaf:
        return 0
    return 1 + max(depth(node.left), depth(node.right))


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------
def _plain(v: Any) -> Any:
    return v.item() if isinstance(v, np.generic) else v


def _levels_out(levels: frozenset) -> list:
    return sorted((_plain(v) for v in levels), key=lambda v: (type(v).__name__, v))


def to_dict(node: Node) -> Dict[str, Any]:
    """Nested tagged records (``{"type": "leaf" | "split", ...}``)."""
    out: Dict[str, Any] = {
        "value": _plain(node.value),
        "n_samples": int(node.n_samples),
        "impurity": float(node.impurity),
    }
    if node.class_counts is not None:
        out["class_counts"] = [float(c) for c in node.class_counts]
    if node.is_leaf:
        return {"type": "leaf", **out}
    out.update(feature_index=int(node.feature_index), feature_name=node.feature_name,
               kind=node.kind)
    if node.kind == NUMERIC:
        out["threshold"] = float(node.threshold)
    else:
        out["left_levels"] = _levels_out(node.left_levels)
        out["right_levels"] = _levels_out(node.right_levels)
    out["left"] = to_dict(node.left)
    out["right"] = to_dict(node.right)
    return {"type": "split", **out}


def from_dict(d: Dict[str, Any]) -> Node:
    counts = d.get("class_counts")
    counts = tuple(float(c) for c in counts) if counts is not None else None
    if d["type"] == "leaf":
        return Leaf(value=d["value"], n_samples=int(d["n_samples"]),
                    impurity=float(d["impurity"]), class_counts=counts)
    if d["type"] != "split":
        raise ValueError(f"unknown node type {d['type']!r}")
    kind = d["kind"]
    return Split(
        feature_index=int(d["feature_index"]),
        feature_name=d["feature_name"],
        kind=kind,
        left=from_dict(d["left"]),
        right=from_dict(d["right"]),
        value=d["value"],
        n_samples=int(d["n_samples"]),
        impurity=float(d["impurity"]),
        threshold=float(d["threshold"]) if kind == NUMERIC else None,
        left_levels=frozenset(d["left_levels"]) if kind == CATEGORICAL else None,
        right_levels=frozenset(d["right_levels"]) if kind == CATEGORICAL else None,
        class_counts=counts,
    )
