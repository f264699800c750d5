"""
cartpy.pruning
==============

Cost-complexity (weakest-link) pruning.

For an internal node ``t`` with subtree ``T_t`` the effective complexity
parameter is::

    g(t) = (R(t) - R(T_t)) / (|leaves(T_t)| - 1)

where ``R`` is either the stored total impurity (``measure="impurity"``: RSS
for regression trees, gini/entropy totals for classification trees) or the
misclassification count (``measure="misclassification"``).  Each step
collapses every node whose ``g`` equals the current minimum and records the
resulting tree, until only the root is left.

Trees are immutable, so consecutive snapshots share every untouched subtree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .exceptions import InvalidConfigError, SizeNotOnPathError
from .node import Node, Split, as_leaf, n_leaves, to_dict

logger = logging.getLogger(__name__)

MEASURES = ("impurity", "misclassification")

_REL_TOL = 1e-9


def node_risk(node: Node, measure: str = "impurity") -> float:
    """``R(t)``: the risk of ``node`` if it were a leaf."""
    if measure == "impurity":
        return float(node.impurity)
    counts = node.class_counts
    return float(sum(counts) - max(counts))


def tree_risk(root: Node, measure: str = "impurity") -> Tuple[float, int]:
    """Total leaf risk and leaf count of the tree rooted at ``root``."""
    if root.is_leaf:
        return node_risk(root, measure), 1
    rl, ll = tree_risk(root.left, measure)
    rr, lr = tree_risk(root.right, measure)
    return rl + rr, ll + lr


def _check_measure(root: Node, measure: str) -> None:
    if measure not in MEASURES:
        raise InvalidConfigError(f"measure must be one of {MEASURES}, got {measure!r}")
    if measure == "misclassification" and root.class_counts is None:
        raise InvalidConfigError("misclassification pruning requires a classification tree")


@dataclass(frozen=True)
class PathEntry:
    """One subtree on the pruning path."""

    tree: Node
    alpha: float
    n_leaves: int
    resub_error: float


@dataclass(frozen=True)
class PruningPath:
    """
    Nested sequence of subtrees, from the input tree down to its root leaf.

    ``alpha`` increases strictly and ``n_leaves`` decreases strictly along
    ``entries``.  The first entry is the input tree with ``alpha = 0``, or
    ``alpha = -inf`` when the input contains subtrees that do not reduce the
    risk at all (those are removed by the second entry, at ``alpha = 0``).
    """

    entries: Tuple[PathEntry, ...]
    measure: str = "impurity"

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PathEntry]:
        return iter(self.entries)

    def __getitem__(self, i) -> PathEntry:
        return self.entries[i]

    @property
    def sizes(self) -> List[int]:
        return [e.n_leaves for e in self.entries]

    @property
    def alphas(self) -> List[float]:
        return [e.alpha for e in self.entries]

    def entry_for_size(self, size: int) -> PathEntry:
        for e in self.entries:
            if e.n_leaves == size:
                return e
        raise SizeNotOnPathError(size, self.sizes)

    def tree_for_size(self, size: int) -> Node:
        return self.entry_for_size(size).tree

    def smallest_at_least(self, size: int) -> Optional[PathEntry]:
        """Smallest subtree with at least ``size`` leaves, or ``None``."""
        found = None
        for e in self.entries:
            if e.n_leaves >= size:
                found = e
        return found

    def tree_for_alpha(self, alpha: float) -> Node:
        """Optimal subtree for complexity penalty ``alpha``."""
        chosen = self.entries[0]
        for e in self.entries:
            if e.alpha <= alpha:
                chosen = e
        return chosen.tree

    def to_dict(self) -> List[Dict[str, Any]]:
        return [{"size": e.n_leaves, "alpha": e.alpha, "resub_error": e.resub_error,
                 "tree": to_dict(e.tree)} for e in self.entries]


def _weakest_link(node: Split, measure: str) -> float:
    best = float("inf")

    def walk(t: Node) -> Tuple[float, int]:
        nonlocal best
        if t.is_leaf:
            return node_risk(t, measure), 1
        rl, ll = walk(t.left)
        rr, lr = walk(t.right)
        r_sub, leaves = rl + rr, ll + lr
        best = min(best, (node_risk(t, measure) - r_sub) / (leaves - 1))
        return r_sub, leaves

    walk(node)
    return best


def _collapse(node: Node, alpha: float, measure: str) -> Tuple[Node, float, int]:
    """Collapse every node with ``g <= alpha``; returns (tree, risk, leaves)."""
    if node.is_leaf:
        return node, node_risk(node, measure), 1
    left, rl, ll = _collapse(node.left, alpha, measure)
    right, rr, lr = _collapse(node.right, alpha, measure)
    r_sub, leaves = rl + rr, ll + lr
    r_node = node_risk(node, measure)
    if (r_node - r_sub) / (leaves - 1) <= alpha + _REL_TOL * max(1.0, abs(alpha)):
        return as_leaf(node), r_node, 1
    if left is node.left and right is node.right:
        return node, r_sub, leaves
    return replace(node, left=left, right=right), r_sub, leaves


def prune_path(root: Node, measure: str = "impurity") -> PruningPath:
    """
    Weakest-link pruning path of ``root``.

    Parameters
    ----------
    root : Node
        Fully grown tree.  It is not modified.
    measure : {"impurity", "misclassification"}, default="impurity"
        Risk used for ``R``.  ``"misclassification"`` requires a
        classification tree.

    Returns
    -------
    PruningPath
    """
    _check_measure(root, measure)
    r0, l0 = tree_risk(root, measure)
    entries = [PathEntry(root, 0.0, l0, r0)]
    current = root
    while not current.is_leaf:
        alpha = max(_weakest_link(current, measure), 0.0)
        if len(entries) == 1 and alpha <= _REL_TOL:
            entries[0] = replace(entries[0], alpha=float("-inf"))
            alpha = 0.0
        current, risk, leaves = _collapse(current, alpha, measure)
        entries.append(PathEntry(current, alpha, leaves, risk))
    logger.debug("pruning path (%s): sizes=%s", measure, [e.n_leaves for e in entries])
    return PruningPath(tuple(entries), measure)


def prune_to_size(root: Node, size: int, measure: str = "impurity") -> Node:
    """
    Subtree of ``root`` on its pruning path with exactly ``size`` leaves.

    Raises
    ------
    SizeNotOnPathError
        If no subtree on the path has ``size`` leaves.  The error carries the
        nearest smaller and nearest larger sizes that are available.
    """
    if not root.is_leaf and int(size) == n_leaves(root):
        _check_measure(root, measure)
        return root
    return prune_path(root, measure).tree_for_size(int(size))
