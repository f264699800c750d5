"""
cartpy.exceptions
=================

Typed errors raised by the tree core.  All of them derive from
:class:`CartError` so callers can catch the whole family at once; the ones
describing bad input values also derive from :class:`ValueError`.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence


class CartError(Exception):
    """Base class for every error raised by cartpy."""


class InvalidConfigError(CartError, ValueError):
    """Raised when a configuration value is out of range or inconsistent."""


class EmptySubsetError(CartError, ValueError):
    """Raised when a tree is requested for a subset with zero rows."""

    def __init__(self, message: str = "cannot build a tree on an empty subset"):
        super().__init__(message)


class FeatureCardinalityExceededError(CartError, ValueError):
    """
    Raised when an exhaustive categorical split search would exceed the
    configured level cap.

    Attributes
    ----------
    feature : str
        Name of the offending feature.
    n_levels : int
        Number of levels observed at the node.
    max_levels : int
        Configured cap (``TreeConfig.max_categories``).
    """

    def __init__(self, feature: str, n_levels: int, max_levels: int):
        super().__init__(
            f"feature {feature!r} has {n_levels} levels at this node; exhaustive "
            f"multi-class search is capped at {max_levels}"
        )
        self.feature = feature
        self.n_levels = n_levels
        self.max_levels = max_levels


class SizeNotOnPathError(CartError, LookupError):
    """
    Raised by :func:`cartpy.pruning.prune_to_size` when no tree on the pruning
    path has exactly the requested number of leaves.

    The nearest achievable sizes are attached so the caller can retry with
    one of them.

    Attributes
    ----------
    size : int
        The requested leaf count.
    nearest_smaller : int or None
        Largest available size below ``size``.
    nearest_larger : int or None
        Smallest available size above ``size``.
    available_sizes : tuple[int, ...]
        Every leaf count on the path, in decreasing order.
    """

    def __init__(self, size: int, available_sizes: Sequence[int]):
        self.size = int(size)
        self.available_sizes = tuple(int(s) for s in available_sizes)
        smaller = [s for s in self.available_sizes if s < self.size]
        larger = [s for s in self.available_sizes if s > self.size]
        self.nearest_smaller: Optional[int] = max(smaller) if smaller else None
        self.nearest_larger: Optional[int] = min(larger) if larger else None
        super().__init__(
            f"no subtree with {self.size} leaves on the pruning path "
            f"(nearest smaller: {self.nearest_smaller}, nearest larger: "
            f"{self.nearest_larger}, available: {list(self.available_sizes)})"
        )


class SchemaMismatchError(CartError, ValueError):
    """Raised when a row or sample set does not match the training schema."""


class UnseenCategoricalLevelError(CartError, ValueError):
    """
    Raised when a categorical value reaching a split was never observed for
    that feature during training.

    Attributes
    ----------
    feature : str
        Feature name.
    value : Any
        The unseen value.
    known_levels : frozenset
        Levels known to the split.
    """

    def __init__(self, feature: str, value: Any, known_levels: frozenset):
        super().__init__(f"unseen level {value!r} for categorical feature {feature!r}")
        self.feature = feature
        self.value = value
        self.known_levels = known_levels
