"""Tree growing configuration."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidConfigError

CLASSIFICATION_CRITERIA = ("gini", "entropy", "misclassification")
REGRESSION_CRITERIA = ("rss",)
CRITERIA = CLASSIFICATION_CRITERIA + REGRESSION_CRITERIA


@dataclass(frozen=True)
class TreeConfig:
    """
    Stopping rules and split options shared by the builder, the splitter and
    the cross-validator.

    Parameters
    ----------
    max_depth : int or None, default=None
        Maximum depth of the tree (the root has depth 0).  ``None`` means
        unbounded.
    min_node_size : int, default=10
        Nodes with fewer rows than this are never split.
    min_leaf_size : int, default=1
        Minimum number of rows on each side of a split.
    min_impurity_decrease : float, default=0.0
        Splits whose total impurity decrease is below this value are rejected.
    criterion : {"gini", "entropy", "misclassification", "rss"} or None
        Impurity used to choose splits.  ``None`` resolves to ``"rss"`` for
        regression and ``"gini"`` for classification.
    max_categories : int, default=10
        Level cap for exhaustive multi-class categorical split search.
    max_features : int or None, default=None
        If set, only this many randomly drawn features are eligible at each
        split.  Used by ensemble wrappers.
    random_state : int or None, default=None
        Seed for the feature draw.  Required when ``max_features`` is set.
    """

    max_depth: Optional[int] = None
    min_node_size: int = 10
    min_leaf_size: int = 1
    min_impurity_decrease: float = 0.0
    criterion: Optional[str] = None
    max_categories: int = 10
    max_features: Optional[int] = None
    random_state: Optional[int] = None

    def __post_init__(self):
        if self.max_depth is not None and self.max_depth < 1:
            raise InvalidConfigError(f"max_depth must be >= 1 or None, got {self.max_depth}")
        if self.min_node_size < 1:
            raise InvalidConfigError(f"min_node_size must be >= 1, got {self.min_node_size}")
        if self.min_leaf_size < 1:
            raise InvalidConfigError(f"min_leaf_size must be >= 1, got {self.min_leaf_size}")
        if self.min_impurity_decrease < 0:
            raise InvalidConfigError(
                f"min_impurity_decrease must be >= 0, got {self.min_impurity_decrease}"
            )
        if self.criterion is not None and self.criterion not in CRITERIA:
            raise InvalidConfigError(
                f"criterion must be one of {CRITERIA} or None, got {self.criterion!r}"
            )
        if self.max_categories < 2:
            raise InvalidConfigError(f"max_categories must be >= 2, got {self.max_categories}")
        if self.max_features is not None:
            if self.max_features < 1:
                raise InvalidConfigError(f"max_features must be >= 1, got {self.max_features}")
            if self.random_state is None:
                raise InvalidConfigError("max_features requires an explicit random_state")

    def resolve_criterion(self, task: str) -> str:
        """Return the effective criterion for ``task`` ("regression" or "classification")."""
        if task == "regression":
            if self.criterion not in (None, "rss"):
                raise InvalidConfigError(
                    f"criterion {self.criterion!r} is not valid for a regression tree"
                )
            return "rss"
        if self.criterion == "rss":
            raise InvalidConfigError("criterion 'rss' is not valid for a classification tree")
        return self.criterion or "gini"

    def replace(self, **changes) -> "TreeConfig":
        return dataclasses.replace(self, **changes)
