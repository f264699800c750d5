# cartpy/__init__.py
"""
cartpy: CART decision trees with cost-complexity pruning in pure Python.

Exports:
    - CARTClassifier, CARTRegressor (scikit-learn style estimators)
    - SampleSet, TreeConfig
    - build, prune_path, prune_to_size, cross_validate, fit_pruned
    - predict, predict_proba
"""
import logging

from .builder import build
from .config import TreeConfig
from .cross_validation import CVResult, cross_validate, fit_pruned
from .data import Feature, SampleSet
from .exceptions import (
    CartError,
    EmptySubsetError,
    FeatureCardinalityExceededError,
    InvalidConfigError,
    SchemaMismatchError,
    SizeNotOnPathError,
    UnseenCategoricalLevelError,
)
from .node import Leaf, Split, from_dict, to_dict
from .predict import apply, predict, predict_many, predict_proba
from .pruning import PathEntry, PruningPath, prune_path, prune_to_size
from .regressor import CARTRegressor
from .tree import CARTClassifier

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CARTClassifier", "CARTRegressor",
    "SampleSet", "Feature", "TreeConfig",
    "Leaf", "Split", "to_dict", "from_dict",
    "build", "prune_path", "prune_to_size", "PruningPath", "PathEntry",
    "cross_validate", "fit_pruned", "CVResult",
    "apply", "predict", "predict_proba", "predict_many",
    "CartError", "EmptySubsetError", "FeatureCardinalityExceededError", "InvalidConfigError",
    "SchemaMismatchError", "SizeNotOnPathError", "UnseenCategoricalLevelError",
]
__version__ = "0.1.0"
