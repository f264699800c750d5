"""
cartpy.data
===========

Schema-typed container for predictors and response.

A :class:`SampleSet` stores every numeric column as a float array and every
categorical column as integer codes into the feature's level tuple.  For
classification the response is stored as integer codes into ``classes``.
All arrays are read-only so that trees built concurrently on the same set
cannot corrupt it.
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import SchemaMismatchError

NUMERIC = "numeric"
CATEGORICAL = "categorical"

REGRESSION = "regression"
CLASSIFICATION = "classification"


def _isnan_scalar(v: Any) -> bool:
    if v is None:
        return True
    try:
        return bool(np.isnan(v))
    except (TypeError, ValueError):
        return False


def _level_key(v: Any):
    # levels of mixed python types cannot be compared directly
    return (type(v).__name__, v)


def _readonly(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


def _value_kind(v: Any) -> str:
    if isinstance(v, (bool, np.bool_)):
        return "bool"
    if isinstance(v, numbers.Number):
        return "number"
    if isinstance(v, (str, np.str_)):
        return "str"
    return type(v).__name__


def _categorical_levels(col: np.ndarray, name: str) -> Tuple[Any, ...]:
    # equal values of one kind (1 and 1.0) share a level; True and 1 would too, so refuse
    kinds: Dict[Any, set] = {}
    for v in col.tolist():
        kinds.setdefault(v, set()).add(_value_kind(v))
    for level, seen in kinds.items():
        if len(seen) > 1:
            raise ValueError(
                f"categorical feature {name!r} mixes equal values of different kinds "
                f"({sorted(seen)}) for level {level!r}"
            )
    return tuple(sorted(kinds, key=_level_key))


@dataclass(frozen=True)
class Feature:
    """Name, kind and (for categorical features) the known levels of a column."""

    name: str
    kind: str = NUMERIC
    levels: Tuple[Any, ...] = ()

    @property
    def is_categorical(self) -> bool:
        return self.kind == CATEGORICAL


class SampleSet:
    """
    Rows of named features plus one response.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Predictors.  A pandas ``DataFrame`` is accepted; its column names are
        used when ``feature_names`` is not given.
    y : array-like of shape (n_samples,)
        Response.
    feature_names : sequence of str, optional
        Column names.  Defaults to ``x0, x1, ...``.
    categorical_features : sequence of int or str, optional
        Indices or names of categorical columns.
    infer_categorical : bool, default=True
        Also mark columns holding strings or booleans as categorical.
    task : {"regression", "classification"}, optional
        Inferred from ``y`` when omitted: floating point targets give a
        regression problem, anything else a classification problem.

    Raises
    ------
    ValueError
        On shape mismatches, duplicated names, missing values or numeric
        columns that cannot be converted to float.
    """

    def __init__(self, X, y, *, feature_names: Optional[Sequence[str]] = None,
                 categorical_features: Optional[Iterable[int | str]] = None,
                 infer_categorical: bool = True, task: Optional[str] = None):
        X_obj = np.asarray(X, dtype=object)
        if X_obj.ndim != 2:
            raise ValueError(f"X must be 2-dimensional, got shape {X_obj.shape}")
        n, m = X_obj.shape
        y_arr = np.asarray(y)
        if y_arr.ndim != 1 or y_arr.shape[0] != n:
            raise ValueError(f"y must be 1-dimensional with {n} entries, got shape {y_arr.shape}")

        if feature_names is None and hasattr(X, "columns"):
            feature_names = [str(c) for c in X.columns]
        names = list(feature_names) if feature_names is not None else [f"x{j}" for j in range(m)]
        if len(names) != m:
            raise ValueError("feature_names length must match X.shape[1]")
        if len(set(names)) != m:
            raise ValueError("feature_names must be unique")

        is_cat = self._categorical_mask(X_obj, names, categorical_features, infer_categorical)
        features: List[Feature] = []
        columns: List[np.ndarray] = []
        for j, name in enumerate(names):
            col = X_obj[:, j]
            if any(_isnan_scalar(v) for v in col):
                raise ValueError(f"feature {name!r} contains missing values")
            if is_cat[j]:
                levels = _categorical_levels(col, name)
                code_of = {lv: i for i, lv in enumerate(levels)}
                codes = np.fromiter((code_of[v] for v in col), dtype=np.intp, count=n)
                features.append(Feature(name, CATEGORICAL, levels))
                columns.append(_readonly(codes))
            else:
                try:
                    values = col.astype(float)
                except (TypeError, ValueError) as e:
                    raise ValueError(
                        f"feature {name!r} is not numeric; declare it in categorical_features"
                    ) from e
                features.append(Feature(name, NUMERIC))
                columns.append(_readonly(values))

        task = task or (REGRESSION if y_arr.dtype.kind == "f" else CLASSIFICATION)
        if task == REGRESSION:
            y_enc = y_arr.astype(float)
            if np.isnan(y_enc).any():
                raise ValueError("y contains missing values")
            classes = None
        elif task == CLASSIFICATION:
            if any(_isnan_scalar(v) for v in y_arr.tolist()):
                raise ValueError("y contains missing values")
            classes, y_enc = np.unique(y_arr, return_inverse=True)
            y_enc = y_enc.astype(np.intp)
            _readonly(classes)
        else:
            raise ValueError(f"task must be 'regression' or 'classification', got {task!r}")

        self._features = tuple(features)
        self._columns = tuple(columns)
        self._y = _readonly(y_enc)
        self._task = task
        self._classes = classes

    @classmethod
    def _from_parts(cls, features, columns, y, task, classes) -> "SampleSet":
        obj = cls.__new__(cls)
        obj._features = features
        obj._columns = columns
        obj._y = y
        obj._task = task
        obj._classes = classes
        return obj

    @staticmethod
    def _categorical_mask(X_obj, names, categorical_features, infer_categorical) -> List[bool]:
        m = X_obj.shape[1]
        is_cat = [False] * m
        if categorical_features is not None:
            name_to_idx = {n: i for i, n in enumerate(names)}
            for c in categorical_features:
                if isinstance(c, str):
                    if c not in name_to_idx:
                        raise ValueError(f"unknown categorical feature {c!r}")
                    is_cat[name_to_idx[c]] = True
                else:
                    is_cat[int(c)] = True
        if infer_categorical:
            for j in range(m):
                if not is_cat[j]:
                    is_cat[j] = any(isinstance(v, (str, bool, np.bool_)) for v in X_obj[:, j])
        return is_cat

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    @property
    def features(self) -> Tuple[Feature, ...]:
        return self._features

    @property
    def feature_names(self) -> List[str]:
        return [f.name for f in self._features]

    @property
    def task(self) -> str:
        return self._task

    @property
    def is_classification(self) -> bool:
        return self._task == CLASSIFICATION

    @property
    def classes(self) -> Optional[np.ndarray]:
        return self._classes

    @property
    def n_classes(self) -> int:
        return 0 if self._classes is None else len(self._classes)

    @property
    def n_samples(self) -> int:
        return int(self._y.shape[0])

    @property
    def n_features(self) -> int:
        return len(self._features)

    def __len__(self) -> int:
        return self.n_samples

    def __repr__(self) -> str:
        return (f"SampleSet(n_samples={self.n_samples}, n_features={self.n_features}, "
                f"task={self._task!r})")

    def feature_index(self, name: str) -> int:
        for j, f in enumerate(self._features):
            if f.name == name:
                return j
        raise SchemaMismatchError(f"unknown feature {name!r}")

    def check_compatible(self, other: "SampleSet") -> None:
        """Raise :class:`SchemaMismatchError` unless ``other`` has the same schema."""
        if other.task != self.task:
            raise SchemaMismatchError(f"task mismatch: {self.task!r} vs {other.task!r}")
        mine = [(f.name, f.kind) for f in self._features]
        theirs = [(f.name, f.kind) for f in other.features]
        if mine != theirs:
            raise SchemaMismatchError(f"feature schema mismatch: {mine} vs {theirs}")

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------
    @property
    def y(self) -> np.ndarray:
        """Response: floats for regression, class codes for classification."""
        return self._y

    def column(self, j: int) -> np.ndarray:
        return self._columns[j]

    def targets(self) -> np.ndarray:
        """Response in its original labels."""
        if self._classes is None:
            return self._y
        return self._classes[self._y]

    def row(self, i: int) -> List[Any]:
        """Row ``i`` with categorical codes decoded back to their levels."""
        out = []
        for f, col in zip(self._features, self._columns):
            v = col[i]
            out.append(f.levels[v] if f.is_categorical else float(v))
        return out

    def iter_rows(self) -> Iterator[List[Any]]:
        for i in range(self.n_samples):
            yield self.row(i)

    def as_dict(self, i: int) -> Dict[str, Any]:
        return dict(zip(self.feature_names, self.row(i)))

    def subset(self, indices) -> "SampleSet":
        """
        Rows selected by ``indices`` (integer positions or a boolean mask).

        The schema, including categorical levels and classes, is inherited from
        this set even when some levels or classes are absent from the subset.
        """
        idx = np.asarray(indices)
        if idx.dtype == bool:
            idx = np.flatnonzero(idx)
        idx = idx.astype(np.intp, copy=False)
        columns = tuple(_readonly(col[idx]) for col in self._columns)
        return SampleSet._from_parts(self._features, columns, _readonly(self._y[idx]),
                                     self._task, self._classes)
