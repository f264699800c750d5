import numpy as np
import pytest

from cartpy import SampleSet
from cartpy.data import CATEGORICAL, CLASSIFICATION, NUMERIC, REGRESSION
from cartpy.exceptions import SchemaMismatchError


def test_task_and_kind_inference():
    X = np.array([[1, 'A'], [2, 'B'], [3, 'A']], dtype=object)
    samples = SampleSet(X, [0.5, 1.5, 2.5])
    assert samples.task == REGRESSION
    assert [f.kind for f in samples.features] == [NUMERIC, CATEGORICAL]
    assert samples.features[1].levels == ('A', 'B')
    assert samples.feature_names == ['x0', 'x1']

    labelled = SampleSet(X, ['no', 'yes', 'no'])
    assert labelled.task == CLASSIFICATION
    assert list(labelled.classes) == ['no', 'yes']
    assert list(labelled.y) == [0, 1, 0]
    assert list(labelled.targets()) == ['no', 'yes', 'no']


def test_integer_target_can_be_forced_to_regression():
    samples = SampleSet([[1.0], [2.0]], [1, 2], task='regression')
    assert samples.task == REGRESSION
    assert samples.y.dtype == float


def test_row_decoding():
    X = np.array([[1, 'A'], [2, 'B']], dtype=object)
    samples = SampleSet(X, [0, 1], feature_names=['num', 'cat'])
    assert samples.row(1) == [2.0, 'B']
    assert samples.as_dict(0) == {'num': 1.0, 'cat': 'A'}
    assert len(list(samples.iter_rows())) == len(samples) == 2


def test_subset_keeps_schema():
    X = np.array([[1, 'A'], [2, 'B'], [3, 'C']], dtype=object)
    samples = SampleSet(X, ['p', 'q', 'r'])
    sub = samples.subset([0, 2])
    assert sub.n_samples == 2
    assert sub.features == samples.features
    assert sub.n_classes == 3
    assert list(sub.targets()) == ['p', 'r']
    assert samples.subset(np.array([False, True, False])).row(0) == [2.0, 'B']
    samples.check_compatible(sub)


def test_check_compatible_rejects_other_schema():
    a = SampleSet([[1.0, 2.0]], [1.0])
    b = SampleSet([[1.0, 'A']], [1.0])
    with pytest.raises(SchemaMismatchError):
        a.check_compatible(b)
    with pytest.raises(SchemaMismatchError):
        a.feature_index('nope')
    assert a.feature_index('x1') == 1


def test_arrays_are_read_only():
    samples = SampleSet([[1.0], [2.0]], [0.0, 1.0])
    with pytest.raises(ValueError):
        samples.column(0)[0] = 5.0
    with pytest.raises(ValueError):
        samples.y[0] = 5.0


@pytest.mark.parametrize('X, y', [
    ([[1.0], [np.nan]], [0.0, 1.0]),
    ([[1.0], [None]], [0.0, 1.0]),
    ([[1.0], [2.0]], [0.0, np.nan]),
    ([[1.0], [2.0]], [0.0]),
    ([[1.0, 2.0]], [0.0, 1.0]),
])
def test_invalid_inputs(X, y):
    with pytest.raises(ValueError):
        SampleSet(X, y)


def test_feature_names_must_be_unique():
    with pytest.raises(ValueError):
        SampleSet([[1.0, 2.0]], [0.0], feature_names=['a', 'a'])


def test_equal_numbers_share_a_level():
    X = np.array([[1], [1.0], [2]], dtype=object)
    samples = SampleSet(X, [0, 0, 1], categorical_features=[0])
    assert len(samples.features[0].levels) == 2
    assert samples.column(0)[0] == samples.column(0)[1]


def test_bool_and_number_levels_are_not_merged():
    X = np.array([[True], [1], [0]], dtype=object)
    with pytest.raises(ValueError):
        SampleSet(X, [0, 1, 0])
