import json

import numpy as np
import pytest

from cartpy import SampleSet, TreeConfig, build
from cartpy.node import depth, from_dict, iter_leaves, iter_nodes, n_leaves, to_dict
from cartpy.predict import predict


def _mixed_tree():
    X = np.array([[1.0, 'red'], [2.0, 'red'], [3.0, 'blue'], [4.0, 'blue'],
                  [5.0, 'green'], [6.0, 'green'], [7.0, 'green'], [8.0, 'red']], dtype=object)
    y = np.array([1.0, 1.2, 5.0, 5.5, 9.0, 9.1, 9.3, 1.1])
    samples = SampleSet(X, y, feature_names=['size', 'colour'])
    return samples, build(samples, TreeConfig(min_node_size=2))


def test_dict_round_trip_through_json():
    samples, root = _mixed_tree()
    restored = from_dict(json.loads(json.dumps(to_dict(root))))
    assert restored == root
    for row in samples.iter_rows():
        assert predict(restored, row) == predict(root, row)


def test_categorical_levels_are_sorted_lists():
    _, root = _mixed_tree()
    d = to_dict(root)
    assert d['type'] == 'split'
    assert d['kind'] == 'categorical'
    assert d['left_levels'] == sorted(d['left_levels'])
    assert set(d['left_levels']) | set(d['right_levels']) == {'red', 'blue', 'green'}


def test_classification_leaf_round_trip():
    samples = SampleSet([[1.0], [2.0], [8.0], [9.0]], ['a', 'a', 'b', 'b'])
    root = build(samples, TreeConfig(min_node_size=1))
    d = to_dict(root)
    assert d['left']['class_counts'] == [2.0, 0.0]
    assert d['left']['value'] == 'a'
    assert from_dict(d) == root


def test_unknown_node_type():
    with pytest.raises(ValueError):
        from_dict({'type': 'branch'})


def test_traversal_helpers():
    _, root = _mixed_tree()
    nodes = list(iter_nodes(root))
    assert nodes[0] is root
    leaves = list(iter_leaves(root))
    assert len(leaves) == n_leaves(root)
    assert len(nodes) == 2 * len(leaves) - 1
    assert sum(leaf.n_samples for leaf in leaves) == root.n_samples
    assert 1 <= depth(root) < len(leaves)
