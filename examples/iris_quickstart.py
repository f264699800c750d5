from time import perf_counter

import numpy as np
from sklearn.datasets import load_iris
from cartpy import CARTClassifier

data = load_iris()
feats = list(data.feature_names)
# a categorical copy of petal width shows the exhaustive multi-class subset search
width_band = np.digitize(data.data[:, 3], [0.6, 1.0, 1.4, 1.8]).astype(str)
X = np.column_stack([data.data[:, :3].astype(object), width_band])
feats = feats[:3] + ["petal width band"]
y = data.target_names[data.target]

clf = CARTClassifier(
    criterion="gini", min_node_size=10, cv_folds=5, random_state=42,
    feature_names=feats, categorical_features=["petal width band"],
)

t0 = perf_counter(); clf.fit(X, y); print(f"fit: {perf_counter()-t0:.3f} s")
print(f"full tree: {clf.pruning_path_.sizes[0]} leaves, chosen: {clf.get_n_leaves()}")
clf.print_tree()
for rule in clf.export_rules():
    print(rule)
try:
    clf.export_graphviz("iris_tree", format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
