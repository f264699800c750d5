from time import perf_counter

from sklearn.datasets import load_diabetes
from cartpy import CARTRegressor

data = load_diabetes()
X, y = data.data, data.target
feats = list(data.feature_names)

reg = CARTRegressor(
    min_node_size=20, min_leaf_size=7,
    cv_folds=10, one_se=True, n_jobs=-1,
    feature_names=feats, random_state=42,
)

t0 = perf_counter(); reg.fit(X, y); print(f"fit: {perf_counter()-t0:.3f} s")
cv = reg.cv_result_
for size, err, se in zip(cv.sizes, cv.mean_error, cv.std_error):
    mark = "*" if size == cv.chosen_size else " "
    print(f"{mark} {size:3d} leaves  cv rss={err:12.1f}  se={se:10.1f}")
try:
    reg.export_graphviz("diabetes_tree", format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
reg.print_tree()
