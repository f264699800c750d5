"""
cartpy.export
=============

Human readable renderings of a tree: decision rules, an indented text
listing and Graphviz DOT.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from .node import Leaf, Node
from .predict import _feature_value


def _name(node, fn: Optional[Sequence[str]]) -> str:
    if fn is not None and 0 <= node.feature_index < len(fn):
        return fn[node.feature_index]
    return node.feature_name


def _leaf_label(leaf: Leaf, cn: Optional[Sequence[str]]) -> str:
    if leaf.class_counts is None:
        return f"value={leaf.value:.6g}"
    if cn is not None:
        # class names are ordered like the training classes
        best = max(range(len(leaf.class_counts)), key=lambda i: leaf.class_counts[i])
        return str(cn[best])
    return str(leaf.value)


def export_rules(root: Node, feature_names: Optional[Sequence[str]] = None,
                 class_names: Optional[Sequence[str]] = None) -> List[str]:
    """
    One ``"<antecedent> => <prediction> (N=<rows>)"`` string per leaf, left to
    right.  The antecedent of a single-leaf tree is ``<root>``.
    """
    rules: List[str] = []

    def collect(node: Node, parts: List[str]):
        if node.is_leaf:
            body = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{body} => {_leaf_label(node, class_names)} (N={node.n_samples})")
            return
        name = _name(node, feature_names)
        collect(node.left, parts + [node.describe(name, left=True)])
        collect(node.right, parts + [node.describe(name, left=False)])

    collect(root, [])
    return rules


def trace_rule(root: Node, row, feature_names: Optional[Sequence[str]] = None) -> str:
    """Antecedent followed by ``row`` from the root to its leaf."""
    parts: List[str] = []
    node = root
    while not node.is_leaf:
        left = node.goes_left(_feature_value(node, row))
        parts.append(node.describe(_name(node, feature_names), left=left))
        node = node.left if left else node.right
    return " AND ".join(parts) if parts else "<root>"


def export_text(root: Node, feature_names: Optional[Sequence[str]] = None,
                class_names: Optional[Sequence[str]] = None) -> str:
    lines: List[str] = []

    def walk(node: Node, indent: str):
        if node.is_leaf:
            lines.append(f"{indent}Predict {_leaf_label(node, class_names)} "
                         f"(N={node.n_samples}, impurity={node.impurity:.4g})")
            return
        lines.append(f"{indent}if {node.describe(_name(node, feature_names))}:")
        walk(node.left, indent + "  ")
        lines.append(f"{indent}else:")
        walk(node.right, indent + "  ")

    walk(root, "")
    return "\n".join(lines)


def export_graphviz(root: Node, filename: Optional[str] = None, *,
                    feature_names: Optional[Sequence[str]] = None,
                    class_names: Optional[Sequence[str]] = None,
                    format: str = "png") -> str:
    """
    Export the tree structure in Graphviz format.

    Parameters
    ----------
    root : Node
        Tree to draw.
    filename : str or None, default=None
        Basename of the output file (the extension is determined by
        ``format``).  If None, the DOT source is returned and no file is
        written.
    feature_names, class_names : sequence of str, optional
        Labels used instead of the stored feature names / class labels.
    format : str, default="png"
        Graphviz output format.  ``"dot"`` writes the DOT source directly and
        does not need the external ``dot`` binary.

    Returns
    -------
    str
        Path to the written file, or the DOT source if ``filename`` is None.

    Raises
    ------
    RuntimeError
        If the ``graphviz`` Python package is not installed.
    """
    try:
        import graphviz
    except ImportError as e:
        raise RuntimeError("Graphviz is required for export_graphviz but not installed.") from e
    dot = graphviz.Digraph(format=format)

    def add(node: Node, node_id: str):
        if node.is_leaf:
            dot.node(node_id, f"{_leaf_label(node, class_names)}\nN={node.n_samples}",
                     shape="box", style="filled", color="lightgrey")
            return
        dot.node(node_id, f"{node.describe(_name(node, feature_names))}\nN={node.n_samples}",
                 shape="ellipse", style="filled", color="lightblue")
        left_id, right_id = node_id + "L", node_id + "R"
        add(node.left, left_id)
        add(node.right, right_id)
        dot.edge(node_id, left_id, label="True")
        dot.edge(node_id, right_id, label="False")

    add(root, "0")
    if filename is None:
        return dot.source
    if format.lower() == "dot":
        path = f"{filename}.dot"
        dot.save(path)
        return path
    try:
        dot.render(filename, cleanup=True)
        return f"{filename}.{format}"
    except graphviz.ExecutableNotFound:
        fallback_path = f"{filename}.dot"
        dot.save(fallback_path)
        return fallback_path
