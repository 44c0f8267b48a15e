"""
Ingest Newick (or Nexus) trees, optionally joined with a metadata table.

Layout: nodes are numbered in preorder; ``x_dist`` is the distance from the
root, scaled so the deepest tip sits at ``X_DIST_SPAN``; tips take consecutive
rank positions and an internal node sits midway between its first and last
child.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from treeworker.dataset import Dataset, NodeRecord
from treeworker.ingest.common import StatusCallback, read_text, scale_y_positions
from treeworker.ingest.metadata import load_metadata
from treeworker.parser import count_tips, ladderize, nexus_to_newick, parse_newick

logger = logging.getLogger(__name__)

X_DIST_SPAN = 600.0


def process_newick_and_metadata(upload: Mapping[str, Any], send_status: StatusCallback) -> Dataset:
    """
    Build a Dataset from a tree upload.

    Upload keys: ``data``, ``filename``, ``filetype`` (``nwk`` or ``nexus``),
    ``ladderize`` (default True), ``useDistances`` (default True; when False
    every branch counts as length 1), and optional ``metadata`` with its own
    ``data``/``filename``/``taxonColumn``.
    """
    text = read_text(upload, send_status)
    if upload.get("filetype") == "nexus":
        send_status({"message": "Converting Nexus to Newick"})
        text = nexus_to_newick(text)

    send_status({"message": "Parsing Newick file"})
    tree = parse_newick(text)

    if upload.get("ladderize", True):
        tip_counts = ladderize(tree)
    else:
        tip_counts, _ = count_tips(tree)

    preorder = tree.traverse()
    node_ids = {id(node): index for index, node in enumerate(preorder)}
    use_distances = upload.get("useDistances", True)

    depth: Dict[int, float] = {}
    for node in preorder:
        if node.parent is None:
            depth[id(node)] = 0.0
            continue
        step = (node.length or 0.0) if use_distances else 1.0
        depth[id(node)] = depth[id(node.parent)] + step
    max_depth = max(depth.values())
    scale_x = X_DIST_SPAN / max_depth if max_depth > 0 else 1.0

    rank: Dict[int, float] = {}
    next_tip = 0
    for node in preorder:
        if node.is_leaf:
            rank[id(node)] = float(next_tip)
            next_tip += 1
    for node in reversed(preorder):
        if not node.is_leaf:
            rank[id(node)] = (rank[id(node.children[0])] + rank[id(node.children[-1])]) / 2

    columns, lookup = load_metadata(upload.get("metadata"), send_status)

    send_status({"message": "Laying out tree"})
    nodes: List[NodeRecord] = []
    for node in preorder:
        node_id = node_ids[id(node)]
        record: NodeRecord = {
            "node_id": node_id,
            "parent_id": node_ids[id(node.parent)] if node.parent is not None else node_id,
            "name": node.name,
            "x_dist": round(depth[id(node)] * scale_x, 5),
            "y": rank[id(node)],
            "num_tips": tip_counts[id(node)],
            "is_tip": node.is_leaf,
        }
        row = lookup.get(node.name, {})
        for column in columns:
            record[f"meta_{column}"] = row.get(column, "")
        nodes.append(record)

    scale_y_positions(nodes)
    dataset = Dataset.from_nodes(nodes)
    logger.info(
        f"Loaded {dataset.num_nodes} nodes ({next_tip} tips) from {upload.get('filename')!r}"
    )
    return dataset
