"""
Spatial node selection and tip aggregation over an ingested dataset.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from treeworker.dataset import Dataset, NodeRecord

logger = logging.getLogger(__name__)

MAX_VISIBLE_NODES = 10_000
DEFAULT_PRECISION = 2000


def get_nodes(
    dataset: Dataset,
    min_y: float,
    max_y: float,
    min_x: float,
    max_x: float,
    x_type: str,
    max_visible: int = MAX_VISIBLE_NODES,
) -> List[NodeRecord]:
    """
    Return the nodes inside the closed box, in ascending y order.

    The y window is located by binary search on the y-sorted permutation, so the
    cost is proportional to the rows in the window rather than the tree. Nodes
    without a coordinate on ``x_type`` never match. When more than
    ``max_visible`` nodes match, tips are thinned with ``reduce_over_plotting``.
    """
    start_time = time.perf_counter()

    lo = int(np.searchsorted(dataset.sorted_y, min_y, side="left"))
    hi = int(np.searchsorted(dataset.sorted_y, max_y, side="right"))
    candidates = dataset.y_order[lo:hi]

    xs = dataset.x_positions(x_type)[candidates]
    selected = candidates[(xs >= min_x) & (xs <= max_x)]
    nodes = [dataset.nodes[index] for index in selected.tolist()]

    if len(nodes) > max_visible:
        nodes = reduce_over_plotting(nodes, min_x, max_x, min_y, max_y, x_type)

    logger.debug(
        f"get_nodes: {hi - lo} rows in y window, {len(nodes)} returned "
        f"in {time.perf_counter() - start_time:.4f}s"
    )
    return nodes


def filter_by_bounds(
    nodes: Sequence[NodeRecord],
    min_y: float,
    max_y: float,
    min_x: float,
    max_x: float,
    x_type: str,
) -> List[NodeRecord]:
    """Keep the nodes of an arbitrary selection that fall inside the closed box."""
    result: List[NodeRecord] = []
    for node in nodes:
        x = node.get(x_type)
        if x is None:
            continue
        if min_x <= x <= max_x and min_y <= node["y"] <= max_y:
            result.append(node)
    return result


def reduce_over_plotting(
    nodes: Sequence[NodeRecord],
    min_x: float,
    max_x: float,
    min_y: float,
    max_y: float,
    x_type: str,
    precision: int = DEFAULT_PRECISION,
) -> List[NodeRecord]:
    """
    Drop tips that would land on an already occupied screen cell.

    The window is divided into ``precision`` cells per axis; the first tip seen in
    a cell is kept. Internal nodes are always kept so branches stay connected.
    Input order is preserved.
    """
    cell_x = (max_x - min_x) / precision or 1.0
    cell_y = (max_y - min_y) / precision or 1.0

    occupied: Dict[Tuple[int, int], bool] = {}
    result: List[NodeRecord] = []
    for node in nodes:
        if not node.get("is_tip", node.get("num_tips", 1) <= 1):
            result.append(node)
            continue
        x = node.get(x_type)
        if x is None:
            continue
        cell = (int((x - min_x) // cell_x), int((node["y"] - min_y) // cell_y))
        if cell in occupied:
            continue
        occupied[cell] = True
        result.append(node)
    return result


def get_tip_atts(dataset: Dataset, node_id: Any, attribute: str) -> List[Any]:
    """
    Collect ``attribute`` from every tip under ``node_id``, in depth-first preorder.

    A tip yields its own value. Tips lacking the attribute contribute None.
    """
    start = dataset.check_node_id(node_id)
    children = dataset.children

    values: List[Any] = []
    stack = [start]
    while stack:
        current = stack.pop()
        kids = children.get(current)
        if not kids:
            values.append(dataset.nodes[current].get(attribute))
            continue
        stack.extend(reversed(kids))
    return values
