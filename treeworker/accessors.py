"""Point lookups: a node's full record, and tip attributes under a node."""

from __future__ import annotations

from typing import Any, Dict, List

from treeworker.dataset import Dataset
from treeworker.filtering import get_tip_atts


def get_details(dataset: Dataset, node_id: Any) -> Dict[str, Any]:
    """
    Shallow copy of the node record with ``mutations`` resolved to mutation records,
    in the order the node lists them.

    Raises:
        NodeNotFoundError: If ``node_id`` does not index a node.
    """
    index = dataset.check_node_id(node_id)
    details = dict(dataset.nodes[index])
    details["mutations"] = [dataset.mutations[m] for m in dataset.mutations_of(index)]
    return details


def get_list(dataset: Dataset, node_id: Any, attribute: str) -> List[Any]:
    """Values of ``attribute`` over every tip descending from ``node_id``."""
    return get_tip_atts(dataset, node_id, attribute)
