"""Core type definitions for the ingested tree dataset."""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, List, Optional, TypeAlias, TypedDict

import numpy as np
from numpy.typing import NDArray

from treeworker.exceptions import DatasetError, NodeNotFoundError

logger = logging.getLogger(__name__)

# Node records stay plain dicts: metadata columns are open-ended.
NodeRecord: TypeAlias = Dict[str, Any]


class Mutation(TypedDict, total=False):
    """A single genetic change, referenced from nodes by ``mutation_id``."""

    mutation_id: int
    gene: Optional[str]
    residue_pos: int
    previous_residue: str
    new_residue: str
    type: str
    nuc_for_codon: Optional[int]


@dataclass
class Dataset:
    """
    The fully ingested tree held by the worker.

    ``nodes[i]["node_id"] == i`` for every node, so node lookup is a list index.
    ``y_positions`` is parallel to ``nodes``. Nothing here is mutated after
    construction; the derived indexes below are computed on first use.
    """

    nodes: List[NodeRecord]
    y_positions: NDArray[np.float64]
    mutations: List[Optional[Mutation]] = field(default_factory=list)
    node_to_mut: Dict[int, List[int]] = field(default_factory=dict)
    root_mutations: List[int] = field(default_factory=list)
    root_id: int = 0
    overall_min_x: float = 0.0
    overall_max_x: float = 0.0
    overall_min_y: float = 0.0
    overall_max_y: float = 0.0
    overwrite_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.y_positions) != len(self.nodes):
            raise DatasetError(
                f"y_positions has {len(self.y_positions)} entries for {len(self.nodes)} nodes"
            )
        for index, node in enumerate(self.nodes):
            if node.get("node_id") != index:
                raise DatasetError(
                    f"Node at position {index} has node_id {node.get('node_id')!r}"
                )
        num_mutations = len(self.mutations)
        for node_id, mutation_ids in self.node_to_mut.items():
            for mutation_id in mutation_ids:
                if not 0 <= mutation_id < num_mutations:
                    raise DatasetError(
                        f"Node {node_id} references mutation {mutation_id}, "
                        f"but only {num_mutations} mutations exist"
                    )

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------

    @classmethod
    def from_nodes(
        cls,
        nodes: List[NodeRecord],
        mutations: Optional[List[Optional[Mutation]]] = None,
        node_to_mut: Optional[Dict[int, List[int]]] = None,
        root_mutations: Optional[List[int]] = None,
        overwrite_config: Optional[Dict[str, Any]] = None,
    ) -> "Dataset":
        """
        Build a dataset from node records, deriving extents and the y index.

        The overall X extent is measured on ``x_dist``; the overall Y extent on ``y``.
        """
        if not nodes:
            raise DatasetError("A dataset needs at least one node")

        y_positions = np.asarray([node["y"] for node in nodes], dtype=np.float64)
        x_positions = np.asarray(
            [node.get("x_dist", 0.0) for node in nodes], dtype=np.float64
        )
        root_id = next(
            (node["node_id"] for node in nodes if node.get("parent_id") == node.get("node_id")),
            0,
        )
        return cls(
            nodes=nodes,
            y_positions=y_positions,
            mutations=list(mutations) if mutations is not None else [],
            node_to_mut=dict(node_to_mut) if node_to_mut is not None else {},
            root_mutations=list(root_mutations) if root_mutations is not None else [],
            root_id=root_id,
            overall_min_x=float(x_positions.min()),
            overall_max_x=float(x_positions.max()),
            overall_min_y=float(y_positions.min()),
            overall_max_y=float(y_positions.max()),
            overwrite_config=dict(overwrite_config) if overwrite_config else {},
        )

    # ------------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------------

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    def check_node_id(self, node_id: Any) -> int:
        """Return ``node_id`` as an int, raising NodeNotFoundError unless it indexes a node."""
        if isinstance(node_id, bool):
            raise NodeNotFoundError(node_id, self.num_nodes)
        try:
            index = operator.index(node_id)
        except TypeError:
            raise NodeNotFoundError(node_id, self.num_nodes) from None
        if not 0 <= index < self.num_nodes:
            raise NodeNotFoundError(node_id, self.num_nodes)
        return index

    def node(self, node_id: Any) -> NodeRecord:
        return self.nodes[self.check_node_id(node_id)]

    def mutations_of(self, node_id: int) -> List[int]:
        return self.node_to_mut.get(node_id, [])

    # ------------------------------------------------------------------------
    # Derived indexes
    # ------------------------------------------------------------------------

    @cached_property
    def y_order(self) -> NDArray[np.intp]:
        """Node indices sorted by ascending y (stable, so ties keep id order)."""
        return np.argsort(self.y_positions, kind="stable")

    @cached_property
    def sorted_y(self) -> NDArray[np.float64]:
        return self.y_positions[self.y_order]

    @cached_property
    def children(self) -> Dict[int, List[int]]:
        """Parent id -> child ids, in node id order. The root is not its own child."""
        children: Dict[int, List[int]] = {}
        for node in self.nodes:
            parent_id = node.get("parent_id")
            if parent_id is None or parent_id == node["node_id"]:
                continue
            children.setdefault(parent_id, []).append(node["node_id"])
        return children

    def x_positions(self, x_type: str) -> NDArray[np.float64]:
        """Per-node coordinates on the ``x_type`` axis; nodes lacking it get NaN."""
        cache: Dict[str, NDArray[np.float64]] = self.__dict__.setdefault("_x_cache", {})
        if x_type not in cache:
            cache[x_type] = np.asarray(
                [_as_float(node.get(x_type)) for node in self.nodes], dtype=np.float64
            )
            logger.debug(f"Built x index for axis {x_type!r}")
        return cache[x_type]


def _as_float(value: Any) -> float:
    if value is None:
        return float("nan")
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")
