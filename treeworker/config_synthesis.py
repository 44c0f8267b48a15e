"""
Derive the UI configuration (search fields, colour-by options, initial view)
from the shape of a loaded dataset.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from treeworker.dataset import Dataset

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_ZOOM = -2
DEFAULT_COLOR_BY_FIELD = "meta_pangolin_lineage"
SINGLE_COLOR_MAPPING = {"None": [50, 50, 150]}

# Structural node fields that are never offered for display, search or colouring.
STRUCTURAL_FIELDS = frozenset(
    {
        "parent_id",
        "node_id",
        "x",
        "x_dist",
        "x_time",
        "y",
        "mutations",
        "name",
        "num_tips",
        "time_x",
        "clades",
        "is_tip",
    }
)

_TYPES_BY_KEY = {
    "mutation": "mutation",
    "genotype": "genotype",
    "num_tips": "number",
    "genbank": "text_per_line",
    "revertant": "revertant",
    "meta_Lineage": "text_exact",
    "boolean": "boolean",
}


def pretty_name(key: str) -> str:
    """Human-readable label: drop a ``meta_`` prefix and capitalise the first letter."""
    if key.startswith("meta_"):
        key = key[5:]
    elif key == "mutation":
        return "Mutation"
    return key[:1].upper() + key[1:]


def type_from_key(key: str) -> str:
    return _TYPES_BY_KEY.get(key, "text_match")


def synthesize_config(dataset: Dataset) -> Dict[str, Any]:
    """
    Build the configuration object for ``dataset``.

    The result depends only on the dataset, so repeated calls agree. Field
    availability (``x_accessors``, ``keys_to_display``) is read from the first
    node only; a dataset whose first node is atypical will be described by that
    node's fields. The dataset's ``overwrite_config`` is merged over the result.
    """
    first_node = dataset.nodes[0]
    has_mutations = len(dataset.mutations) > 0

    config: Dict[str, Any] = {}
    config["num_nodes"] = dataset.num_nodes
    config["initial_x"] = (dataset.overall_max_x + dataset.overall_min_x) / 2
    config["initial_y"] = (dataset.overall_max_y + dataset.overall_min_y) / 2
    config["initial_zoom"] = DEFAULT_INITIAL_ZOOM
    config["genes"] = sorted(
        {mutation.get("gene") for mutation in dataset.mutations if mutation}
        - {None, ""}
    )
    config["rootMutations"] = list(dataset.root_mutations)
    config["rootId"] = dataset.root_id
    config["name_accessor"] = "name"

    config["x_accessors"] = ["x_dist", "x_time"] if first_node.get("x_time") else ["x_dist"]
    config["keys_to_display"] = [key for key in first_node if key not in STRUCTURAL_FIELDS]

    search_keys: List[str] = ["name", *config["keys_to_display"]]
    if has_mutations:
        search_keys.extend(["mutation", "genotype"])
    if dataset.root_mutations:
        search_keys.append("revertant")
    search_keys.append("num_tips")
    if len(search_keys) > 1:
        search_keys.append("boolean")

    search_types: List[Dict[str, Any]] = []
    for key in search_keys:
        entry: Dict[str, Any] = {
            "name": key,
            "label": pretty_name(key),
            "type": type_from_key(key),
        }
        if "text" in entry["type"]:
            entry["controls"] = True
        search_types.append(entry)
    config["search_types"] = search_types

    color_by_options: List[str] = list(config["keys_to_display"])
    if has_mutations:
        color_by_options.append("genotype")
    color_by_options.append("None")
    if len(color_by_options) < 2:
        config["colorMapping"] = dict(SINGLE_COLOR_MAPPING)
    config["colorBy"] = {"colorByOptions": color_by_options}
    config["defaultColorByField"] = (
        DEFAULT_COLOR_BY_FIELD
        if DEFAULT_COLOR_BY_FIELD in color_by_options
        else color_by_options[0]
    )

    config["mutations"] = dataset.mutations

    if dataset.overwrite_config:
        logger.debug(f"Overriding config keys: {sorted(dataset.overwrite_config)}")
    return {**config, **dataset.overwrite_config}
