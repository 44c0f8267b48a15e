"""
Ingest Taxonium JSONL files.

The first line is a header object (``mutations``, optional ``rootMutations`` and
``config``); every following line is one node record whose ``mutations`` field
lists indices into the header's mutation list.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from treeworker.dataset import Dataset, NodeRecord
from treeworker.exceptions import IngestionError
from treeworker.ingest.common import StatusCallback, read_text, scale_y_positions

logger = logging.getLogger(__name__)

STATUS_EVERY_LINES = 100_000


def _parse_line(line: str, line_number: int) -> Dict[str, Any]:
    try:
        record = json.loads(line)
    except ValueError as e:
        raise IngestionError(f"Line {line_number} is not valid JSON: {e}") from e
    if not isinstance(record, dict):
        raise IngestionError(f"Line {line_number} is not a JSON object")
    return record


def process_jsonl(upload: Mapping[str, Any], send_status: StatusCallback) -> Dataset:
    """
    Build a Dataset from a JSONL upload.

    Node mutation lists move into ``node_to_mut``. Without a ``rootMutations``
    header entry the root's own mutations become the root mutations and are
    removed from the root's entry.
    """
    text = read_text(upload, send_status)
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise IngestionError("JSONL file needs a header line and at least one node")

    header = _parse_line(lines[0], 1)
    total = len(lines) - 1
    send_status({"message": "Parsing nodes", "percentage": 0})

    nodes: List[NodeRecord] = []
    for offset, line in enumerate(lines[1:]):
        nodes.append(_parse_line(line, offset + 2))
        if (offset + 1) % STATUS_EVERY_LINES == 0:
            send_status(
                {"message": "Parsing nodes", "percentage": round(100 * (offset + 1) / total)}
            )

    try:
        nodes.sort(key=lambda node: node["node_id"])
        node_to_mut: Dict[int, List[int]] = {
            node["node_id"]: list(node.pop("mutations", None) or []) for node in nodes
        }
        for node in nodes:
            node["y"] = float(node["y"])
    except (KeyError, TypeError, ValueError) as e:
        raise IngestionError(f"Node records need numeric 'node_id' and 'y': {e}") from e

    scale_y_positions(nodes)

    root_mutations = header.get("rootMutations")
    if root_mutations is None:
        root_id = next(
            (node["node_id"] for node in nodes if node.get("parent_id") == node["node_id"]),
            0,
        )
        root_mutations = node_to_mut.get(root_id, [])
        node_to_mut[root_id] = []

    dataset = Dataset.from_nodes(
        nodes,
        mutations=header.get("mutations") or [],
        node_to_mut=node_to_mut,
        root_mutations=root_mutations,
        overwrite_config=header.get("config"),
    )
    logger.info(
        f"Loaded {dataset.num_nodes} nodes and {len(dataset.mutations)} mutations "
        f"from {upload.get('filename')!r}"
    )
    send_status({"message": "Parsed nodes", "percentage": 100})
    return dataset
