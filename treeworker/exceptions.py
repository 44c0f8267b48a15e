"""
Custom exceptions for the tree query worker.
"""

from __future__ import annotations


class WorkerError(Exception):
    """Base exception for tree query worker errors."""

    pass


class DatasetError(WorkerError):
    """Raised when an ingested dataset violates the node/mutation index invariants."""

    pass


class IngestionError(WorkerError):
    """Raised when uploaded data cannot be turned into a dataset."""

    pass


class UnsupportedFileTypeError(IngestionError):
    """Raised when an upload names a file kind no ingester understands."""

    pass


class InvalidRequestError(WorkerError):
    """Raised when a single request is malformed. Other requests are unaffected."""

    pass


class InvalidSearchSpecError(InvalidRequestError):
    """Raised when a search specification cannot be parsed or interpreted."""

    pass


class NodeNotFoundError(InvalidRequestError):
    """Raised when a request references a node id outside the node collection."""

    def __init__(self, node_id: object, num_nodes: int):
        self.node_id = node_id
        self.num_nodes = num_nodes
        super().__init__(
            f"Node id {node_id!r} is outside the node collection (0..{num_nodes - 1})"
        )
