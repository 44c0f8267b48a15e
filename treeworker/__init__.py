"""Background query service for interactive phylogenetic tree visualisation."""

from treeworker.cache import ResultCache
from treeworker.dataset import Dataset, Mutation, NodeRecord
from treeworker.gate import ReadinessGate
from treeworker.host import WorkerHost
from treeworker.worker import QueryWorker

__all__ = [
    "Dataset",
    "Mutation",
    "NodeRecord",
    "QueryWorker",
    "ReadinessGate",
    "ResultCache",
    "WorkerHost",
]
