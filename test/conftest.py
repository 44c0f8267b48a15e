import logging
from typing import Any, Dict, List

import pytest

from treeworker.dataset import Dataset


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Five-node tree used across the suite:
#
#   0 (root)
#   ├── 1
#   │   ├── 2  "A"  Wales
#   │   └── 3  "B"  England
#   └── 4  "C"  Wales
#
# y positions equal node ids, so the overall Y extent is [0, 4].
TREE_NODES: List[Dict[str, Any]] = [
    {"node_id": 0, "parent_id": 0, "name": "", "x_dist": 0.0, "y": 0.0,
     "num_tips": 3, "is_tip": False, "meta_Country": ""},
    {"node_id": 1, "parent_id": 0, "name": "", "x_dist": 1.0, "y": 1.0,
     "num_tips": 2, "is_tip": False, "meta_Country": ""},
    {"node_id": 2, "parent_id": 1, "name": "A", "x_dist": 2.0, "y": 2.0,
     "num_tips": 1, "is_tip": True, "meta_Country": "Wales"},
    {"node_id": 3, "parent_id": 1, "name": "B", "x_dist": 3.0, "y": 3.0,
     "num_tips": 1, "is_tip": True, "meta_Country": "England"},
    {"node_id": 4, "parent_id": 0, "name": "C", "x_dist": 2.5, "y": 4.0,
     "num_tips": 1, "is_tip": True, "meta_Country": "Wales"},
]

TREE_MUTATIONS: List[Dict[str, Any]] = [
    {"mutation_id": 0, "gene": "S", "residue_pos": 614, "previous_residue": "D", "new_residue": "G"},
    {"mutation_id": 1, "gene": "N", "residue_pos": 13, "previous_residue": "P", "new_residue": "L"},
    {"mutation_id": 2, "gene": "S", "residue_pos": 501, "previous_residue": "N", "new_residue": "Y"},
    {"mutation_id": 3, "gene": None, "residue_pos": 100, "previous_residue": "A", "new_residue": "G"},
    {"mutation_id": 4, "gene": "S", "residue_pos": 484, "previous_residue": "K", "new_residue": "E"},
    {"mutation_id": 5, "gene": "S", "residue_pos": 484, "previous_residue": "E", "new_residue": "K"},
]

TREE_NODE_TO_MUT: Dict[int, List[int]] = {0: [], 1: [1], 2: [0, 2], 3: [4], 4: [3]}

# S:E484K sits on the root; node 3 reverts it (S:K484E)
TREE_ROOT_MUTATIONS: List[int] = [5]


def make_tree_dataset(**overrides: Any) -> Dataset:
    kwargs: Dict[str, Any] = dict(
        mutations=[dict(m) for m in TREE_MUTATIONS],
        node_to_mut={k: list(v) for k, v in TREE_NODE_TO_MUT.items()},
        root_mutations=list(TREE_ROOT_MUTATIONS),
    )
    kwargs.update(overrides)
    return Dataset.from_nodes([dict(node) for node in TREE_NODES], **kwargs)


@pytest.fixture
def tree_dataset() -> Dataset:
    return make_tree_dataset()


@pytest.fixture
def bare_dataset() -> Dataset:
    """The same tree without any mutations."""
    return make_tree_dataset(mutations=[], node_to_mut={}, root_mutations=[])
