import json

import numpy as np
import pytest

from treeworker.filetypes import guess_if_compressed, guess_type
from treeworker.io import dumps


def test_numpy_values_are_serialized():
    payload = {"id": np.int64(3), "y": np.float32(0.5), "tip": np.bool_(True), "xs": np.arange(3)}
    assert json.loads(dumps(payload)) == {"id": 3, "y": 0.5, "tip": True, "xs": [0, 1, 2]}


def test_sets_become_sorted_lists():
    assert dumps({"genes": {"S", "N"}}) == '{"genes": ["N", "S"]}'


def test_unknown_objects_still_fail():
    with pytest.raises(TypeError):
        dumps({"x": object()})


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("tree.nwk", "nwk"),
        ("tree.newick.gz", "nwk"),
        ("tree.tre", "nwk"),
        ("TREE.NEX", "nexus"),
        ("tree.nexus", "nexus"),
        ("tree.jsonl.gz", "jsonl"),
        ("meta.csv", "meta_csv"),
        ("meta.tsv.gz", "meta_tsv"),
        ("notes.txt", None),
        ("README", None),
    ],
)
def test_guess_type(filename, expected):
    assert guess_type(filename) == expected


def test_guess_if_compressed():
    assert guess_if_compressed("tree.jsonl.GZ")
    assert guess_if_compressed("blob", mimetype="application/gzip")
    assert not guess_if_compressed("tree.jsonl")
