"""
Dataset ingestion: turn an uploaded file into a Dataset.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from treeworker.dataset import Dataset
from treeworker.exceptions import UnsupportedFileTypeError
from treeworker.ingest.common import StatusCallback
from treeworker.ingest.jsonl import process_jsonl
from treeworker.ingest.newick import process_newick_and_metadata

logger = logging.getLogger(__name__)

__all__ = [
    "ingest_upload",
    "process_jsonl",
    "process_newick_and_metadata",
    "StatusCallback",
]


def ingest_upload(upload: Mapping[str, Any], send_status: StatusCallback) -> Dataset:
    """
    Pick the ingester for ``upload`` and run it.

    JSONL is recognised by ``jsonl`` in the filename or ``filetype == "jsonl"``;
    trees by ``filetype`` ``nwk`` or ``nexus``.

    Raises:
        UnsupportedFileTypeError: For any other upload.
        IngestionError: If the chosen ingester rejects the content.
    """
    filename = upload.get("filename") or ""
    filetype = upload.get("filetype")

    if "jsonl" in filename or filetype == "jsonl":
        logger.info(f"Ingesting JSONL upload {filename!r}")
        return process_jsonl(upload, send_status)
    if filetype in ("nwk", "nexus"):
        logger.info(f"Ingesting {filetype} upload {filename!r}")
        return process_newick_and_metadata(upload, send_status)

    raise UnsupportedFileTypeError(
        f"Only Taxonium jsonl, Newick and Nexus files are supported "
        f"(got {filename!r} with filetype {filetype!r})"
    )
