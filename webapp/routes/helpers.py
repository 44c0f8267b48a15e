"""Request handling helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import Request
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from treeworker.filetypes import guess_type


@dataclass
class UploadRequest:
    """Encapsulates data from a dataset upload request."""

    filename: str
    filetype: str
    data: bytes
    ladderize: bool = True
    metadata: Optional[Dict[str, Any]] = None

    def to_message(self) -> Dict[str, Any]:
        """The worker ``upload`` message for this request."""
        payload: Dict[str, Any] = {
            "filename": self.filename,
            "filetype": self.filetype,
            "data": self.data,
            "ladderize": self.ladderize,
        }
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return {"type": "upload", "data": payload}


def _read_nonempty(file: FileStorage, field_name: str) -> bytes:
    file.seek(0, os.SEEK_END)
    if file.tell() == 0:
        raise ValueError(f"Uploaded file '{field_name}' is empty.")
    file.seek(0)
    return file.read()


def parse_upload_request(request: Request) -> UploadRequest:
    """Parses and validates a multipart dataset upload."""
    tree_file = request.files.get("file")
    if not tree_file or not tree_file.filename:
        raise ValueError("Missing required file. Please provide a 'file'.")

    filename = secure_filename(tree_file.filename) or "uploaded_file"
    filetype = request.form.get("filetype") or guess_type(filename)
    if filetype not in ("jsonl", "nwk", "nexus"):
        raise ValueError(
            f"Unsupported file type for {filename!r}. "
            "Supported types: jsonl (taxonium), nwk (newick), nexus"
        )

    metadata: Optional[Dict[str, Any]] = None
    metadata_file = request.files.get("metadata")
    if metadata_file and metadata_file.filename:
        if filetype == "jsonl":
            raise ValueError("Taxonium JSONL files cannot be combined with a metadata file.")
        metadata_name = secure_filename(metadata_file.filename)
        metadata_type = guess_type(metadata_name)
        if metadata_type not in ("meta_csv", "meta_tsv"):
            raise ValueError(f"Metadata file {metadata_name!r} must be CSV or TSV.")
        metadata = {
            "filename": metadata_name,
            "filetype": metadata_type,
            "data": _read_nonempty(metadata_file, "metadata"),
        }
        if request.form.get("taxonColumn"):
            metadata["taxonColumn"] = request.form["taxonColumn"]

    return UploadRequest(
        filename=filename,
        filetype=filetype,
        data=_read_nonempty(tree_file, "file"),
        ladderize=request.form.get("ladderize", "on") in ("on", "true", "1"),
        metadata=metadata,
    )
