"""Helpers shared by the ingesters."""

from __future__ import annotations

import gzip
import logging
import zlib
from typing import Any, Callable, Dict, List, Mapping, Union

from treeworker.dataset import NodeRecord
from treeworker.exceptions import IngestionError
from treeworker.filetypes import GZIP_MAGIC, guess_if_compressed

logger = logging.getLogger(__name__)

# Receives status payloads such as {"message": "...", "percentage": 40}
StatusCallback = Callable[[Dict[str, Any]], None]

Y_SCALE_NUMERATOR = 24e2
Y_SCALE_LARGE_TREE = 10_000


def read_text(upload: Mapping[str, Any], send_status: StatusCallback) -> str:
    """
    Return the upload's ``data`` as text, gunzipping it when it is compressed.

    Raises:
        IngestionError: If there is no data or it cannot be decoded.
    """
    data: Union[str, bytes, None] = upload.get("data")
    if data is None:
        raise IngestionError(f"Upload {upload.get('filename')!r} carries no data")
    if isinstance(data, str):
        return data

    raw = bytes(data)
    if raw[:2] == GZIP_MAGIC or guess_if_compressed(upload.get("filename") or ""):
        send_status({"message": "Decompressing compressed file"})
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as e:
            raise IngestionError(f"Could not decompress {upload.get('filename')!r}: {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IngestionError(f"Upload {upload.get('filename')!r} is not UTF-8 text") from e


def scale_y_positions(nodes: List[NodeRecord]) -> None:
    """Rescale rank positions in place so the tree spans a fixed display height."""
    count = len(nodes)
    if count == 0:
        return
    scale_y = Y_SCALE_NUMERATOR / (count if count > Y_SCALE_LARGE_TREE else count * 0.6666)
    for node in nodes:
        node["y"] = round(node["y"] * scale_y, 6)
