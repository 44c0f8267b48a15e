"""Read per-taxon metadata tables (CSV or TSV) with pandas."""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from treeworker.exceptions import IngestionError
from treeworker.filetypes import guess_type
from treeworker.ingest.common import StatusCallback, read_text

logger = logging.getLogger(__name__)

MetadataLookup = Dict[str, Dict[str, Any]]


def load_metadata(
    metadata: Optional[Mapping[str, Any]], send_status: StatusCallback
) -> Tuple[List[str], MetadataLookup]:
    """
    Parse a metadata upload into column names and a taxon -> row lookup.

    The taxon column is ``taxonColumn`` when given, otherwise the first column.
    All values are kept as strings; missing cells become ``""``. Later
    duplicate taxa are ignored.

    Returns:
        ``(columns, lookup)`` where ``columns`` excludes the taxon column.
    """
    if not metadata or metadata.get("data") is None:
        return [], {}

    filename = metadata.get("filename") or ""
    filetype = metadata.get("filetype") or guess_type(filename)
    separator = "\t" if filetype == "meta_tsv" else ","

    send_status({"message": f"Reading metadata {filename}"})
    text = read_text(metadata, send_status)
    try:
        frame = pd.read_csv(io.StringIO(text), sep=separator, dtype=str, keep_default_na=False)
    except (ValueError, pd.errors.ParserError) as e:
        raise IngestionError(f"Could not parse metadata {filename!r}: {e}") from e

    if frame.columns.empty:
        raise IngestionError(f"Metadata {filename!r} has no columns")

    taxon_column = metadata.get("taxonColumn") or frame.columns[0]
    if taxon_column not in frame.columns:
        raise IngestionError(
            f"Taxon column {taxon_column!r} not found in metadata columns {list(frame.columns)}"
        )

    columns = [column for column in frame.columns if column != taxon_column]
    frame = frame.drop_duplicates(subset=taxon_column, keep="first").set_index(taxon_column)
    lookup: MetadataLookup = frame[columns].to_dict(orient="index")
    logger.info(f"Loaded metadata for {len(lookup)} taxa with columns {columns}")
    return columns, lookup
