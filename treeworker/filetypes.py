"""Recognise upload file kinds from their names."""

from typing import Optional

TREE_EXTENSIONS = ("nwk", "newick", "tree", "tre", "nh")
NEXUS_EXTENSIONS = ("nex", "nexus", "nxs")

GZIP_MAGIC = b"\x1f\x8b"


def guess_if_compressed(filename: str, mimetype: Optional[str] = None) -> bool:
    """True if the upload looks gzipped, judging by mimetype or a ``.gz`` suffix."""
    return mimetype == "application/gzip" or filename.lower().endswith(".gz")


def guess_type(filename: str) -> Optional[str]:
    """
    File kind for ``filename``, ignoring a ``.gz`` suffix.

    Returns one of ``nwk``, ``nexus``, ``jsonl``, ``meta_csv``, ``meta_tsv``, or
    None when the extension is not recognised.
    """
    name = filename.lower()
    if name.endswith(".gz"):
        name = name[:-3]
    extension = name.rsplit(".", 1)[-1] if "." in name else ""

    if extension in TREE_EXTENSIONS:
        return "nwk"
    if extension in NEXUS_EXTENSIONS:
        return "nexus"
    if extension == "jsonl":
        return "jsonl"
    if extension == "csv":
        return "meta_csv"
    if extension == "tsv":
        return "meta_tsv"
    return None
