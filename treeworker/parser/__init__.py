"""
Text-format tree parsers.

Newick strings are parsed into TreeNode trees; Nexus files are reduced to the
Newick string of their first tree.
"""

from .newick_parser import (
    TreeNode,
    parse_newick,
    parse_comment,
    ladderize,
    count_tips,
)
from .nexus import nexus_to_newick, parse_translate_block

__all__ = [
    "TreeNode",
    "parse_newick",
    "parse_comment",
    "ladderize",
    "count_tips",
    "nexus_to_newick",
    "parse_translate_block",
]
