"""Convert the first tree of a Nexus file into a Newick string."""

import re
from typing import Dict

from treeworker.exceptions import IngestionError

_TRANSLATE_BLOCK = re.compile(r"translate(.*?);", re.IGNORECASE | re.DOTALL)
_TREE_STATEMENT = re.compile(r"^\s*tree\s+[^=]+=\s*(?:\[&[RU]\]\s*)?(.*?;)", re.IGNORECASE | re.DOTALL | re.MULTILINE)
_COMMENT = re.compile(r"\[.*?\]", re.DOTALL)
_LABEL = re.compile(r"[^:,()\s;]+")


def parse_translate_block(nexus: str) -> Dict[str, str]:
    """Taxon token -> taxon label, from the ``Translate`` block if there is one."""
    match = _TRANSLATE_BLOCK.search(nexus)
    if match is None:
        return {}
    translations: Dict[str, str] = {}
    for entry in match.group(1).split(","):
        parts = entry.split()
        if len(parts) == 2:
            translations[parts[0]] = parts[1].strip("'\"")
    return translations


def nexus_to_newick(nexus: str) -> str:
    """
    Extract the first ``tree`` statement, drop ``[...]`` comments and substitute
    translated taxon labels. Branch lengths are left untouched.

    Raises:
        IngestionError: If the text contains no tree statement.
    """
    match = _TREE_STATEMENT.search(nexus)
    if match is None:
        raise IngestionError("No tree statement found in Nexus file")

    newick = _COMMENT.sub("", match.group(1))
    translations = parse_translate_block(nexus)
    if not translations:
        return newick

    def translate(label: re.Match) -> str:
        token = label.group(0)
        start = label.start()
        # Branch lengths follow a colon and are never translated
        if start > 0 and newick[start - 1] == ":":
            return token
        return translations.get(token, token)

    return _LABEL.sub(translate, newick)
