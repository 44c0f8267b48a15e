import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from treeworker.exceptions import IngestionError

logger = logging.getLogger(__name__)


class TreeNode:
    """
    Pointer-based tree node produced by the Newick parser.

    Only what ingestion needs is kept: a name, the branch length to the parent
    (None when the file gives none) and any bracketed ``[key=value]`` comments.
    """

    __slots__ = ("children", "parent", "name", "length", "values")

    def __init__(
        self,
        name: str = "",
        length: Optional[float] = None,
        parent: Optional["TreeNode"] = None,
    ):
        self.children: List[TreeNode] = []
        self.parent = parent
        self.name = name
        self.length = length
        self.values: Dict[str, Any] = {}

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def traverse(self) -> List["TreeNode"]:
        """All nodes of the subtree in preorder."""
        order: List[TreeNode] = []
        stack: List[TreeNode] = [self]
        while stack:
            node = stack.pop()
            order.append(node)
            stack.extend(reversed(node.children))
        return order

    def __repr__(self) -> str:
        return f"TreeNode(name={self.name!r}, children={len(self.children)})"


# ===================================================================
# 1. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def parse_comment(comment: str) -> Dict[str, Any]:
    """
    Parse a bracketed comment body into key/value pairs.

    Handles NHX (``&&NHX:a=1:b=x``) and the generic ``&a=1,b=x`` form. Numeric
    values become ints or floats; bare tokens become ``True``.
    """
    comment = comment.strip()
    if comment.startswith("&&NHX:"):
        tokens = comment[6:].split(":")
    else:
        tokens = comment.lstrip("&").split(",")

    values: Dict[str, Any] = {}
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        if "=" not in token:
            values[token] = True
            continue
        key, raw = token.split("=", 1)
        values[key.strip()] = _parse_scalar(raw.strip())
    return values


def _parse_scalar(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw.strip("\"'")


def flush_name(buffer: List[str], node: Optional[TreeNode]) -> None:
    if node is not None and buffer:
        node.name = "".join(buffer).strip()
    buffer.clear()


def flush_length(buffer: List[str], node: Optional[TreeNode]) -> None:
    """
    Assign the buffered branch length. Null-like and non-finite lengths become 0.
    """
    value = "".join(buffer).strip()
    buffer.clear()
    if node is None:
        return
    if value in ("", "null", "NULL", "none", "None"):
        node.length = 0.0
        return
    try:
        length = float(value)
    except ValueError as e:
        raise IngestionError(f"Invalid branch length {value!r}") from e
    node.length = length if math.isfinite(length) else 0.0


# ===================================================================
# 2. CORE PARSING
# ===================================================================


def _parse_newick(text: str) -> TreeNode:
    """Parse the first tree in ``text`` character by character."""
    root = TreeNode()
    current: TreeNode = root
    buffer: List[str] = []
    comment: List[str] = []
    mode = "name"
    quote: Optional[str] = None
    depth = 0

    def flush() -> None:
        if mode == "length":
            flush_length(buffer, current)
        else:
            flush_name(buffer, current)

    for char in text:
        if quote is not None:
            if char == quote:
                quote = None
            else:
                buffer.append(char)
            continue

        if mode == "comment":
            if char == "]":
                current.values.update(parse_comment("".join(comment)))
                comment.clear()
                mode = "name"
            else:
                comment.append(char)
            continue

        if char in "\r\n\t":
            continue
        if char in "'\"" and mode == "name":
            quote = char
        elif char == "(":
            child = TreeNode(parent=current)
            current.children.append(child)
            current = child
            depth += 1
            mode = "name"
        elif char == ",":
            flush()
            if current.parent is None:
                raise IngestionError("Unexpected ',' outside of a clade")
            sibling = TreeNode(parent=current.parent)
            current.parent.children.append(sibling)
            current = sibling
            mode = "name"
        elif char == ")":
            flush()
            if current.parent is None or depth == 0:
                raise IngestionError("Unbalanced ')' in Newick string")
            current = current.parent
            depth -= 1
            mode = "name"
        elif char == ":":
            flush()
            mode = "length"
        elif char == "[":
            flush()
            mode = "comment"
        elif char == ";":
            flush()
            break
        else:
            buffer.append(char)
    else:
        flush()

    if depth != 0:
        raise IngestionError("Unbalanced '(' in Newick string")
    return root


# ===================================================================
# 3. PUBLIC API
# ===================================================================


def parse_newick(text: str) -> TreeNode:
    """
    Parse a Newick string into a tree of TreeNode objects.

    Only the first tree is read when the text holds several.

    Raises:
        IngestionError: If the string is empty or its parentheses do not balance.
    """
    if not text or not text.strip():
        raise IngestionError("Newick string is empty")
    tree = _parse_newick(text.strip())
    logger.debug(f"Parsed Newick tree with {len(tree.traverse())} nodes")
    return tree


def ladderize(tree: TreeNode) -> Dict[int, int]:
    """
    Sort every node's children by ascending tip count, in place.

    Returns:
        Mapping of ``id(node)`` to the node's tip count.
    """
    tip_counts, _ = count_tips(tree)
    for node in tree.traverse():
        node.children.sort(key=lambda c: tip_counts[id(c)])
    return tip_counts


def count_tips(tree: TreeNode) -> Tuple[Dict[int, int], int]:
    """Tip counts per ``id(node)`` and the total."""
    tip_counts: Dict[int, int] = {}
    for node in reversed(tree.traverse()):
        tip_counts[id(node)] = 1 if node.is_leaf else sum(
            tip_counts[id(c)] for c in node.children
        )
    return tip_counts, tip_counts[id(tree)]
