"""
Search specification interpreter.

A search specification is a JSON object naming a ``method`` and its parameters::

    {"key": "s1", "type": "meta_Country", "method": "text_match", "text": "wales"}
    {"key": "s2", "type": "mutation", "method": "mutation",
     "gene": "S", "position": 484, "new_residue": "K", "min_tips": 0}
    {"key": "s3", "type": "boolean", "method": "boolean",
     "boolean_method": "and", "subspecs": [...]}

``key`` is only used to correlate responses with requests; it is ignored when
matching and when deriving cache keys.
"""

from __future__ import annotations

import hashlib
import json
import logging
import operator
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from treeworker.bounds import Bounds, normalize_bounds
from treeworker.cache import ResultCache
from treeworker.dataset import Dataset, NodeRecord
from treeworker.exceptions import InvalidSearchSpecError
from treeworker.filtering import filter_by_bounds, reduce_over_plotting

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10_000

TEXT_METHODS = ("text_match", "text_exact", "text_per_line")
MUTATION_METHODS = ("mutation", "genotype")
SEARCH_METHODS = TEXT_METHODS + MUTATION_METHODS + ("number", "revertant", "boolean")
BOOLEAN_METHODS = ("and", "or", "not")

NUMBER_METHODS: Dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
}

SearchSpec = Dict[str, Any]


# ===================================================================
# 1. PARSING AND VALIDATION
# ===================================================================


def parse_search_spec(raw: Union[str, bytes, Mapping[str, Any]]) -> SearchSpec:
    """
    Decode and validate a search specification from its wire form.

    Raises:
        InvalidSearchSpecError: If the text is not JSON, not an object, or names an
            unknown method or lacks that method's parameters.
    """
    if isinstance(raw, Mapping):
        spec: Any = json.loads(json.dumps(raw))
    else:
        try:
            spec = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise InvalidSearchSpecError(f"Search specification is not valid JSON: {e}") from e

    validate_search_spec(spec)
    return spec


def validate_search_spec(spec: Any, path: str = "spec") -> None:
    """Check ``spec`` in place, coercing ``position`` and ``min_tips`` to ints."""
    if not isinstance(spec, dict):
        raise InvalidSearchSpecError(f"{path} must be an object, got {type(spec).__name__}")

    method = spec.get("method")
    if method not in SEARCH_METHODS:
        raise InvalidSearchSpecError(f"{path} has unknown search method {method!r}")

    if "min_tips" in spec:
        spec["min_tips"] = _coerce_int(spec["min_tips"], f"{path}.min_tips")

    if method == "boolean":
        if spec.get("boolean_method") not in BOOLEAN_METHODS:
            raise InvalidSearchSpecError(
                f"{path} has unknown boolean method {spec.get('boolean_method')!r}"
            )
        subspecs = spec.setdefault("subspecs", [])
        if not isinstance(subspecs, list):
            raise InvalidSearchSpecError(f"{path}.subspecs must be a list")
        for index, subspec in enumerate(subspecs):
            validate_search_spec(subspec, f"{path}.subspecs[{index}]")
    elif method in MUTATION_METHODS:
        if not spec.get("gene"):
            raise InvalidSearchSpecError(f"{path} needs a gene")
        if "position" not in spec:
            raise InvalidSearchSpecError(f"{path} needs a position")
        spec["position"] = _coerce_int(spec["position"], f"{path}.position")
    elif method in TEXT_METHODS or method == "number":
        if not isinstance(spec.get("type"), str):
            raise InvalidSearchSpecError(f"{path} needs the field name in 'type'")
        if method == "number" and spec.get("number_method", ">") not in NUMBER_METHODS:
            raise InvalidSearchSpecError(
                f"{path} has unknown number method {spec.get('number_method')!r}"
            )


def _coerce_int(value: Any, path: str) -> int:
    if isinstance(value, bool):
        raise InvalidSearchSpecError(f"{path} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidSearchSpecError(f"{path} must be an integer, got {value!r}") from None


def spec_cache_key(spec: SearchSpec) -> str:
    """Cache key for a (sub)spec: a digest of its canonical JSON with every ``key`` removed."""
    canonical = json.dumps(_strip_keys(spec), sort_keys=True, default=str)
    return "search:" + hashlib.md5(canonical.encode("utf-8")).hexdigest()[:16]


def _strip_keys(spec: Any) -> Any:
    if isinstance(spec, dict):
        return {k: _strip_keys(v) for k, v in spec.items() if k != "key"}
    if isinstance(spec, list):
        return [_strip_keys(item) for item in spec]
    return spec


# ===================================================================
# 2. MATCHING
# ===================================================================


def search_filtering(
    dataset: Dataset, spec: SearchSpec, cache: Optional[ResultCache] = None
) -> List[int]:
    """
    Return the ids of every node matching ``spec``, in node id order.

    Each (sub)spec's id list is cached under ``spec_cache_key``. The returned list
    may be shared with the cache and must not be modified.
    """
    cache_key = spec_cache_key(spec)
    if cache is not None:
        cached = cache.retrieve(cache_key)
        if cached is not None:
            logger.debug(f"Search cache hit for {cache_key}")
            return cached

    node_ids = _search_uncached(dataset, spec, cache)

    if cache is not None:
        cache.store(cache_key, node_ids)
    return node_ids


def _search_uncached(
    dataset: Dataset, spec: SearchSpec, cache: Optional[ResultCache]
) -> List[int]:
    method = spec["method"]
    if method == "boolean":
        return _boolean_search(dataset, spec, cache)
    if method in TEXT_METHODS:
        return _text_search(dataset, spec)
    if method == "number":
        return _number_search(dataset, spec)
    if method == "mutation":
        return _mutation_search(dataset, spec)
    if method == "genotype":
        return _genotype_search(dataset, spec)
    if method == "revertant":
        return _revertant_search(dataset, spec)
    raise InvalidSearchSpecError(f"Unknown search method {method!r}")


def _text_of(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.lower() if isinstance(value, str) else str(value).lower()


def _text_search(dataset: Dataset, spec: SearchSpec) -> List[int]:
    text = spec.get("text")
    if not text:
        return []
    field = spec["type"]
    method = spec["method"]

    if method == "text_per_line":
        wanted = {line.strip() for line in str(text).lower().split("\n") if line.strip()}

        def matches(value: str) -> bool:
            return value in wanted

    elif method == "text_exact":
        needle = str(text).lower()

        def matches(value: str) -> bool:
            return value == needle

    else:
        needle = str(text).lower()

        def matches(value: str) -> bool:
            return needle in value

    result: List[int] = []
    for node in dataset.nodes:
        value = _text_of(node.get(field))
        if value is not None and matches(value):
            result.append(node["node_id"])
    return result


def _number_search(dataset: Dataset, spec: SearchSpec) -> List[int]:
    number = spec.get("number")
    if number is None or number == "":
        return []
    try:
        threshold = float(number)
    except (TypeError, ValueError):
        raise InvalidSearchSpecError(f"Search number {number!r} is not numeric") from None
    compare = NUMBER_METHODS[spec.get("number_method", ">")]
    field = spec["type"]

    result: List[int] = []
    for node in dataset.nodes:
        value = node.get(field)
        if value is None or isinstance(value, bool):
            continue
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            continue
        if compare(numeric, threshold):
            result.append(node["node_id"])
    return result


def _residue_matches(wanted: Any, actual: Any) -> bool:
    return wanted in (None, "any") or wanted == actual


def _matching_mutations(dataset: Dataset, spec: SearchSpec) -> Tuple[Set[int], Set[int]]:
    """Split the mutations at (gene, position) into those with the wanted residue and the rest."""
    positive: Set[int] = set()
    negative: Set[int] = set()
    for index, mutation in enumerate(dataset.mutations):
        if not mutation:
            continue
        if mutation.get("gene") != spec["gene"] or mutation.get("residue_pos") != spec["position"]:
            continue
        if _residue_matches(spec.get("new_residue"), mutation.get("new_residue")):
            positive.add(index)
        else:
            negative.add(index)
    return positive, negative


def _nodes_carrying(dataset: Dataset, mutation_ids: Set[int], min_tips: int) -> List[int]:
    if not mutation_ids:
        return []
    result: List[int] = []
    for node in dataset.nodes:
        if node.get("num_tips", 0) <= min_tips:
            continue
        node_id = node["node_id"]
        if any(m in mutation_ids for m in dataset.mutations_of(node_id)):
            result.append(node_id)
    return result


def _mutation_search(dataset: Dataset, spec: SearchSpec) -> List[int]:
    positive, _ = _matching_mutations(dataset, spec)
    return _nodes_carrying(dataset, positive, spec.get("min_tips", 0))


def _genotype_search(dataset: Dataset, spec: SearchSpec) -> List[int]:
    """
    Nodes whose nearest mutation at (gene, position), looking from the node
    towards the root, carries the wanted residue.
    """
    positive, negative = _matching_mutations(dataset, spec)
    if not positive:
        return []

    resolved: Dict[int, bool] = {}
    result: List[int] = []
    for node in dataset.nodes:
        path: List[int] = []
        current = node["node_id"]
        while True:
            if current in resolved:
                has_genotype = resolved[current]
                break
            path.append(current)
            mutation_ids = dataset.mutations_of(current)
            if current == dataset.root_id:
                mutation_ids = list(mutation_ids) + dataset.root_mutations
            if any(m in positive for m in mutation_ids):
                has_genotype = True
                break
            if any(m in negative for m in mutation_ids):
                has_genotype = False
                break
            parent_id = dataset.nodes[current].get("parent_id")
            if parent_id is None or parent_id == current:
                has_genotype = False
                break
            current = parent_id
        for visited in path:
            resolved[visited] = has_genotype
        if has_genotype:
            result.append(node["node_id"])
    return result


def _revertant_search(dataset: Dataset, spec: SearchSpec) -> List[int]:
    root_residues: Dict[Tuple[Any, Any], Any] = {}
    for index in dataset.root_mutations:
        mutation = dataset.mutations[index]
        if mutation:
            root_residues[(mutation.get("gene"), mutation.get("residue_pos"))] = mutation.get(
                "previous_residue"
            )
    if not root_residues:
        return []

    revertants: Set[int] = set()
    for index, mutation in enumerate(dataset.mutations):
        if not mutation:
            continue
        site = (mutation.get("gene"), mutation.get("residue_pos"))
        if site in root_residues and mutation.get("new_residue") == root_residues[site]:
            revertants.add(index)
    return _nodes_carrying(dataset, revertants, spec.get("min_tips", 0))


def _boolean_search(
    dataset: Dataset, spec: SearchSpec, cache: Optional[ResultCache]
) -> List[int]:
    subspecs = spec["subspecs"]
    if not subspecs:
        return []
    results = [search_filtering(dataset, subspec, cache) for subspec in subspecs]

    boolean_method = spec["boolean_method"]
    if boolean_method == "and":
        common = set(results[0]).intersection(*results[1:])
        return [node_id for node_id in results[0] if node_id in common]
    if boolean_method == "or":
        return sorted(set().union(*results))
    # "not": matches of the first subspec that no other subspec matches
    excluded = set().union(*results[1:])
    return [node_id for node_id in results[0] if node_id not in excluded]


# ===================================================================
# 3. PUBLIC API
# ===================================================================


def single_search(
    dataset: Dataset,
    spec: SearchSpec,
    bounds: Bounds,
    cache: Optional[ResultCache] = None,
    max_results: int = MAX_SEARCH_RESULTS,
) -> Dict[str, Any]:
    """
    Run ``spec`` and package the result.

    Up to ``max_results`` matches are returned whole (``type == "complete"``).
    Beyond that only the matches inside ``bounds`` are returned, thinned for
    display (``type == "overflow"``). ``total_count`` always counts every match.
    """
    node_ids = search_filtering(dataset, spec, cache)
    total_count = len(node_ids)
    nodes: List[NodeRecord] = [dataset.nodes[node_id] for node_id in node_ids]

    if total_count > max_results:
        in_view = filter_by_bounds(
            nodes, bounds.min_y, bounds.max_y, bounds.min_x, bounds.max_x, bounds.x_type
        )
        data = reduce_over_plotting(
            in_view, bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y, bounds.x_type
        )
        return {"type": "overflow", "data": data, "total_count": total_count}

    return {"type": "complete", "data": nodes, "total_count": total_count}


def search(
    dataset: Dataset,
    raw_spec: Union[str, bytes, Mapping[str, Any]],
    raw_bounds: Optional[Mapping[str, Any]] = None,
    cache: Optional[ResultCache] = None,
    max_results: int = MAX_SEARCH_RESULTS,
) -> Dict[str, Any]:
    """Answer a ``search`` request. The result carries the spec's ``key``."""
    spec = parse_search_spec(raw_spec)
    bounds = normalize_bounds(raw_bounds, dataset)
    logger.debug(f"Search {spec.get('key')!r}: method={spec['method']} bounds={bounds}")

    result = single_search(dataset, spec, bounds, cache=cache, max_results=max_results)
    result["key"] = spec.get("key")
    logger.debug(f"Search {spec.get('key')!r} matched {result['total_count']} nodes")
    return result
