"""
Viewport bounds normalization and the bounds query.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from treeworker.dataset import Dataset, NodeRecord
from treeworker.exceptions import InvalidRequestError
from treeworker.filtering import get_nodes

logger = logging.getLogger(__name__)

DEFAULT_X_TYPE = "x_dist"


@dataclass(frozen=True)
class Bounds:
    """Effective query window after defaulting and clamping."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float
    x_type: str = DEFAULT_X_TYPE


def _number_or(value: Any, default: float) -> float:
    """Return ``value`` as a float, or ``default`` when it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


def normalize_bounds(raw: Optional[Mapping[str, Any]], dataset: Dataset) -> Bounds:
    """
    Resolve a wire-form bounds object against the dataset's overall extent.

    Missing or non-numeric values fall back to the extent on that axis. The y
    window is clamped into ``[overall_min_y, overall_max_y]``; x is left as
    supplied so the view can extend past the data horizontally.
    """
    if raw is None:
        raw = {}
    elif not isinstance(raw, Mapping):
        raise InvalidRequestError(f"bounds must be an object, got {type(raw).__name__}")

    min_y = max(_number_or(raw.get("min_y"), dataset.overall_min_y), dataset.overall_min_y)
    max_y = min(_number_or(raw.get("max_y"), dataset.overall_max_y), dataset.overall_max_y)
    min_x = _number_or(raw.get("min_x"), dataset.overall_min_x)
    max_x = _number_or(raw.get("max_x"), dataset.overall_max_x)

    x_type = raw.get("xType") or DEFAULT_X_TYPE
    if not isinstance(x_type, str):
        raise InvalidRequestError(f"xType must be a string, got {x_type!r}")

    return Bounds(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y, x_type=x_type)


def query_bounds(dataset: Dataset, raw: Optional[Mapping[str, Any]]) -> Dict[str, List[NodeRecord]]:
    """Answer a ``query`` request: the nodes visible in the normalized window."""
    bounds = normalize_bounds(raw, dataset)
    logger.debug(f"Bounds query: {bounds}")
    nodes = get_nodes(
        dataset,
        bounds.min_y,
        bounds.max_y,
        bounds.min_x,
        bounds.max_x,
        bounds.x_type,
    )
    return {"nodes": nodes}
