"""Generic reconciliation of desired against stored collections."""

from __future__ import annotations

from .merge import MergeResult, UpdatePair, diff, merge, merge_in_batch, nothing
from .ordering import SortKey, by_id, by_name, by_relation_key, natural_order, nulls_first

__all__ = [
    "MergeResult",
    "SortKey",
    "UpdatePair",
    "by_id",
    "by_name",
    "by_relation_key",
    "diff",
    "merge",
    "merge_in_batch",
    "natural_order",
    "nothing",
    "nulls_first",
]
