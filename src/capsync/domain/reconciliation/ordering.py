"""Sort keys giving a total order over reconciled entities.

All keys place ``None`` items (and items whose key value is ``None``) first so
that mixed collections never raise on comparison.
"""

from __future__ import annotations

from operator import attrgetter
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Callable

type SortKey[T] = Callable[[T], Any]


def nulls_first[T](key: SortKey[T]) -> SortKey[T | None]:
    """Wrap ``key`` so that missing items and missing key values sort first."""

    def _key(item: T | None) -> tuple[bool, Any]:
        if item is None:
            return (False, None)
        value = key(item)
        if value is None:
            return (False, None)
        return (True, value)

    return _key


def _identity(item: Any) -> Any:
    return item


natural_order: Final[SortKey[Any]] = nulls_first(_identity)
by_id: Final[SortKey[Any]] = nulls_first(attrgetter("id"))
by_name: Final[SortKey[Any]] = nulls_first(attrgetter("name"))
by_relation_key: Final[SortKey[Any]] = nulls_first(attrgetter("key"))
