"""Three-way merge of a desired (incoming) collection against a stored one.

The merge is driven by a sort key that MUST encode the full identity of an
element. Matching is done on the key alone, not on equality of the elements:
two distinct stored rows sharing a key would both be paired against the same
incoming element, and an identity narrower than the key produces spurious
updates. Use :mod:`capsync.domain.reconciliation.ordering` keys where possible.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from capsync.domain.reconciliation.ordering import natural_order, nulls_first

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from capsync.domain.reconciliation.ordering import SortKey

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UpdatePair[T]:
    """Incoming and stored element sharing one identity."""

    new_item: T
    old_item: T

    def __post_init__(self) -> None:
        if self.new_item is None:
            raise ValueError("New item is required for an update pair")
        if self.old_item is None:
            raise ValueError("Old item is required for an update pair")


@dataclass(slots=True)
class MergeResult[T]:
    added: list[T] = field(default_factory=list["T"])
    updated: list[UpdatePair[T]] = field(default_factory=list["UpdatePair[T]"])
    deleted: list[T] = field(default_factory=list["T"])

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.deleted)


def nothing(_item: object) -> None:
    """Callback that ignores its argument."""


def merge[T](
    incoming: Iterable[T] | None,
    stored: Iterable[T] | None,
    key: SortKey[T] | None = None,
    *,
    on_add: Callable[[T], Any],
    on_update: Callable[[UpdatePair[T]], Any],
    on_delete: Callable[[T], Any],
) -> None:
    """Reconcile ``incoming`` against ``stored`` through three callbacks.

    ``None`` collections count as empty. Stored elements are visited in their
    given order: a key match in ``incoming`` emits ``on_update`` and consumes the
    match, no match emits ``on_delete``. Whatever is left of ``incoming`` is
    passed to ``on_add`` in ascending key order. Without ``key`` the elements'
    natural ordering is used.

    Callback exceptions propagate and abort the remainder of the merge; wrap the
    call in a unit of work when all-or-nothing behaviour is required.
    """

    sort_key: SortKey[T | None] = nulls_first(key) if key is not None else natural_order
    incoming_items = list(incoming) if incoming is not None else []
    stored_items = list(stored) if stored is not None else []

    if not stored_items:
        for item in sorted(incoming_items, key=sort_key):
            on_add(item)
        return

    if not incoming_items:
        for item in stored_items:
            on_delete(item)
        return

    pending = sorted(incoming_items, key=sort_key)
    pending_keys = [sort_key(item) for item in pending]

    for stored_item in stored_items:
        stored_key = sort_key(stored_item)
        index = bisect_left(pending_keys, stored_key)
        if index < len(pending_keys) and pending_keys[index] == stored_key:
            match = pending.pop(index)
            del pending_keys[index]
            on_update(UpdatePair(match, stored_item))
        else:
            on_delete(stored_item)

    for item in pending:
        on_add(item)


def diff[T](
    incoming: Iterable[T] | None,
    stored: Iterable[T] | None,
    key: SortKey[T] | None = None,
) -> MergeResult[T]:
    """Return the merge outcome as lists instead of invoking callbacks."""

    result: MergeResult[T] = MergeResult()
    merge(
        incoming,
        stored,
        key,
        on_add=result.added.append,
        on_update=result.updated.append,
        on_delete=result.deleted.append,
    )
    return result


def merge_in_batch[T](
    incoming: Iterable[T] | None,
    stored: Iterable[T] | None,
    key: SortKey[T] | None = None,
    *,
    add_all: Callable[[list[T]], Any],
    update_all: Callable[[list[UpdatePair[T]]], Any],
    delete_all: Callable[[list[T]], Any],
) -> MergeResult[T]:
    """Merge and hand each outcome to a bulk callback exactly once.

    Deletions are applied first so that re-added keys never collide with rows
    that are about to disappear.
    """

    result = diff(incoming, stored, key)
    log.debug(
        "Merge result: added=%s, updated=%s, deleted=%s",
        len(result.added),
        len(result.updated),
        len(result.deleted),
    )

    delete_all(result.deleted)
    add_all(result.added)
    update_all(result.updated)
    return result
