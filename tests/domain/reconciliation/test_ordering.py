from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from capsync.domain.model import RelationKey, UserCapability
from capsync.domain.reconciliation import (
    by_id,
    by_name,
    by_relation_key,
    natural_order,
    nulls_first,
)


@dataclass
class _Named:
    name: str | None
    id: UUID | None = None


def test_nulls_first_places_missing_items_and_values_first() -> None:
    items = [_Named("b"), None, _Named(None), _Named("a")]

    ordered = sorted(items, key=nulls_first(lambda item: item.name))

    assert ordered[0] is None or ordered[0].name is None
    assert ordered[1] is None or ordered[1].name is None
    assert [item.name for item in ordered[2:] if item is not None] == ["a", "b"]


def test_natural_order_sorts_none_before_values() -> None:
    assert sorted([3, None, 1], key=natural_order) == [None, 1, 3]


def test_by_name_and_by_id() -> None:
    low = UUID(int=1)
    high = UUID(int=2)
    items = [_Named("zeta", high), _Named("alpha", low)]

    assert [item.name for item in sorted(items, key=by_name)] == ["alpha", "zeta"]
    assert [item.id for item in sorted(items, key=by_id)] == [low, high]


def test_relation_key_orders_by_owner_then_target() -> None:
    owner_a, owner_b = UUID(int=1), UUID(int=2)
    target_a, target_b = UUID(int=10), UUID(int=20)
    relations = [
        UserCapability(owner_id=owner_b, target_id=target_a),
        UserCapability(owner_id=owner_a, target_id=target_b),
        UserCapability(owner_id=owner_a, target_id=target_a),
    ]

    ordered = sorted(relations, key=by_relation_key)

    assert [relation.key for relation in ordered] == [
        RelationKey(owner_a, target_a),
        RelationKey(owner_a, target_b),
        RelationKey(owner_b, target_a),
    ]


def test_relation_key_has_value_equality() -> None:
    owner, target = UUID(int=5), UUID(int=6)

    assert RelationKey(owner, target) == RelationKey(owner, target)
    assert hash(RelationKey(owner, target)) == hash(RelationKey(owner, target))
    assert RelationKey(owner, target) != RelationKey(target, owner)
