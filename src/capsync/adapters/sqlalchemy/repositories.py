"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import Text, select, type_coerce

from capsync.adapters.sqlalchemy.mappings import (
    TABLE_BY_RELATION,
    capability_set_table,
    capability_table,
)
from capsync.domain.model import (
    Capability,
    CapabilitySet,
    Relation,
    RoleCapability,
    RoleCapabilitySet,
    UserCapability,
    UserCapabilitySet,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyRelationRepository[TRelation: Relation]:
    """Shared implementation for the four owner -> target assignment tables."""

    def __init__(self, session: Session, relation_cls: type[TRelation]) -> None:
        self.session = session
        self._relation_cls = relation_cls
        self._table = TABLE_BY_RELATION[relation_cls]

    def find_all_by_owner(self, owner_id: UUID) -> list[TRelation]:
        stmt = (
            select(self._relation_cls)
            .where(self._table.c.owner_id == owner_id)
            .order_by(self._table.c.target_id)
        )
        return list(self.session.execute(stmt).scalars())

    def find_all_by_target(self, target_id: UUID) -> list[TRelation]:
        stmt = (
            select(self._relation_cls)
            .where(self._table.c.target_id == target_id)
            .order_by(self._table.c.owner_id)
        )
        return list(self.session.execute(stmt).scalars())

    def exists_by_owner_and_target(self, owner_id: UUID, target_id: UUID) -> bool:
        stmt = (
            select(self._relation_cls)
            .where(self._table.c.owner_id == owner_id)
            .where(self._table.c.target_id == target_id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def save(self, relation: TRelation) -> None:
        self.session.add(relation)

    def save_all(self, relations: Iterable[TRelation]) -> None:
        self.session.add_all(list(relations))

    def delete(self, relation: TRelation) -> None:
        self.session.delete(relation)

    def delete_all(self, relations: Iterable[TRelation]) -> None:
        for relation in relations:
            self.session.delete(relation)


class SqlAlchemyRoleCapabilityRepository(SqlAlchemyRelationRepository[RoleCapability]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, RoleCapability)


class SqlAlchemyUserCapabilityRepository(SqlAlchemyRelationRepository[UserCapability]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserCapability)


class SqlAlchemyRoleCapabilitySetRepository(SqlAlchemyRelationRepository[RoleCapabilitySet]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, RoleCapabilitySet)


class SqlAlchemyUserCapabilitySetRepository(SqlAlchemyRelationRepository[UserCapabilitySet]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserCapabilitySet)


class SqlAlchemyCapabilityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_name(self, name: str) -> Capability | None:
        stmt = select(Capability).where(capability_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_all_by_application(self, application_id: str) -> list[Capability]:
        stmt = (
            select(Capability)
            .where(capability_table.c.application_id == application_id)
            .order_by(capability_table.c.name)
        )
        return list(self.session.execute(stmt).scalars())

    def find_by_ids(self, ids: Iterable[UUID], *, include_dummy: bool = False) -> list[Capability]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        stmt = select(Capability).where(capability_table.c.id.in_(wanted))
        if not include_dummy:
            stmt = stmt.where(capability_table.c.dummy.is_(False))
        found = {capability.id: capability for capability in self.session.execute(stmt).scalars()}
        return [found[capability_id] for capability_id in wanted if capability_id in found]

    def find_by_permissions(
        self, permissions: Iterable[str], *, include_dummy: bool = False
    ) -> list[Capability]:
        wanted = list(dict.fromkeys(permissions))
        if not wanted:
            return []
        stmt = (
            select(Capability)
            .where(capability_table.c.permission.in_(wanted))
            .order_by(capability_table.c.name)
        )
        if not include_dummy:
            stmt = stmt.where(capability_table.c.dummy.is_(False))
        return list(self.session.execute(stmt).scalars())

    def save(self, capability: Capability) -> None:
        self.session.add(capability)

    def delete(self, capability: Capability) -> None:
        self.session.delete(capability)


class SqlAlchemyCapabilitySetRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_name(self, name: str) -> CapabilitySet | None:
        stmt = select(CapabilitySet).where(capability_set_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_all_containing_capability(self, capability_id: UUID) -> list[CapabilitySet]:
        # ids are stored as a JSON array; narrow in SQL, confirm in Python
        ids_text = type_coerce(capability_set_table.c.capability_ids, Text)
        stmt = (
            select(CapabilitySet)
            .where(ids_text.contains(str(capability_id)))
            .order_by(capability_set_table.c.name)
        )
        return [
            capability_set
            for capability_set in self.session.execute(stmt).scalars()
            if capability_set.contains_capability(capability_id)
        ]

    def find_by_ids(self, ids: Iterable[UUID]) -> list[CapabilitySet]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        stmt = select(CapabilitySet).where(capability_set_table.c.id.in_(wanted))
        found = {item.id: item for item in self.session.execute(stmt).scalars()}
        return [found[set_id] for set_id in wanted if set_id in found]

    def find_by_permissions(self, permissions: Iterable[str]) -> list[CapabilitySet]:
        wanted = list(dict.fromkeys(permissions))
        if not wanted:
            return []
        stmt = (
            select(CapabilitySet)
            .where(capability_set_table.c.permission.in_(wanted))
            .order_by(capability_set_table.c.name)
        )
        return list(self.session.execute(stmt).scalars())

    def save(self, capability_set: CapabilitySet) -> None:
        self.session.add(capability_set)

    def delete(self, capability_set: CapabilitySet) -> None:
        self.session.delete(capability_set)


if TYPE_CHECKING:
    from capsync.domain.ports import (
        CapabilityRepository,
        CapabilitySetRepository,
        RelationRepository,
    )

    _session_stub = cast("Session", object())
    _capability_repo: CapabilityRepository = SqlAlchemyCapabilityRepository(_session_stub)
    _set_repo: CapabilitySetRepository = SqlAlchemyCapabilitySetRepository(_session_stub)
    _relation_repo: RelationRepository[RoleCapability] = SqlAlchemyRoleCapabilityRepository(
        _session_stub
    )
