"""SQLAlchemy mapping metadata for capabilities, capability sets and assignments."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from capsync.domain.capability_actions import CapabilityAction
from capsync.domain.model import (
    Capability,
    CapabilitySet,
    CapabilityType,
    Endpoint,
    HttpMethod,
    RoleCapability,
    RoleCapabilitySet,
    UserCapability,
    UserCapabilitySet,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class UUIDListType(TypeDecorator[list[uuid.UUID]]):
    """Ordered list of ids stored as a JSON array of strings."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[uuid.UUID] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps([str(item) for item in value or ()])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[uuid.UUID]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [uuid.UUID(str(item)) for item in cast(list[Any], loaded)]


class EndpointListType(TypeDecorator[list[Endpoint]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Endpoint] | None, dialect: Dialect) -> str:
        _ = dialect
        payload = [{"path": item.path, "method": item.method.value} for item in value or ()]
        return json.dumps(payload, separators=(",", ":"))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Endpoint]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        endpoints: list[Endpoint] = []
        for item in cast(list[Any], loaded):
            if isinstance(item, dict):
                entry = cast(dict[str, Any], item)
                endpoints.append(Endpoint(str(entry["path"]), HttpMethod(entry["method"])))
        return endpoints


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Capabilities ----------------------------------------------------------------

capability_table = Table(
    "capability",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False, unique=True),
    Column("resource", String, nullable=False),
    Column("application_id", String, nullable=False, index=True),
    Column("action", Enum(CapabilityAction, native_enum=False), nullable=True),
    Column("type", Enum(CapabilityType, native_enum=False), nullable=True),
    Column("permission", String, nullable=True),
    Column("description", Text, nullable=True),
    Column("endpoints", EndpointListType, nullable=False),
    Column("dummy", Boolean, nullable=False, default=False),
    Column("updated_at", UTCDateTime, nullable=True),
)

capability_set_table = Table(
    "capability_set",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False, unique=True),
    Column("resource", String, nullable=False),
    Column("application_id", String, nullable=False, index=True),
    Column("action", Enum(CapabilityAction, native_enum=False), nullable=True),
    Column("type", Enum(CapabilityType, native_enum=False), nullable=True),
    Column("permission", String, nullable=True),
    Column("description", Text, nullable=True),
    Column("capability_ids", UUIDListType, nullable=False),
)

# Assignments -----------------------------------------------------------------
# The owner/target columns carry domain-specific names in the database and are
# exposed to the ORM under the generic ``owner_id`` / ``target_id`` keys.


def _relation_table(name: str, owner_column: str, target_column: str) -> Table:
    return Table(
        name,
        mapper_registry.metadata,
        Column(owner_column, UUIDColumnType, key="owner_id", nullable=False),
        Column(target_column, UUIDColumnType, key="target_id", nullable=False),
        Column("created_at", UTCDateTime, nullable=True),
        PrimaryKeyConstraint("owner_id", "target_id"),
        Index(f"ix_{name}_{target_column}", "target_id"),
    )


role_capability_table = _relation_table("role_capability", "role_id", "capability_id")
user_capability_table = _relation_table("user_capability", "user_id", "capability_id")
role_capability_set_table = _relation_table(
    "role_capability_set", "role_id", "capability_set_id"
)
user_capability_set_table = _relation_table(
    "user_capability_set", "user_id", "capability_set_id"
)

TABLE_BY_RELATION: dict[type, Table] = {
    RoleCapability: role_capability_table,
    UserCapability: user_capability_table,
    RoleCapabilitySet: role_capability_set_table,
    UserCapabilitySet: user_capability_set_table,
}


@cache
def start_mappers() -> orm.registry:
    """Map domain classes onto their tables (idempotent)."""

    mapper_registry.map_imperatively(Capability, capability_table)
    mapper_registry.map_imperatively(CapabilitySet, capability_set_table)
    for relation_cls, table in TABLE_BY_RELATION.items():
        mapper_registry.map_imperatively(relation_cls, table)

    configure_mappers()
    return mapper_registry

