"""Initial schema: capabilities, capability sets and assignments.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _relation_table(name: str, owner_column: str, target_column: str) -> None:
    op.create_table(
        name,
        sa.Column(owner_column, sa.Uuid(), nullable=False),
        sa.Column(target_column, sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint(owner_column, target_column, name=f"pk_{name}"),
    )
    op.create_index(f"ix_{name}_{target_column}", name, [target_column])


def upgrade() -> None:
    op.create_table(
        "capability",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("resource", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(length=7), nullable=True),
        sa.Column("type", sa.String(length=10), nullable=True),
        sa.Column("permission", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("endpoints", sa.Text(), nullable=False),
        sa.Column("dummy", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_capability"),
        sa.UniqueConstraint("name", name="uq_capability_capability_name"),
    )
    op.create_index("ix_capability_application_id", "capability", ["application_id"])

    op.create_table(
        "capability_set",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("resource", sa.String(), nullable=False),
        sa.Column("application_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(length=7), nullable=True),
        sa.Column("type", sa.String(length=10), nullable=True),
        sa.Column("permission", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("capability_ids", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_capability_set"),
        sa.UniqueConstraint("name", name="uq_capability_set_capability_set_name"),
    )
    op.create_index(
        "ix_capability_set_application_id", "capability_set", ["application_id"]
    )

    _relation_table("role_capability", "role_id", "capability_id")
    _relation_table("user_capability", "user_id", "capability_id")
    _relation_table("role_capability_set", "role_id", "capability_set_id")
    _relation_table("user_capability_set", "user_id", "capability_set_id")


def downgrade() -> None:
    for name in (
        "user_capability_set",
        "role_capability_set",
        "user_capability",
        "role_capability",
    ):
        op.drop_table(name)
    op.drop_index("ix_capability_set_application_id", table_name="capability_set")
    op.drop_table("capability_set")
    op.drop_index("ix_capability_application_id", table_name="capability")
    op.drop_table("capability")
