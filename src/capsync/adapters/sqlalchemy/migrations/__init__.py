"""Alembic revisions for the capsync schema and helpers to apply them."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext

from capsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

SCRIPT_LOCATION: Final[Path] = Path(__file__).resolve().parent


def alembic_config(
    *, connection: Connection | None = None, database_uri: str | None = None
) -> Config:
    """Config for the bundled scripts, bound to a live connection or to a URI."""

    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    if connection is not None:
        config.attributes["connection"] = connection
    else:
        config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema up to the newest revision in one transaction."""

    if engine is None:
        command.upgrade(alembic_config(database_uri=database_uri), "head")
        return
    with engine.begin() as connection:
        command.upgrade(alembic_config(connection=connection), "head")


def current_revision(engine: Engine) -> str | None:
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()
