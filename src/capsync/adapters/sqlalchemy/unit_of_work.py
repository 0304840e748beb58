"""Transaction boundary over the authorization tables.

``startup()`` binds the module to one engine (running the Alembic upgrade on
the way); every :class:`SqlAlchemyAuthorizationUnitOfWork` created afterwards
opens its own session from the shared factory.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from capsync.adapters.sqlalchemy.mappings import start_mappers
from capsync.adapters.sqlalchemy.migrations import upgrade_head
from capsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCapabilityRepository,
    SqlAlchemyCapabilitySetRepository,
    SqlAlchemyRoleCapabilityRepository,
    SqlAlchemyRoleCapabilitySetRepository,
    SqlAlchemyUserCapabilityRepository,
    SqlAlchemyUserCapabilitySetRepository,
)
from capsync.config import DatabaseConfig, get_database_config
from capsync.domain.ports import AuthorizationRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The persistence adapter was used before ``startup()`` or outside a ``with`` block."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    _sessions: sessionmaker[Session] | None = field(default=None, repr=False)

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self._sessions = None

    def sessions(self) -> sessionmaker[Session]:
        if self.engine is None:
            raise StartupError("Persistence is not started; call startup() first")
        if self._sessions is None:
            self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._sessions


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database: DatabaseConfig | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or one built from ``database``) and upgrade the schema."""

    if _STATE.engine is not None and not force:
        raise StartupError("Persistence already started; pass force=True to rebind")

    if engine is None:
        settings = database or get_database_config()
        engine = create_engine(settings.uri, echo=settings.echo)
    start_mappers()
    upgrade_head(engine=engine)
    _STATE.bind(engine)
    log.debug("Persistence bound to %s", engine.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the bound engine; ``startup()`` may be called again afterwards."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.bind(None)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block; leaving the block without ``commit()`` discards changes."""

    def __init__(self) -> None:
        self._sessions = _STATE.sessions()
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work is already active")
        self._session = self._sessions()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                log.debug("Rolling back after %s", exc_type.__name__)
            # no-op when the block already committed
            session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its 'with' block")
        return self._session

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its 'with' block")
        return self._repositories


class SqlAlchemyAuthorizationUnitOfWork(BaseSqlAlchemyUnitOfWork[AuthorizationRepositories]):
    def _build_repositories(self, session: Session) -> AuthorizationRepositories:
        return AuthorizationRepositories(
            capabilities=SqlAlchemyCapabilityRepository(session),
            capability_sets=SqlAlchemyCapabilitySetRepository(session),
            role_capabilities=SqlAlchemyRoleCapabilityRepository(session),
            user_capabilities=SqlAlchemyUserCapabilityRepository(session),
            role_capability_sets=SqlAlchemyRoleCapabilitySetRepository(session),
            user_capability_sets=SqlAlchemyUserCapabilitySetRepository(session),
        )


if TYPE_CHECKING:
    from capsync.domain.ports import AuthorizationUnitOfWork

    _uow_check: AuthorizationUnitOfWork = SqlAlchemyAuthorizationUnitOfWork()
