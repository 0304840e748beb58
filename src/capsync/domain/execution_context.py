"""Ambient multi-tenant execution context.

The context of the current request/job lives in a ``ContextVar`` so it follows
threads and asyncio tasks. Events never keep a reference to a live context: they
store :meth:`ExecutionContext.snapshot` output taken at commit time.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Protocol, runtime_checkable
from uuid import UUID

type Headers = Mapping[str, tuple[str, ...]]


def _freeze_headers(headers: Mapping[str, object] | None) -> Headers:
    frozen: dict[str, tuple[str, ...]] = {}
    for name, value in (headers or {}).items():
        if isinstance(value, str):
            frozen[name] = (value,)
        elif isinstance(value, (list, tuple, set, frozenset)):
            frozen[name] = tuple(str(item) for item in value)
        else:
            frozen[name] = (str(value),)
    return MappingProxyType(frozen)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExecutionContext:
    tenant_id: str | None = None
    user_id: UUID | None = None
    request_id: str | None = None
    okapi_url: str | None = None
    token: str | None = field(default=None, repr=False)
    headers: Headers = field(default_factory=lambda: MappingProxyType({}))

    def snapshot(self) -> ExecutionContext:
        """Return a copy whose headers no longer share state with the source."""
        return replace(self, headers=_freeze_headers(self.headers))

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, object],
        *,
        tenant_header: str = "x-okapi-tenant",
        request_header: str = "x-okapi-request-id",
        url_header: str = "x-okapi-url",
        user_header: str = "x-okapi-user-id",
    ) -> ExecutionContext:
        """Build a context from request headers; header names match case-insensitively.

        A malformed user id header raises ``ValueError``.
        """
        frozen = _freeze_headers({name.lower(): value for name, value in headers.items()})

        def first(name: str) -> str | None:
            values = frozen.get(name)
            return values[0] if values else None

        raw_user_id = first(user_header)
        try:
            user_id = UUID(raw_user_id.strip()) if raw_user_id and raw_user_id.strip() else None
        except ValueError as exc:
            raise ValueError(f"Invalid user id header '{user_header}': {raw_user_id!r}") from exc

        return cls(
            tenant_id=first(tenant_header),
            user_id=user_id,
            request_id=first(request_header),
            okapi_url=first(url_header),
            headers=frozen,
        )


@runtime_checkable
class ExecutionContextProvider(Protocol):
    """Read-only access to the context of the running operation."""

    def current(self) -> ExecutionContext | None: ...


_CURRENT_CONTEXT: ContextVar[ExecutionContext | None] = ContextVar(
    "capsync_execution_context", default=None
)


class ContextVarExecutionContextProvider:
    """Provider backed by the module-level ``ContextVar``."""

    def current(self) -> ExecutionContext | None:
        return _CURRENT_CONTEXT.get()


def current_execution_context() -> ExecutionContext | None:
    return _CURRENT_CONTEXT.get()


@contextmanager
def execution_scope(context: ExecutionContext) -> Iterator[ExecutionContext]:
    """Bind ``context`` for the duration of the ``with`` block."""

    token = _CURRENT_CONTEXT.set(context)
    try:
        yield context
    finally:
        _CURRENT_CONTEXT.reset(token)
