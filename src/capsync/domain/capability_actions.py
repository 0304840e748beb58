"""Normalized capability actions and the vocabularies used to infer them.

Permission names and HTTP methods use heterogeneous verbs (``get``, ``read-all``,
``allops``, ``run-jobs`` ...). Each :class:`CapabilityAction` owns two token
vocabularies: one for data/settings capabilities and one for procedural
capabilities. Within one kind a token belongs to at most one action, so the
lookup order only matters for determinism.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from capsync.domain.model.enums import CapabilityType


class CapabilityAction(StrEnum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE = "manage"
    EXECUTE = "execute"

    @property
    def data_settings_tokens(self) -> tuple[str, ...]:
        return _DATA_SETTINGS_TOKENS[self]

    @property
    def procedural_tokens(self) -> tuple[str, ...]:
        return _PROCEDURAL_TOKENS[self]


_DATA_SETTINGS_TOKENS: Final[dict[CapabilityAction, tuple[str, ...]]] = {
    CapabilityAction.VIEW: ("get", "view", "read", "get-all", "read-all"),
    CapabilityAction.CREATE: ("post", "create", "write"),
    CapabilityAction.EDIT: ("put", "edit", "update", "patch"),
    CapabilityAction.DELETE: ("delete", "delete-all"),
    CapabilityAction.MANAGE: ("all", "manage", "allops"),
    CapabilityAction.EXECUTE: (),
}

_PROCEDURAL_TOKENS: Final[dict[CapabilityAction, tuple[str, ...]]] = {
    CapabilityAction.VIEW: (),
    CapabilityAction.CREATE: (),
    CapabilityAction.EDIT: (),
    CapabilityAction.DELETE: (),
    CapabilityAction.MANAGE: (),
    CapabilityAction.EXECUTE: (
        "post",
        "download",
        "export",
        "assign",
        "restore",
        "approve",
        "reopen",
        "start",
        "unopen",
        "validate",
        "resend",
        "run-jobs",
        "stop-jobs",
        "generate",
        "reset",
        "test",
        "import",
        "cancel",
        "exportCSV",
        "showHidden",
        "updateEncumbrances",
    ),
}

DATA_SUFFIXES: Final[frozenset[str]] = frozenset(
    token for tokens in _DATA_SETTINGS_TOKENS.values() for token in tokens
)
PROCEDURAL_KEYWORDS: Final[frozenset[str]] = frozenset(
    token for tokens in _PROCEDURAL_TOKENS.values() for token in tokens
)

_WHITESPACE = re.compile(r"\s+")
_RESOURCE_SEPARATORS = re.compile(r"[.\-_]+")


def classify_action(
    token: str | None, capability_type: CapabilityType | None
) -> CapabilityAction | None:
    """Return the action whose vocabulary contains ``token`` for the given kind.

    Unknown tokens (and unknown kinds) yield ``None``; callers decide whether an
    unclassified action is fatal.
    """

    if token is None or capability_type is None:
        return None
    if capability_type is CapabilityType.PROCEDURAL:
        vocabulary = _PROCEDURAL_TOKENS
    else:
        vocabulary = _DATA_SETTINGS_TOKENS
    for action in CapabilityAction:
        if token in vocabulary[action]:
            return action
    return None


def capability_name(resource: str, action: CapabilityAction) -> str:
    """Build the canonical capability name, e.g. ``users_item.view``."""

    return f"{_WHITESPACE.sub('_', resource.strip().lower())}.{action.value}"


@dataclass(frozen=True, slots=True)
class PermissionData:
    """Resource/type/action triple extracted from a permission name."""

    resource: str
    type: CapabilityType
    action: CapabilityAction
    permission: str


def parse_permission(permission_name: str) -> PermissionData | None:
    """Split ``users.item.get`` style names into resource, type and action.

    The last dot-separated segment is the action token. A ``settings`` segment in
    the prefix marks a settings capability; otherwise data vocabulary wins over the
    procedural one. Returns ``None`` when the token cannot be classified.
    """

    name = permission_name.strip()
    prefix, dot, suffix = name.rpartition(".")
    if not dot or not prefix or not suffix:
        return None

    segments = prefix.split(".")
    if "settings" in segments and suffix in DATA_SUFFIXES:
        capability_type = CapabilityType.SETTINGS
    elif suffix in DATA_SUFFIXES:
        capability_type = CapabilityType.DATA
    elif suffix in PROCEDURAL_KEYWORDS:
        capability_type = CapabilityType.PROCEDURAL
    else:
        return None

    action = classify_action(suffix, capability_type)
    if action is None:
        return None

    words = [word for word in _RESOURCE_SEPARATORS.split(prefix) if word]
    resource = " ".join(word[:1].upper() + word[1:] for word in words)
    return PermissionData(resource=resource, type=capability_type, action=action, permission=name)
