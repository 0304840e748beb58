"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class CapabilityType(StrEnum):
    SETTINGS = "settings"
    DATA = "data"
    PROCEDURAL = "procedural"


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class RelationKind(StrEnum):
    """Discriminator for owner -> target assignment tables."""

    ROLE_CAPABILITY = "role_capability"
    USER_CAPABILITY = "user_capability"
    ROLE_CAPABILITY_SET = "role_capability_set"
    USER_CAPABILITY_SET = "user_capability_set"
