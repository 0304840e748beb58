"""Pydantic models describing module capability descriptor payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from capsync.domain.model import HttpMethod

ModuleType = Literal["module", "ui-module"]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class DescriptorBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EndpointPayload(DescriptorBaseModel):
    path: str = Field(alias="pathPattern")
    method: HttpMethod

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


class PermissionPayload(DescriptorBaseModel):
    permission_name: str = Field(alias="permissionName")
    display_name: str | None = Field(default=None, alias="displayName")
    description: str | None = None
    sub_permissions: list[str] = Field(default_factory=list, alias="subPermissions")
    replaces: list[str] = Field(default_factory=list)

    _normalize_description = field_validator("description", "display_name", mode="before")(
        _blank_to_none
    )


class ResourcePayload(DescriptorBaseModel):
    permission: PermissionPayload
    endpoints: list[EndpointPayload] = Field(default_factory=list)


class CapabilityDescriptor(DescriptorBaseModel):
    module_id: str = Field(alias="moduleId")
    module_type: ModuleType = Field(default="module", alias="moduleType")
    application_id: str = Field(alias="applicationId")
    resources: list[ResourcePayload] = Field(default_factory=list)

    @field_validator("application_id", "module_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


CapabilityDescriptorInput = CapabilityDescriptor | Mapping[str, object]
