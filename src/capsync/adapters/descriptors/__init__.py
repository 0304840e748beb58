"""Public interface for the module descriptor adapter."""

from __future__ import annotations

from .schema import CapabilityDescriptor, CapabilityDescriptorInput
from .translator import (
    capabilities_from_descriptor,
    load_descriptor,
    replacements_from_descriptor,
)

__all__ = [
    "CapabilityDescriptor",
    "CapabilityDescriptorInput",
    "capabilities_from_descriptor",
    "load_descriptor",
    "replacements_from_descriptor",
]
