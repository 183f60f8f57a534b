"""Mapping drivers - sources of raw per-class mapping facts."""

from .types import (
    AssociationMapping, AssociationType, ClassMapping, DiscriminatorMapping,
    FieldMapping, InheritanceType, MappingKind,
)
from .base import MappingDriver
from .registry import MappingRegistry
from .loader import MappingLoader, load_mappings

__all__ = [
    "AssociationMapping",
    "AssociationType",
    "ClassMapping",
    "DiscriminatorMapping",
    "FieldMapping",
    "InheritanceType",
    "MappingKind",
    "MappingDriver",
    "MappingRegistry",
    "MappingLoader",
    "load_mappings",
]
