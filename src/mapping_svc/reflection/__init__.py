"""Reflection - class introspection for metadata building."""

from .service import (
    DeclaredReflectionService,
    ReflectionHandle,
    ReflectionService,
    RuntimeReflectionService,
)

__all__ = [
    "DeclaredReflectionService",
    "ReflectionHandle",
    "ReflectionService",
    "RuntimeReflectionService",
]
