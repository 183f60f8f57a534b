"""Ancestor chain resolution."""

from __future__ import annotations

from ..driver.base import MappingDriver
from ..reflection.service import ReflectionService


def parent_class_names(class_name: str, reflection: ReflectionService, driver: MappingDriver) -> list[str]:
    """
    Non-transient ancestors of a class, base first.

    Transient ancestors are dropped entirely, so the nearest mapped
    ancestor becomes the effective parent of whatever sits below them.
    """
    return [
        name
        for name in reversed(reflection.ancestor_classes(class_name))
        if not driver.is_transient(name)
    ]


def build_order(class_name: str, reflection: ReflectionService, driver: MappingDriver) -> list[str]:
    """The chain to build for a class: its mapped ancestors, base first, then the class itself."""
    return parent_class_names(class_name, reflection, driver) + [class_name]
