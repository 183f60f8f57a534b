"""Mapping registry - in-memory, thread-safe mapping driver."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..errors import MappingInconsistencyError
from .base import MappingDriver
from .types import ClassMapping


@dataclass
class MappingRegistry(MappingDriver):
    """
    Thread-safe registry of class mappings.

    Supports:
    - Mapped and explicitly transient classes
    - Declared parent links (``extends``) for classes that cannot be imported
    - Merging (for multi-file mapping directories)
    """
    _mappings: dict[str, ClassMapping] = field(default_factory=dict)
    _transient: set[str] = field(default_factory=set)
    _parents: dict[str, str] = field(default_factory=dict)  # class -> declared parent
    _lock: threading.RLock = field(default_factory=threading.RLock)

    def register(self, mapping: ClassMapping) -> None:
        """Register (or replace) the mapping of a class."""
        with self._lock:
            self._mappings[mapping.class_name] = mapping
            self._transient.discard(mapping.class_name)
            if mapping.extends:
                self._parents[mapping.class_name] = mapping.extends
            else:
                self._parents.pop(mapping.class_name, None)

    def register_transient(self, class_name: str, extends: str | None = None) -> None:
        """Declare a class as transient, optionally recording its parent."""
        with self._lock:
            self._mappings.pop(class_name, None)
            self._transient.add(class_name)
            if extends:
                self._parents[class_name] = extends

    def get_all_class_names(self) -> list[str]:
        with self._lock:
            return list(self._mappings.keys())

    def is_transient(self, class_name: str) -> bool:
        with self._lock:
            return class_name not in self._mappings

    def load_mapping(self, class_name: str) -> ClassMapping:
        with self._lock:
            mapping = self._mappings.get(class_name)
        if mapping is None:
            raise MappingInconsistencyError(
                class_name, "class is not a valid entity or mapped superclass"
            )
        return mapping

    def declared_parent(self, class_name: str) -> str | None:
        """Parent declared through ``extends``, for mapped and transient classes alike."""
        with self._lock:
            return self._parents.get(class_name)

    def knows(self, class_name: str) -> bool:
        """Whether the class was declared at all (mapped or transient)."""
        with self._lock:
            return class_name in self._mappings or class_name in self._transient

    def all_mappings(self) -> list[ClassMapping]:
        with self._lock:
            return list(self._mappings.values())

    def update(self, other: MappingRegistry) -> None:
        """Merge another registry into this one; its declarations win."""
        with other._lock:
            mappings = list(other._mappings.values())
            transient = [(name, other._parents.get(name)) for name in other._transient]
        with self._lock:
            for class_name, extends in transient:
                self.register_transient(class_name, extends)
            for mapping in mappings:
                self.register(mapping)
