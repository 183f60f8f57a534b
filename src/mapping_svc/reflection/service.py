"""Reflection services - ancestor lookup and post-construction binding."""

from __future__ import annotations

import importlib
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import UnresolvableClassError
from ..naming import class_name_of

if TYPE_CHECKING:
    from ..driver.registry import MappingRegistry
    from ..metadata.types import ClassMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReflectionHandle:
    """Runtime access to the mapped class behind a metadata object."""
    class_name: str
    cls: type | None
    field_names: tuple[str, ...] = ()

    def new_instance(self) -> Any:
        """Create an instance without running ``__init__``, as hydration does."""
        if self.cls is None:
            raise UnresolvableClassError(self.class_name, "no runtime class is available")
        return self.cls.__new__(self.cls)

    def get_value(self, obj: Any, field_name: str) -> Any:
        return getattr(obj, field_name)

    def set_value(self, obj: Any, field_name: str, value: Any) -> None:
        # Bypasses frozen dataclasses and property setters
        object.__setattr__(obj, field_name, value)


class ReflectionService(ABC):
    """Answers inheritance questions about classes and binds reflection onto metadata."""

    @abstractmethod
    def ancestor_classes(self, class_name: str) -> list[str]:
        """
        Names of all ancestors of a class, nearest first (derived to base).

        Raises:
            UnresolvableClassError: If the class cannot be located
        """
        ...

    @abstractmethod
    def bind_reflection(self, metadata: ClassMetadata) -> None:
        """Attach a reflection handle to freshly constructed metadata."""
        ...


class RuntimeReflectionService(ReflectionService):
    """
    Reflection over importable Python classes.

    Class names are dotted ``module.QualName`` paths. Ancestors follow the
    method resolution order, without ``object``.
    """

    def __init__(self):
        self._classes: dict[str, type] = {}
        self._lock = threading.Lock()

    def get_class(self, class_name: str) -> type:
        with self._lock:
            cls = self._classes.get(class_name)
        if cls is not None:
            return cls

        cls = self._import_class(class_name)
        logger.debug(f"Imported mapped class {class_name}")
        with self._lock:
            self._classes[class_name] = cls
        return cls

    @staticmethod
    def _import_class(class_name: str) -> type:
        parts = class_name.split(".")
        # Longest importable module prefix wins; the rest is the qualified name
        for i in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:i])
            try:
                module = importlib.import_module(module_name)
            except ModuleNotFoundError as e:
                if e.name is not None and (module_name == e.name or module_name.startswith(f"{e.name}.")):
                    continue
                # The module exists but one of its own imports is missing
                raise UnresolvableClassError(class_name, f"importing '{module_name}' failed: {e}") from e
            except ImportError as e:
                raise UnresolvableClassError(class_name, f"importing '{module_name}' failed: {e}") from e

            obj: Any = module
            for attr in parts[i:]:
                try:
                    obj = getattr(obj, attr)
                except AttributeError:
                    raise UnresolvableClassError(
                        class_name, f"'{module_name}' has no attribute path '{'.'.join(parts[i:])}'"
                    )
            if not isinstance(obj, type):
                raise UnresolvableClassError(class_name, "name does not refer to a class")
            return obj

        raise UnresolvableClassError(class_name, "no importable module")

    def ancestor_classes(self, class_name: str) -> list[str]:
        cls = self.get_class(class_name)
        return [class_name_of(base) for base in cls.__mro__[1:] if base is not object]

    def bind_reflection(self, metadata: ClassMetadata) -> None:
        cls = self.get_class(metadata.class_name)
        metadata.wakeup_reflection(ReflectionHandle(
            class_name=metadata.class_name,
            cls=cls,
            field_names=tuple(metadata.fields),
        ))


class DeclaredReflectionService(ReflectionService):
    """
    Reflection over the parent links declared in the mapping (``extends``).

    Used when the mapped classes are not importable in this process, e.g.
    when inspecting a mapping file from the command line. Bound handles
    carry no runtime class.
    """

    def __init__(self, registry: MappingRegistry):
        self.registry = registry

    def ancestor_classes(self, class_name: str) -> list[str]:
        if not self.registry.knows(class_name):
            raise UnresolvableClassError(class_name, "class is not declared in the mapping")

        ancestors: list[str] = []
        seen = {class_name}
        parent = self.registry.declared_parent(class_name)
        while parent is not None:
            if parent in seen:
                raise UnresolvableClassError(class_name, f"inheritance cycle through '{parent}'")
            seen.add(parent)
            ancestors.append(parent)
            parent = self.registry.declared_parent(parent)
        return ancestors

    def bind_reflection(self, metadata: ClassMetadata) -> None:
        metadata.wakeup_reflection(ReflectionHandle(
            class_name=metadata.class_name,
            cls=None,
            field_names=tuple(metadata.fields),
        ))
