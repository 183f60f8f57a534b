"""Base mapping driver interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import ClassMapping


class MappingDriver(ABC):
    """
    Abstract source of raw mapping facts.

    A driver knows which classes are mapped, which are transient, and
    what each mapped class declares. It does not know about inheritance
    merging or metadata objects; that is the factory's job.
    """

    @abstractmethod
    def get_all_class_names(self) -> list[str]:
        """Names of every mapped (non-transient) class, in declaration order."""
        ...

    @abstractmethod
    def is_transient(self, class_name: str) -> bool:
        """
        Whether a class is excluded from persistence mapping.

        Classes the driver has never heard of are transient.
        """
        ...

    @abstractmethod
    def load_mapping(self, class_name: str) -> ClassMapping:
        """
        Get the raw mapping facts declared by a class.

        Raises:
            MappingInconsistencyError: If the class is not mapped
        """
        ...
