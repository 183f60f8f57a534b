"""Building context - one validation pass over everything built in a resolution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..driver.types import MappingKind
from ..errors import HierarchyValidationError
from .types import ClassMetadata

if TYPE_CHECKING:
    from .factory import ClassMetadataFactory

logger = logging.getLogger(__name__)


class ClassMetadataBuildingContext:
    """
    Collects the metadata built during one ``get_metadata_for`` call.

    Some checks (association back-references, discriminator maps) only
    make sense once the whole local hierarchy exists, so they run once at
    the end and every issue found is reported together.
    """

    def __init__(self, factory: ClassMetadataFactory, class_name: str):
        self.factory = factory
        self.class_name = class_name
        self._built: dict[str, ClassMetadata] = {}

    def add(self, metadata: ClassMetadata) -> None:
        self._built[metadata.class_name] = metadata

    @property
    def built(self) -> list[ClassMetadata]:
        return list(self._built.values())

    def validate(self) -> None:
        """
        Raises:
            HierarchyValidationError: With every issue found across the chain
        """
        issues: list[str] = []
        for metadata in self._built.values():
            issues.extend(self._check(metadata))

        if issues:
            logger.warning(f"Validation of {self.class_name} found {len(issues)} issue(s)")
            raise HierarchyValidationError(self.class_name, issues)

    def _lookup(self, class_name: str) -> ClassMetadata | None:
        return self._built.get(class_name) or self.factory.loaded_metadata(class_name)

    def _check(self, metadata: ClassMetadata) -> list[str]:
        name = metadata.class_name
        issues = []

        if not metadata.is_bound:
            issues.append(f"{name}: reflection is not bound")

        if metadata.kind is MappingKind.ENTITY:
            if not metadata.identifier:
                issues.append(f"{name}: entity has no identifier field")

            if metadata.is_in_hierarchy and metadata.discriminator_map:
                value = metadata.discriminator_value
                if value is None:
                    issues.append(f"{name}: no discriminator value in hierarchy rooted at {metadata.root_class_name}")
                elif metadata.discriminator_map.get(value) != name:
                    issues.append(
                        f"{name}: discriminator value '{value}' maps to "
                        f"'{metadata.discriminator_map.get(value)}'"
                    )

        for assoc in metadata.associations.values():
            if assoc.declared_in != name:
                continue
            label = f"{name}.{assoc.name}"
            if self.factory.is_transient(assoc.target):
                issues.append(f"{label}: target '{assoc.target}' is not a mapped class")
                continue

            target = self._lookup(assoc.target)
            if target is None:
                continue
            if target.kind is MappingKind.EMBEDDABLE:
                issues.append(f"{label}: target '{assoc.target}' is an embeddable")
            for side, other in (("mapped_by", assoc.mapped_by), ("inversed_by", assoc.inversed_by)):
                if other and not target.has_association(other):
                    issues.append(f"{label}: {side} '{other}' is not an association of '{assoc.target}'")

        return issues
