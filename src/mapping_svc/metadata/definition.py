"""Class metadata definitions - cacheable build plans for metadata objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..driver.types import MappingKind
from ..errors import GenerationError, MappingInconsistencyError
from .strategy import ClassMetadataGeneratorStrategy
from .types import METADATA_TYPES, ClassMetadata, GeneratedArtifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClassMetadataDefinition:
    """Which metadata variant to build for a class, bound to which parent, from which artifact."""
    class_name: str
    kind: MappingKind
    parent: ClassMetadata | None
    artifact: GeneratedArtifact

    @property
    def metadata_type(self) -> type[ClassMetadata]:
        return METADATA_TYPES[self.kind]


class ClassMetadataDefinitionFactory:
    """Builds definitions, asking the generator strategy for each class's artifact."""

    def __init__(self, strategy: ClassMetadataGeneratorStrategy):
        self.strategy = strategy

    def build(self, class_name: str, parent: ClassMetadata | None) -> ClassMetadataDefinition:
        artifact = self.strategy.generate(class_name, parent)

        try:
            kind = artifact.kind
        except (KeyError, TypeError, ValueError) as e:
            raise GenerationError(class_name, f"artifact has no valid kind: {e}") from e

        expected_parent = parent.class_name if parent is not None else None
        if artifact.parent_class_name != expected_parent:
            raise MappingInconsistencyError(
                class_name,
                f"artifact was generated for parent '{artifact.parent_class_name}', "
                f"but the resolved parent is '{expected_parent}'",
            )

        logger.debug(f"Built {kind.value} definition for {class_name}")
        return ClassMetadataDefinition(
            class_name=class_name,
            kind=kind,
            parent=parent,
            artifact=artifact,
        )
