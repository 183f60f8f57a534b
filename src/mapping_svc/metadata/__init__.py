"""Class metadata - building, caching and validating mapping metadata."""

from .types import (
    METADATA_TYPES,
    AssociationMetadata,
    BindingState,
    ClassMetadata,
    EmbeddableMetadata,
    EntityMetadata,
    FieldMetadata,
    GeneratedArtifact,
    MappedSuperclassMetadata,
)
from .generator import ClassMetadataGenerator
from .strategy import (
    AlwaysGenerateStrategy,
    ArtifactStore,
    AutoGenerate,
    ClassMetadataGeneratorStrategy,
    ConditionalFileWriterStrategy,
    NeverGenerateStrategy,
    create_strategy,
)
from .definition import ClassMetadataDefinition, ClassMetadataDefinitionFactory
from .context import ClassMetadataBuildingContext
from .factory import ClassMetadataFactory

__all__ = [
    "METADATA_TYPES",
    "AssociationMetadata",
    "BindingState",
    "ClassMetadata",
    "EmbeddableMetadata",
    "EntityMetadata",
    "FieldMetadata",
    "GeneratedArtifact",
    "MappedSuperclassMetadata",
    "ClassMetadataGenerator",
    "AlwaysGenerateStrategy",
    "ArtifactStore",
    "AutoGenerate",
    "ClassMetadataGeneratorStrategy",
    "ConditionalFileWriterStrategy",
    "NeverGenerateStrategy",
    "create_strategy",
    "ClassMetadataDefinition",
    "ClassMetadataDefinitionFactory",
    "ClassMetadataBuildingContext",
    "ClassMetadataFactory",
]
