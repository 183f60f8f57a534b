"""Class metadata factory - resolves, builds and caches class metadata."""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..driver.base import MappingDriver
from ..errors import GenerationError, HierarchyValidationError, MetadataStateError
from ..naming import DefaultNameNormalizer, NameNormalizer
from ..reflection.service import ReflectionService
from .context import ClassMetadataBuildingContext
from .definition import ClassMetadataDefinition, ClassMetadataDefinitionFactory
from .hierarchy import build_order
from .strategy import ClassMetadataGeneratorStrategy
from .types import ClassMetadata

logger = logging.getLogger(__name__)


class ClassMetadataFactory:
    """
    Thread-safe resolver of class metadata.

    For a requested class it walks the mapped ancestor chain base first,
    builds one definition and one metadata object per class (never more,
    however many subclasses share an ancestor), links each metadata to its
    parent's cached instance, and validates the chain once at the end.

    Both caches live for the lifetime of the factory. Concurrent callers
    racing for the same uncached class are single-flighted per class name:
    one builds, the others wait and reuse its result.
    """

    def __init__(
        self,
        driver: MappingDriver,
        reflection: ReflectionService,
        strategy: ClassMetadataGeneratorStrategy,
        normalizer: NameNormalizer | None = None,
    ):
        self.driver = driver
        self.reflection = reflection
        self.normalizer = normalizer or DefaultNameNormalizer()
        self.definition_factory = ClassMetadataDefinitionFactory(strategy)

        self._definitions: dict[str, ClassMetadataDefinition] = {}
        self._loaded: dict[str, ClassMetadata] = {}
        self._lock = threading.RLock()
        self._build_locks: dict[str, threading.Lock] = {}

        # Stats
        self._hits = 0
        self._misses = 0
        self._definitions_built = 0
        self._metadata_built = 0

    def get_all_metadata(self) -> list[ClassMetadata]:
        """Metadata of every mapped class, in the driver's order."""
        return [self.get_metadata_for(name) for name in self.driver.get_all_class_names()]

    def get_metadata_for(self, ref: Any) -> ClassMetadata:
        """
        Get the metadata of a class, building it and its ancestors if needed.

        Args:
            ref: Class name, class object, instance or proxy

        Raises:
            UnresolvableClassError: If the class or an ancestor cannot be introspected
            MappingInconsistencyError: If a mapping in the chain is invalid
            GenerationError: If an artifact cannot be produced under the active policy
            HierarchyValidationError: If the assembled chain fails validation
        """
        class_name = self.normalizer.canonical_name(ref)

        with self._lock:
            metadata = self._loaded.get(class_name)
            if metadata is not None:
                self._hits += 1
                return metadata
            self._misses += 1

        context = ClassMetadataBuildingContext(self, class_name)
        parent: ClassMetadata | None = None

        for name in build_order(class_name, self.reflection, self.driver):
            parent = self._load(name, parent, context)

        context.validate()
        logger.debug(f"Resolved {class_name} ({len(context.built)} built)")

        with self._lock:
            return self._loaded[class_name]

    def validate_hierarchy(self, ref: Any) -> None:
        """
        Resolve a class, then validate it together with its ancestors.

        Unlike ``get_metadata_for`` this checks the whole chain even when
        parts of it were built and cached by an earlier call, so every
        class gets its own verdict regardless of resolution order.

        Raises:
            Everything ``get_metadata_for`` raises
        """
        class_name = self.normalizer.canonical_name(ref)
        try:
            self.get_metadata_for(class_name)
        except HierarchyValidationError:
            logger.debug(f"{class_name} failed validation on build, re-checking its chain")

        metadata = self.loaded_metadata(class_name)
        context = ClassMetadataBuildingContext(self, class_name)
        for ancestor in reversed(metadata.ancestors()):
            context.add(ancestor)
        context.add(metadata)
        context.validate()

    def has_metadata_for(self, class_name: str) -> bool:
        with self._lock:
            return class_name in self._loaded

    def set_metadata_for(self, class_name: str, metadata: ClassMetadata) -> None:
        """Register metadata by hand, replacing anything cached."""
        with self._lock:
            self._loaded[class_name] = metadata

    def is_transient(self, ref: Any) -> bool:
        return self.driver.is_transient(self.normalizer.canonical_name(ref))

    def loaded_metadata(self, class_name: str) -> ClassMetadata | None:
        """Cached metadata of a class, without building anything."""
        with self._lock:
            return self._loaded.get(class_name)

    def loaded_class_names(self) -> list[str]:
        with self._lock:
            return list(self._loaded.keys())

    def _load(
        self,
        class_name: str,
        parent: ClassMetadata | None,
        context: ClassMetadataBuildingContext,
    ) -> ClassMetadata:
        """Cached metadata for one chain entry, building it under its per-class lock if absent."""
        with self._lock:
            metadata = self._loaded.get(class_name)
            if metadata is not None:
                return metadata
            build_lock = self._build_locks.setdefault(class_name, threading.Lock())

        with build_lock:
            with self._lock:
                metadata = self._loaded.get(class_name)
            if metadata is not None:
                return metadata

            definition = self._get_or_create_definition(class_name, parent)
            metadata = self._create_class_metadata(definition)

            with self._lock:
                self._loaded[class_name] = metadata
                self._metadata_built += 1
                # Kept on failure so retries stay serialized
                self._build_locks.pop(class_name, None)

        context.add(metadata)
        return metadata

    def _get_or_create_definition(self, class_name: str, parent: ClassMetadata | None) -> ClassMetadataDefinition:
        with self._lock:
            definition = self._definitions.get(class_name)
        if definition is not None:
            return definition

        definition = self.definition_factory.build(class_name, parent)
        with self._lock:
            self._definitions[class_name] = definition
            self._definitions_built += 1
        return definition

    def _create_class_metadata(self, definition: ClassMetadataDefinition) -> ClassMetadata:
        try:
            metadata = definition.metadata_type(
                definition.class_name,
                definition.parent,
                definition.artifact,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GenerationError(definition.class_name, f"artifact is malformed: {e!r}") from e
        self.reflection.bind_reflection(metadata)
        if not metadata.is_bound:
            raise MetadataStateError(f"{definition.class_name}: reflection service did not bind the metadata")
        return metadata

    @property
    def stats(self) -> dict:
        """Factory statistics."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0
            return {
                "loaded": len(self._loaded),
                "definitions": len(self._definitions),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(hit_rate, 2),
                "definitions_built": self._definitions_built,
                "metadata_built": self._metadata_built,
            }
