"""Wiring helpers shared by the HTTP app and the CLI."""

from __future__ import annotations

import logging

from .config import Config
from .driver.loader import load_mappings
from .driver.registry import MappingRegistry
from .metadata.factory import ClassMetadataFactory
from .metadata.generator import ClassMetadataGenerator
from .metadata.strategy import (
    ArtifactStore, AutoGenerate, ClassMetadataGeneratorStrategy, create_strategy,
)
from .naming import DefaultNameNormalizer
from .reflection.service import (
    DeclaredReflectionService, ReflectionService, RuntimeReflectionService,
)

logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format=config.logging.format,
    )


def build_mapping_registry(config: Config) -> MappingRegistry:
    if not config.mapping.definition_file:
        logger.warning("No mapping definition file configured, starting with an empty mapping")
        return MappingRegistry()
    return load_mappings(config.mapping.definition_file)


def build_reflection_service(config: Config, registry: MappingRegistry) -> ReflectionService:
    if config.reflection.mode == "declared":
        return DeclaredReflectionService(registry)
    return RuntimeReflectionService()


def build_strategy(
    config: Config,
    registry: MappingRegistry,
    policy: AutoGenerate | None = None,
) -> ClassMetadataGeneratorStrategy:
    return create_strategy(
        policy or config.metadata.auto_generate,
        ClassMetadataGenerator(registry),
        ArtifactStore(config.metadata.cache_dir),
    )


def build_factory(
    config: Config,
    registry: MappingRegistry | None = None,
    policy: AutoGenerate | None = None,
) -> ClassMetadataFactory:
    """
    Build a metadata factory from configuration.

    Args:
        config: Service configuration
        registry: Mapping registry to use instead of loading ``mapping.definition_file``
        policy: Artifact policy overriding ``metadata.auto_generate``
    """
    if registry is None:
        registry = build_mapping_registry(config)

    strategy = build_strategy(config, registry, policy)
    logger.info(
        f"Metadata factory: {len(registry.get_all_class_names())} mapped classes, "
        f"policy={strategy.policy.value}, reflection={config.reflection.mode}"
    )
    return ClassMetadataFactory(
        driver=registry,
        reflection=build_reflection_service(config, registry),
        strategy=strategy,
        normalizer=DefaultNameNormalizer(config.metadata.proxy_marker),
    )
