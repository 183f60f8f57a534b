"""Shared test fixtures for the metadata factory tests.

The mapped classes used here are not importable, so most fixtures resolve
ancestors through the ``extends`` links of the mapping
(``DeclaredReflectionService``). Runtime reflection is covered separately
in test_reflection.py.
"""

import copy
import threading
import time
from collections import Counter
from pathlib import Path

import pytest

from mapping_svc.driver.loader import load_mappings
from mapping_svc.driver.registry import MappingRegistry
from mapping_svc.metadata.factory import ClassMetadataFactory
from mapping_svc.metadata.generator import ClassMetadataGenerator
from mapping_svc.metadata.strategy import ArtifactStore, create_strategy
from mapping_svc.reflection.service import DeclaredReflectionService


HR_MAPPING = {
    "app.models.TimestampMixin": {"transient": True},
    "app.models.Auditable": {
        "kind": "mapped_superclass",
        "extends": "app.models.TimestampMixin",
        "fields": {
            "created_at": {"type": "datetime"},
            "updated_at": {"type": "datetime", "nullable": True},
        },
    },
    "app.models.Company": {
        "extends": "app.models.Auditable",
        "table": "companies",
        "fields": {
            "id": {"type": "integer", "id": True},
            "name": {"type": "string", "length": 255, "unique": True},
        },
        "associations": {
            "staff": {"type": "one_to_many", "target": "app.models.Person", "mapped_by": "company"},
        },
    },
    "app.models.Person": {
        "extends": "app.models.Auditable",
        "table": "people",
        "inheritance": "joined",
        "discriminator": {
            "column": "type",
            "value": "person",
            "map": {
                "person": "app.models.Person",
                "employee": "app.models.Employee",
                "contractor": "app.models.Contractor",
            },
        },
        "fields": {
            "id": {"type": "integer", "id": True},
            "name": {"type": "string", "length": 255},
        },
        "associations": {
            "company": {
                "type": "many_to_one",
                "target": "app.models.Company",
                "inversed_by": "staff",
                "join_column": "company_id",
            },
        },
    },
    "app.models.Employee": {
        "extends": "app.models.Person",
        "discriminator": {"value": "employee"},
        "fields": {"salary": {"type": "decimal"}},
    },
    "app.models.Contractor": {
        "extends": "app.models.Person",
        "fields": {
            "rate": {"type": "decimal"},
            "agency": {"type": "string", "nullable": True},
        },
    },
    "app.models.Address": {
        "kind": "embeddable",
        "fields": {
            "street": {"type": "string"},
            "city": {"type": "string"},
        },
    },
}

MAPPED_CLASSES = [
    "app.models.Auditable",
    "app.models.Company",
    "app.models.Person",
    "app.models.Employee",
    "app.models.Contractor",
    "app.models.Address",
]


class CountingGenerator(ClassMetadataGenerator):
    """Generator that records every payload it produces, in order."""

    def __init__(self, driver, delay: float = 0.0):
        super().__init__(driver)
        self.delay = delay
        self.calls: Counter = Counter()
        self.order: list[str] = []
        self._lock = threading.Lock()

    def generate(self, class_name, parent):
        with self._lock:
            self.calls[class_name] += 1
            self.order.append(class_name)
        if self.delay:
            time.sleep(self.delay)
        return super().generate(class_name, parent)


# =============================================================================
# Mapping Fixtures
# =============================================================================

@pytest.fixture
def mapping_data() -> dict:
    """A fresh copy of the HR mapping, safe to edit per test."""
    return copy.deepcopy(HR_MAPPING)


@pytest.fixture
def registry(mapping_data) -> MappingRegistry:
    return load_mappings(mapping_data)


@pytest.fixture
def artifact_dir(tmp_path) -> Path:
    return tmp_path / "artifacts"


@pytest.fixture
def store(artifact_dir) -> ArtifactStore:
    return ArtifactStore(artifact_dir)


# =============================================================================
# Factory Fixtures
# =============================================================================

@pytest.fixture
def make_factory(store):
    """
    Build a factory over a mapping dict (or registry) and return it with its generator.

    All factories built by one test share the same artifact directory, so a
    second factory sees what the first one wrote.
    """
    def _make(mapping=None, policy="if-missing", delay=0.0, artifact_store=None):
        if mapping is None:
            mapping = copy.deepcopy(HR_MAPPING)
        reg = mapping if isinstance(mapping, MappingRegistry) else load_mappings(mapping)
        generator = CountingGenerator(reg, delay=delay)
        strategy = create_strategy(policy, generator, artifact_store or store)
        factory = ClassMetadataFactory(reg, DeclaredReflectionService(reg), strategy)
        return factory, generator
    return _make


@pytest.fixture
def factory_and_generator(make_factory, registry):
    return make_factory(registry)


@pytest.fixture
def factory(factory_and_generator) -> ClassMetadataFactory:
    return factory_and_generator[0]


@pytest.fixture
def generator(factory_and_generator) -> CountingGenerator:
    return factory_and_generator[1]


@pytest.fixture
def mapped_classes() -> list[str]:
    """Mapped class names of the HR mapping, in declaration order."""
    return list(MAPPED_CLASSES)
