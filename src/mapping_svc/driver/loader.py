"""Mapping loader - loads class mappings from YAML/JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ..errors import MappingInconsistencyError
from .registry import MappingRegistry
from .types import (
    AssociationMapping, ClassMapping, DiscriminatorMapping, FieldMapping,
    InheritanceType, MappingKind,
)


logger = logging.getLogger(__name__)


class MappingLoader:
    """
    Loads class mappings from YAML or JSON files.

    File format:
    ```yaml
    app.models.Person:
      kind: entity
      table: people
      inheritance: joined
      discriminator:
        column: type
        value: person
        map:
          person: app.models.Person
          employee: app.models.Employee
      fields:
        id: {type: integer, id: true}
        name: {type: string, length: 255}
      associations:
        company: {type: many_to_one, target: app.models.Company, inversed_by: staff}

    app.models.Employee:
      extends: app.models.Person
      discriminator: {value: employee}

    app.models.TimestampMixin:
      transient: true
    ```
    """

    def load_file(self, path: str | Path) -> MappingRegistry:
        """Load mappings from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Mapping file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return self.load_dict(data or {})

    def load_dict(self, data: dict[str, Any]) -> MappingRegistry:
        """Load mappings from a dictionary."""
        registry = MappingRegistry()

        for class_name, class_data in data.items():
            class_data = class_data or {}
            if not isinstance(class_data, dict):
                raise MappingInconsistencyError(class_name, f"class entry must be a mapping, got {class_data!r}")
            if class_data.get("transient", False):
                registry.register_transient(class_name, class_data.get("extends"))
                logger.debug(f"Loaded transient class: {class_name}")
                continue
            registry.register(self._parse_mapping(class_name, class_data))
            logger.debug(f"Loaded class mapping: {class_name}")

        logger.info(f"Loaded {len(registry.get_all_class_names())} class mappings")
        return registry

    def _parse_mapping(self, class_name: str, data: dict[str, Any]) -> ClassMapping:
        """Parse the mapping of a single class from a dictionary."""
        try:
            kind = MappingKind(data.get("kind", MappingKind.ENTITY.value))
        except ValueError:
            raise MappingInconsistencyError(class_name, f"unknown mapping kind '{data.get('kind')}'")

        inheritance = None
        if "inheritance" in data:
            try:
                inheritance = InheritanceType(str(data["inheritance"]).lower())
            except ValueError:
                raise MappingInconsistencyError(
                    class_name, f"unknown inheritance type '{data['inheritance']}'"
                )

        discriminator = None
        if "discriminator" in data:
            disc_data = data["discriminator"] or {}
            if not isinstance(disc_data, dict):
                raise MappingInconsistencyError(class_name, "discriminator must be a mapping")
            # YAML reads `1` as an int; discriminator values and map keys are kept as strings
            value = disc_data.get("value")
            discriminator = DiscriminatorMapping(
                column=disc_data.get("column"),
                value=str(value) if value is not None else None,
                map={str(k): v for k, v in (disc_data.get("map") or {}).items()},
            )

        fields = tuple(
            FieldMapping(
                name=name,
                column=field_data.get("column", name),
                type=field_data.get("type", "string"),
                id=field_data.get("id", False),
                nullable=field_data.get("nullable", False),
                unique=field_data.get("unique", False),
                length=field_data.get("length"),
            )
            for name, field_data in self._named_entries(class_name, "field", data.get("fields"))
        )

        associations = []
        for name, assoc_data in self._named_entries(class_name, "association", data.get("associations")):
            # Missing targets are left empty and rejected when the metadata is generated
            associations.append(AssociationMapping(
                name=name,
                target=assoc_data.get("target", ""),
                type=str(assoc_data.get("type", "many_to_one")).lower(),
                mapped_by=assoc_data.get("mapped_by"),
                inversed_by=assoc_data.get("inversed_by"),
                join_column=assoc_data.get("join_column"),
            ))

        return ClassMapping(
            class_name=class_name,
            kind=kind,
            table=data.get("table"),
            inheritance=inheritance,
            discriminator=discriminator,
            fields=fields,
            associations=tuple(associations),
            read_only=data.get("read_only", False),
            extends=data.get("extends"),
        )

    @staticmethod
    def _named_entries(class_name: str, label: str, entries: Any) -> list[tuple[str, dict[str, Any]]]:
        """Accept both ``{name: {...}}`` and ``[{name: ..., ...}]`` layouts."""
        if not entries:
            return []
        if isinstance(entries, dict):
            named = [(name, spec or {}) for name, spec in entries.items()]
        elif isinstance(entries, list):
            named = []
            for spec in entries:
                if not isinstance(spec, dict) or not spec.get("name"):
                    raise MappingInconsistencyError(class_name, f"{label} entry without a name: {spec!r}")
                named.append((spec["name"], spec))
        else:
            raise MappingInconsistencyError(class_name, f"{label}s must be a mapping or a list")

        for name, spec in named:
            if not isinstance(spec, dict):
                raise MappingInconsistencyError(class_name, f"{label} '{name}' must be a mapping, got {spec!r}")
        return [(str(name), spec) for name, spec in named]

    def load_directory(self, directory: str | Path) -> MappingRegistry:
        """
        Load mappings from all YAML/JSON files in a directory.

        Files are loaded in alphabetical order. Later files can override
        earlier definitions.
        """
        directory = Path(directory)
        registry = MappingRegistry()

        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        files = sorted(directory.glob("*.yaml")) + sorted(directory.glob("*.yml")) + sorted(directory.glob("*.json"))

        for file_path in files:
            logger.info(f"Loading mapping file: {file_path}")
            registry.update(self.load_file(file_path))

        return registry


def load_mappings(source: str | Path | dict) -> MappingRegistry:
    """
    Convenience function to load class mappings.

    Args:
        source: File path, directory path, or dictionary

    Returns:
        MappingRegistry with loaded mappings
    """
    loader = MappingLoader()

    if isinstance(source, dict):
        return loader.load_dict(source)

    path = Path(source)
    if path.is_dir():
        return loader.load_directory(path)
    else:
        return loader.load_file(path)
